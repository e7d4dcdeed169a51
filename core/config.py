"""
AuraLock Configuration

Settings are read once from the environment (optionally seeded from a
.env file) and cached for the lifetime of the process.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for collectors, scoring and persistence."""

    # Blink collection
    blink_cooldown_ms: float = 300.0
    blink_window_seconds: float = 60.0
    blink_simulation: bool = False
    blink_simulation_interval_seconds: float = 3.0
    blink_simulation_probability: float = 0.25
    eye_open_threshold: float = 0.3

    # Scoring
    score_recompute_seconds: float = 60.0

    # Baseline cache
    baseline_sync_hours: float = 24.0

    # Backends
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from an environment mapping (defaults to os.environ)."""
        env = os.environ if environ is None else environ
        return cls(
            blink_cooldown_ms=float(env.get("BLINK_COOLDOWN_MS", 300)),
            blink_window_seconds=float(env.get("BLINK_WINDOW_SECONDS", 60)),
            blink_simulation=_as_bool(env.get("BLINK_SIMULATION"), False),
            blink_simulation_interval_seconds=float(
                env.get("BLINK_SIMULATION_INTERVAL_SECONDS", 3)
            ),
            blink_simulation_probability=float(
                env.get("BLINK_SIMULATION_PROBABILITY", 0.25)
            ),
            eye_open_threshold=float(env.get("EYE_OPEN_THRESHOLD", 0.3)),
            score_recompute_seconds=float(env.get("SCORE_RECOMPUTE_SECONDS", 60)),
            baseline_sync_hours=float(env.get("BASELINE_SYNC_HOURS", 24)),
            redis_host=env.get("REDIS_HOST", "localhost"),
            redis_port=int(env.get("REDIS_PORT", 6379)),
            redis_password=env.get("REDIS_PASSWORD") or None,
            supabase_url=env.get("SUPABASE_URL") or None,
            supabase_key=env.get("SUPABASE_KEY") or None,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process, honouring a local .env file."""
    load_dotenv()
    return Settings.from_env()
