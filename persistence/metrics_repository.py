"""
AuraLock Metrics Repository

Supabase-backed document store for per-user behavioral metrics.
Each user owns one JSON document that collectors update partially.

Schema:
    user_metrics (
        user_id    TEXT PRIMARY KEY,
        document   JSONB,
        updated_at TIMESTAMPTZ DEFAULT now()
    )

Document keys:
    blinkRate, typingSpeed, averageInterKeyDelay, totalWordsTyped,
    totalCharactersTyped, swipeStability, swipeMetrics{...},
    zkScore, riskLevel, localBaselines{...}, updatedAt
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError
from supabase import create_client, Client

from core.config import Settings, get_settings
from core.errors import PersistenceError
from core.schemas.outputs import UserMetricsRecord


logger = logging.getLogger(__name__)


class MetricsRepository:
    """
    Read/merge/write access to the user_metrics table.

    Reads and writes raise PersistenceError on backend failures; the
    orchestrator decides whether that is fatal (it never is). With no
    credentials configured the repository is disabled: reads return
    None and writes are skipped.
    """

    TABLE_NAME = "user_metrics"

    # Per-user locks to serialize load -> merge -> upsert
    _write_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
    _lock_guard = threading.Lock()  # Protects _write_locks dict itself

    def __init__(
        self,
        client: Optional[Client] = None,
        settings: Optional[Settings] = None
    ) -> None:
        """Initialize with an explicit client or from Supabase settings."""
        if client is not None:
            self.client: Optional[Client] = client
            return

        settings = settings or get_settings()
        if not settings.supabase_url or not settings.supabase_key:
            logger.warning("Supabase credentials not configured, metrics persistence disabled")
            self.client = None
        else:
            self.client = create_client(settings.supabase_url, settings.supabase_key)
            logger.info("MetricsRepository initialized with Supabase")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _get_write_lock(self, user_id: str) -> threading.Lock:
        """Get or create the per-user write lock."""
        with self._lock_guard:
            return self._write_locks[user_id]

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def load_document(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Raw stored document, or None if the user has no record."""
        if self.client is None:
            return None

        try:
            response = self.client.table(self.TABLE_NAME).select(
                "document"
            ).eq("user_id", user_id).execute()
        except Exception as e:
            logger.error(f"Metrics read failed for {user_id}: {e}")
            raise PersistenceError(f"Failed to load metrics for {user_id}") from e

        if not response.data:
            return None
        return response.data[0].get("document") or {}

    def load_metrics(self, user_id: str) -> Optional[UserMetricsRecord]:
        """Stored metrics as a typed record, or None if absent."""
        document = self.load_document(user_id)
        if document is None:
            return None

        try:
            return UserMetricsRecord.model_validate(document)
        except ValidationError as e:
            logger.error(f"Stored metrics for {user_id} are unreadable: {e}")
            raise PersistenceError(f"Invalid metrics document for {user_id}") from e

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def save_metrics(self, user_id: str, fields: Dict[str, Any]) -> bool:
        """
        Merge fields into the user's document and upsert it.

        Top-level keys replace existing values; nested documents
        (swipeMetrics, localBaselines) are replaced as a whole.

        Returns:
            True if written, False if persistence is disabled.
        """
        if self.client is None:
            logger.debug(f"Metrics persistence disabled, dropping update for {user_id}")
            return False

        with self._get_write_lock(user_id):
            document = dict(self.load_document(user_id) or {})
            document.update(fields)
            document["updatedAt"] = datetime.now(timezone.utc).isoformat()

            try:
                self.client.table(self.TABLE_NAME).upsert({
                    "user_id": user_id,
                    "document": document,
                }).execute()
            except Exception as e:
                logger.error(f"Metrics write failed for {user_id}: {e}")
                raise PersistenceError(f"Failed to save metrics for {user_id}") from e

        logger.debug(f"Persisted {sorted(fields)} for {user_id}")
        return True

    def save_record(self, user_id: str, record: UserMetricsRecord) -> bool:
        """Persist every populated field of a record."""
        fields = record.model_dump(by_alias=True, exclude_none=True, mode="json")
        fields.pop("updatedAt", None)
        return self.save_metrics(user_id, fields)
