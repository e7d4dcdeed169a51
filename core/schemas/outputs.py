"""
AuraLock Core Output Schemas

Pydantic V2 models for collector statistics, the ZKScore and the
per-user metrics document kept in the document store.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class RiskTier(str, Enum):
    """Discrete risk bucket derived from the ZKScore."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class SwipeDirection(str, Enum):
    """Dominant axis and sign of a swipe (screen coordinates, y down)."""
    UP = "Up"
    DOWN = "Down"
    LEFT = "Left"
    RIGHT = "Right"


# =============================================================================
# Geometry
# =============================================================================

class Point(BaseModel):
    """Screen position in logical pixels."""
    model_config = ConfigDict(frozen=True)

    x: float = Field(..., description="Horizontal position")
    y: float = Field(..., description="Vertical position (grows downwards)")


# =============================================================================
# Collector Statistics
# =============================================================================

class BlinkStat(BaseModel):
    """Blink counter for the current monitoring window."""
    count: int = Field(0, ge=0, description="Accepted blinks in the window")
    window_start: Optional[float] = Field(
        None,
        description="Window start timestamp in milliseconds"
    )


class TypingStat(BaseModel):
    """Typing summary for a monitoring session."""
    total_words: int = Field(0, ge=0)
    total_characters: int = Field(0, ge=0)
    inter_key_delays: List[int] = Field(
        default_factory=list,
        description="Delays between consecutive text changes (ms)"
    )
    elapsed_ms: float = Field(0.0, description="Session duration in milliseconds")
    words_per_minute: float = Field(0.0, ge=0.0)
    average_delay_ms: float = 0.0


class SwipeGesture(BaseModel):
    """A completed drag gesture. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    start_position: Point
    end_position: Point
    start_time: float = Field(..., description="Gesture start (ms)")
    end_time: float = Field(..., description="Gesture end (ms)")
    duration_ms: float = Field(..., description="end_time - start_time")
    distance: float = Field(..., ge=0.0, description="Euclidean distance (px)")
    speed: float = Field(..., ge=0.0, description="distance / duration_ms (px/ms)")
    direction: SwipeDirection


class SwipeStat(BaseModel):
    """Aggregate over every gesture recorded in a tracking session."""
    average_speed: float = 0.0
    average_distance: float = 0.0
    average_duration: float = 0.0
    count: int = Field(0, ge=0)
    direction_histogram: Dict[SwipeDirection, int] = Field(default_factory=dict)
    stability: float = Field(1.0, ge=0.0, le=1.0)


# =============================================================================
# Score
# =============================================================================

class ZKScore(BaseModel):
    """Composite behavioral trust score."""
    model_config = ConfigDict(frozen=True)

    value: float = Field(..., ge=0.0, le=1.0, description="Trust score")
    risk_tier: RiskTier


class ZKScoreResponse(BaseModel):
    """Score plus the guidance shown to the user."""
    zk_score: float = Field(..., ge=0.0, le=1.0)
    risk_level: RiskTier
    description: str
    recommendations: List[str] = Field(default_factory=list)
    banking_access: bool


class SessionSnapshot(BaseModel):
    """Current inputs and score of a monitoring session."""
    user_id: str
    monitoring: bool
    blink_rate: float
    typing_speed: float
    swipe_stability: float
    blink_count: int = 0
    swipe_metrics: Optional[SwipeStat] = None
    zk_score: Optional[ZKScore] = None


# =============================================================================
# Document Store Records
# =============================================================================

class SwipeMetricsDocument(BaseModel):
    """swipeMetrics sub-document of a user record."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    average_speed: float = Field(0.0, alias="averageSpeed")
    average_distance: float = Field(0.0, alias="averageDistance")
    average_duration: float = Field(0.0, alias="averageDuration")
    swipe_count: int = Field(0, alias="swipeCount")
    direction_distribution: Dict[str, int] = Field(
        default_factory=dict,
        alias="directionDistribution"
    )
    stability: float = 1.0

    @classmethod
    def from_stat(cls, stat: SwipeStat) -> "SwipeMetricsDocument":
        return cls(
            average_speed=stat.average_speed,
            average_distance=stat.average_distance,
            average_duration=stat.average_duration,
            swipe_count=stat.count,
            direction_distribution={
                direction.value: count
                for direction, count in stat.direction_histogram.items()
            },
            stability=stat.stability,
        )


class BaselineDocument(BaseModel):
    """localBaselines sub-document mirrored from the device cache."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    blink_rate: Optional[float] = Field(None, alias="blinkRate")
    typing_speed: Optional[float] = Field(None, alias="typingSpeed")
    swipe_stability: Optional[float] = Field(None, alias="swipeStability")


class UserMetricsRecord(BaseModel):
    """
    Per-user document persisted after each recomputation.

    Field aliases are the document keys; every field is optional since
    collectors write partial updates independently.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    blink_rate: Optional[float] = Field(None, alias="blinkRate")
    typing_speed: Optional[float] = Field(None, alias="typingSpeed")
    average_inter_key_delay: Optional[float] = Field(None, alias="averageInterKeyDelay")
    total_words_typed: Optional[int] = Field(None, alias="totalWordsTyped")
    total_characters_typed: Optional[int] = Field(None, alias="totalCharactersTyped")
    swipe_stability: Optional[float] = Field(None, alias="swipeStability")
    swipe_metrics: Optional[SwipeMetricsDocument] = Field(None, alias="swipeMetrics")
    zk_score: Optional[float] = Field(None, alias="zkScore")
    risk_level: Optional[RiskTier] = Field(None, alias="riskLevel")
    local_baselines: Optional[BaselineDocument] = Field(None, alias="localBaselines")
    updated_at: Optional[str] = Field(None, alias="updatedAt")

    def resolved_swipe_stability(self, default: float = 1.0) -> float:
        """Top-level stability, falling back to swipeMetrics.stability."""
        if self.swipe_stability is not None:
            return self.swipe_stability
        if self.swipe_metrics is not None:
            return self.swipe_metrics.stability
        return default
