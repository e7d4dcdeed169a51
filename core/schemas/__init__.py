"""
AuraLock Core Schemas

Public exports for input and output Pydantic models.
"""

# Input schemas - Behavioral events
from core.schemas.inputs import (
    BlinkPayload,
    EyeFramePayload,
    GesturePayload,
    SessionClockPayload,
    TextChangePayload,
)

# Input schemas - Scoring
from core.schemas.inputs import ScoreRequest

# Output schemas
from core.schemas.outputs import (
    BaselineDocument,
    BlinkStat,
    Point,
    RiskTier,
    SessionSnapshot,
    SwipeDirection,
    SwipeGesture,
    SwipeMetricsDocument,
    SwipeStat,
    TypingStat,
    UserMetricsRecord,
    ZKScore,
    ZKScoreResponse,
)

__all__ = [
    # Input - Events
    "SessionClockPayload",
    "BlinkPayload",
    "EyeFramePayload",
    "TextChangePayload",
    "GesturePayload",
    # Input - Scoring
    "ScoreRequest",
    # Output - Enums
    "RiskTier",
    "SwipeDirection",
    # Output - Statistics
    "Point",
    "BlinkStat",
    "TypingStat",
    "SwipeGesture",
    "SwipeStat",
    # Output - Score
    "ZKScore",
    "ZKScoreResponse",
    "SessionSnapshot",
    # Output - Document store
    "SwipeMetricsDocument",
    "BaselineDocument",
    "UserMetricsRecord",
]
