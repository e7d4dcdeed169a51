"""
AuraLock Core Input Schemas

Pydantic V2 models for the raw behavioral events pushed by the client
and for the stateless scoring request.

Timestamps are epoch milliseconds. When a client omits one, the
server clock is used at ingestion. A session must use one clock: a
client that timestamps its events also passes the session start time,
otherwise elapsed time is measured across two clocks.
"""

from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Behavioral Event Payloads
# =============================================================================

class SessionClockPayload(BaseModel):
    """Optional session start or stop time on the client clock."""
    timestamp: Optional[float] = Field(None, description="Start or stop time in milliseconds")


class BlinkPayload(BaseModel):
    """A blink detected on the device."""
    timestamp: Optional[float] = Field(None, description="Event timestamp in milliseconds")


class EyeFramePayload(BaseModel):
    """Per-frame eye openness probabilities from the face tracker."""
    left_openness: float = Field(..., ge=0.0, le=1.0, description="Left eye open probability")
    right_openness: Optional[float] = Field(
        None,
        ge=0.0,
        le=1.0,
        description="Right eye open probability (left is used alone when missing)"
    )
    timestamp: Optional[float] = Field(None, description="Frame timestamp in milliseconds")


class TextChangePayload(BaseModel):
    """Text field contents after a change notification."""
    text: str = Field(..., description="Full current text of the monitored field")
    timestamp: Optional[float] = Field(None, description="Event timestamp in milliseconds")


class GesturePayload(BaseModel):
    """Drag start or end position."""
    x: float = Field(..., description="Horizontal position")
    y: float = Field(..., description="Vertical position")
    timestamp: Optional[float] = Field(None, description="Event timestamp in milliseconds")


# =============================================================================
# Scoring Request
# =============================================================================

class ScoreRequest(BaseModel):
    """Stateless ZKScore computation request."""
    blink_rate: float = Field(..., description="Blinks per minute")
    typing_speed: float = Field(..., description="Words per minute")
    swipe_stability: float = Field(..., description="Swipe stability coefficient")
