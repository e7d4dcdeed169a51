"""
AuraLock Trust API

FastAPI application exposing:
- POST /sessions/{user_id}/start → 204 (optional {"timestamp"} on the client clock)
- POST /sessions/{user_id}/blink|eye|typing|swipe/start|swipe/end → 204
- POST /sessions/{user_id}/stop → final ZKScore with guidance (same optional body)
- GET  /sessions/{user_id} → current session snapshot
- POST /sessions/{user_id}/resume → snapshot seeded from stored metrics
- POST /score → stateless ZKScore computation
"""

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from core.config import get_settings
from core.context import AppContext, build_app_context
from core.errors import SessionNotFoundError
from core.orchestrator import SessionRegistry, TrustOrchestrator
from core.scheduler import AsyncioScheduler
from core.schemas.inputs import (
    BlinkPayload,
    EyeFramePayload,
    GesturePayload,
    ScoreRequest,
    SessionClockPayload,
    TextChangePayload,
)
from core.schemas.outputs import Point, SessionSnapshot, ZKScoreResponse


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# =============================================================================
# Application State
# =============================================================================

class AppState:
    """Application state container."""
    scheduler: Optional[AsyncioScheduler] = None
    context: Optional[AppContext] = None
    registry: Optional[SessionRegistry] = None


state = AppState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting AuraLock Trust API...")
    state.scheduler = AsyncioScheduler(asyncio.get_running_loop())
    state.context = build_app_context(settings, state.scheduler)
    state.registry = SessionRegistry(state.context)
    logger.info("AuraLock Trust API ready")

    yield

    # Shutdown
    logger.info("Shutting down AuraLock Trust API...")
    state.registry.close_all()
    # Let the final writes of closed sessions land before exiting
    await state.scheduler.flush()
    state.scheduler.shutdown()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="AuraLock Trust",
    description="Behavioral trust scoring from blinks, typing and swipes",
    version=API_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _session(user_id: str) -> TrustOrchestrator:
    """Active session for a user, or 404."""
    try:
        return state.registry.get(user_id)
    except SessionNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    context = state.context
    return {
        "status": "healthy",
        "version": API_VERSION,
        "sessions": len(state.registry.user_ids()) if state.registry else 0,
        "metrics_store": bool(context and context.repository and context.repository.enabled),
        "baseline_cache": bool(context and context.baseline_cache is not None),
    }


# =============================================================================
# Session Lifecycle
# =============================================================================

@app.post("/sessions/{user_id}/start", status_code=status.HTTP_204_NO_CONTENT)
async def start_session(user_id: str, payload: Optional[SessionClockPayload] = None):
    """
    Create the user's session if needed and start every collector.

    - Clients that timestamp their events send the start time too
    """
    now = payload.timestamp if payload else None
    try:
        state.registry.get_or_create(user_id).start_monitoring(now)
    except Exception as e:
        logger.error(f"Session start error for {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal error starting session"
        )

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/sessions/{user_id}/stop", response_model=ZKScoreResponse)
async def stop_session(user_id: str, payload: Optional[SessionClockPayload] = None):
    """
    Stop monitoring and return the final score.

    - Flushes the blink window and typing summary
    - Persists the final statistics
    - The session stays available for snapshots until restarted
    """
    session = _session(user_id)

    try:
        score = session.stop_monitoring(payload.timestamp if payload else None)
        if score is None:
            score = session.recompute()
        return session.engine.respond(score)
    except Exception as e:
        logger.error(f"Session stop error for {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal error stopping session"
        )


@app.get("/sessions/{user_id}", response_model=SessionSnapshot)
async def get_session(user_id: str):
    """Current inputs, counters and last score of a session."""
    return _session(user_id).snapshot()


@app.post("/sessions/{user_id}/resume", response_model=SessionSnapshot)
async def resume_session(user_id: str):
    """Seed a session from the document store or the baseline cache."""
    try:
        return state.registry.get_or_create(user_id).resume()
    except Exception as e:
        logger.error(f"Session resume error for {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal error resuming session"
        )


# =============================================================================
# Event Endpoints (HTTP 204)
# =============================================================================

@app.post("/sessions/{user_id}/blink", status_code=status.HTTP_204_NO_CONTENT)
async def ingest_blink(user_id: str, payload: BlinkPayload):
    """Record a device-detected blink. Blinks inside the cooldown are dropped."""
    _session(user_id).record_blink(payload.timestamp)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/sessions/{user_id}/eye", status_code=status.HTTP_204_NO_CONTENT)
async def ingest_eye_frame(user_id: str, payload: EyeFramePayload):
    """Feed one frame of eye openness; a closing transition counts as a blink."""
    _session(user_id).observe_eyes(
        payload.left_openness,
        payload.right_openness,
        payload.timestamp,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/sessions/{user_id}/typing", status_code=status.HTTP_204_NO_CONTENT)
async def ingest_text_change(user_id: str, payload: TextChangePayload):
    """Record the full text of the monitored field after a change."""
    _session(user_id).text_changed(payload.text, payload.timestamp)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/sessions/{user_id}/swipe/start", status_code=status.HTTP_204_NO_CONTENT)
async def ingest_swipe_start(user_id: str, payload: GesturePayload):
    """Mark the start of a drag gesture."""
    _session(user_id).gesture_start(Point(x=payload.x, y=payload.y), payload.timestamp)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/sessions/{user_id}/swipe/end", status_code=status.HTTP_204_NO_CONTENT)
async def ingest_swipe_end(user_id: str, payload: GesturePayload):
    """Complete the pending drag gesture. Ends without a start are ignored."""
    _session(user_id).gesture_end(Point(x=payload.x, y=payload.y), payload.timestamp)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Score Endpoint (JSON Response)
# =============================================================================

@app.post("/score", response_model=ZKScoreResponse)
async def score(payload: ScoreRequest):
    """Compute a ZKScore from explicit inputs without touching any session."""
    try:
        engine = state.context.engine
        return engine.respond(
            engine.evaluate(payload.blink_rate, payload.typing_speed, payload.swipe_stability)
        )
    except Exception as e:
        logger.error(f"Score error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal error computing score"
        )


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
