import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from webm_dash_live.container.stream import SessionResetError
from webm_dash_live.live.session import LiveSession
from webm_dash_live.routes.dependencies import get_session
from webm_dash_live.schemas import SessionStartRequest

logger = logging.getLogger(__name__)

session_router = APIRouter()


@session_router.post("/start")
async def start_session(payload: Optional[SessionStartRequest] = None, session: LiveSession = Depends(get_session)):
    """Begin writing the container, publish the manifest and start cutting fragments."""
    now = payload.availability_start_time if payload else None
    try:
        session.start(now)
    except SessionResetError as e:
        logger.error(f"Unable to start session: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return session.status()


@session_router.post("/stop")
async def stop_session(session: LiveSession = Depends(get_session)):
    """Stop cutting. Fragments already published stay available until the next reset."""
    await session.stop()
    return session.status()


@session_router.post("/reset")
async def reset_session(session: LiveSession = Depends(get_session)):
    """Delete all fragments and prepare a fresh container for the next recording."""
    try:
        await session.reset()
    except SessionResetError as e:
        logger.error(f"Session reset failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return session.status()


@session_router.get("/status")
async def session_status(session: LiveSession = Depends(get_session)):
    return session.status()
