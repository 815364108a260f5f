"""Sessions API router: list, inspect and clear conversations."""

from fastapi import APIRouter, Depends

from app.apis.v1.dependencies import get_session_manager
from app.apis.v1.types_out import (
    MessageResponse,
    SessionDeleteResponse,
    SessionHistoryResponse,
    SessionListResponse,
    SessionSummary,
    StatsResponse
)
from app.core.v1.session_manager import SessionManager
from app.core.v1.validators import SessionValidator
from app.core.v1.log_manager import LogManager

# Initialize router
router = APIRouter()

logger = LogManager(__name__)


@router.get("", response_model=SessionListResponse)
async def list_sessions(session_manager: SessionManager = Depends(get_session_manager)):
    """List active sessions with aggregate counts."""
    stats = await session_manager.stats()
    sessions = await session_manager.list_sessions()

    return SessionListResponse(
        stats=StatsResponse(**stats),
        sessions=[SessionSummary(**s) for s in sessions],
        storage=session_manager.last_source.value
    )


@router.get("/{session_id}/history", response_model=SessionHistoryResponse)
async def session_history(
    session_id: str,
    session_manager: SessionManager = Depends(get_session_manager)
):
    """Messages of a session in arrival order."""
    session_id = SessionValidator.validate_session_id(session_id)
    messages = await session_manager.history(session_id)

    return SessionHistoryResponse(
        session_id=session_id,
        messages=[
            MessageResponse(
                role=m.role.value,
                content=m.content,
                timestamp=m.timestamp,
                media=m.media,
                media_count=m.media_count,
                language=m.language
            )
            for m in messages
        ],
        total=len(messages)
    )


@router.delete("/{session_id}", response_model=SessionDeleteResponse)
async def clear_session(
    session_id: str,
    session_manager: SessionManager = Depends(get_session_manager)
):
    """Clear one session. Stored rows are kept but marked inactive."""
    session_id = SessionValidator.validate_session_id(session_id)
    await session_manager.clear(session_id)

    logger.info("Session cleared via API", session_id=session_id)
    return SessionDeleteResponse(success=True, cleared=1, message=f"Session {session_id} cleared")


@router.delete("", response_model=SessionDeleteResponse)
async def clear_all_sessions(session_manager: SessionManager = Depends(get_session_manager)):
    """Clear every active session."""
    cleared = await session_manager.clear_all()

    logger.info("All sessions cleared via API", cleared=cleared)
    return SessionDeleteResponse(success=True, cleared=cleared, message=f"Cleared {cleared} session(s)")
