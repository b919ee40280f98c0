"""
Session API Routes

Endpoints:
- DELETE /sessions/{session_id} - Clear conversation, goal and task records of a session
"""

from fastapi import APIRouter, Request

from easy_orchestrator.api.dependencies import error_response, get_orchestrator, logger, timestamp
from easy_orchestrator.api.schemas import ClearSessionResponse, ErrorResponse

router = APIRouter()


@router.delete(
    "/sessions/{session_id}",
    response_model=ClearSessionResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Clear session",
)
async def clear_session(session_id: str, request: Request):
    try:
        orchestrator = await get_orchestrator(request)
        cleared = await orchestrator.clear_session(session_id)
    except Exception as e:
        logger.error("api.clear_session_failed", session_id=session_id, error=str(e))
        return error_response(500, str(e))

    return ClearSessionResponse(
        success=True, cleared=cleared, session_id=session_id, timestamp=timestamp()
    )
