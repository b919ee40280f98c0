"""
Orchestrator API Routes

Endpoints:
- POST /orchestrator/execute - Run a goal through planning, execution and coordination
- GET /orchestrator/status - Orchestrator status and capabilities
"""

from fastapi import APIRouter, Request

from easy_orchestrator.api.dependencies import (
    error_response,
    get_orchestrator,
    logger,
    timestamp,
)
from easy_orchestrator.api.schemas import (
    ErrorResponse,
    ExecuteGoalRequest,
    ExecuteGoalResponse,
    StatusResponse,
)

router = APIRouter()


@router.post(
    "/orchestrator/execute",
    response_model=ExecuteGoalResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Execute goal",
)
async def execute_goal(body: ExecuteGoalRequest, request: Request):
    """
    Execute a goal synchronously.

    Pipeline failures (e.g. no completion provider) are not HTTP errors: they
    come back with status 200 and ``result.success == false``.
    """
    if not body.goal:
        return error_response(400, "Goal is required", with_timestamp=False)

    try:
        orchestrator = await get_orchestrator(request)
        result = await orchestrator.execute_goal(body.goal, body.context)
    except Exception as e:
        logger.error("api.execute_failed", error=str(e), error_type=type(e).__name__)
        return error_response(500, str(e))

    return ExecuteGoalResponse(success=True, result=result.to_dict(), timestamp=timestamp())


@router.get(
    "/orchestrator/status",
    response_model=StatusResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Orchestrator status",
)
async def orchestrator_status(request: Request):
    try:
        orchestrator = await get_orchestrator(request)
    except Exception as e:
        return error_response(500, "Failed to initialize orchestrator", details=str(e))

    return StatusResponse(success=True, status=orchestrator.get_status(), timestamp=timestamp())
