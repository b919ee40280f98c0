"""
Agent API Routes

Endpoints:
- GET /agents - List the orchestrator's agents with their state
"""

from fastapi import APIRouter, Request

from easy_orchestrator.api.dependencies import error_response, get_orchestrator, timestamp
from easy_orchestrator.api.schemas import AgentInfo, AgentListResponse, ErrorResponse

router = APIRouter()


@router.get(
    "/agents",
    response_model=AgentListResponse,
    responses={500: {"model": ErrorResponse}},
    summary="List agents",
)
async def list_agents(request: Request):
    try:
        orchestrator = await get_orchestrator(request)
    except Exception as e:
        return error_response(500, "Failed to initialize orchestrator", details=str(e))

    agents = []
    for name in orchestrator.get_status()["agents"]:
        state = orchestrator.get_agent_state(name)
        agents.append(
            AgentInfo(name=name, state=state, status=(state or {}).get("status", "unknown"))
        )

    return AgentListResponse(
        success=True,
        agents=agents,
        total_agents=len(agents),
        timestamp=timestamp(),
    )
