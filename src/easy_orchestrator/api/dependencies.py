"""
Shared helpers for API routes.

The Orchestrator is built lazily on first use from the profile configured on
the app and cached on ``app.state``; tests inject a ready-made instance
through ``create_app(orchestrator=...)``.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from easy_orchestrator.application.factory import OrchestratorFactory
from easy_orchestrator.core.domain.orchestrator import Orchestrator

logger = structlog.get_logger().bind(component="api")


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_response(
    status_code: int, error: str, details: Optional[str] = None, with_timestamp: bool = True
) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    if with_timestamp:
        body["timestamp"] = timestamp()
    return JSONResponse(status_code=status_code, content=body)


async def get_orchestrator(request: Request) -> Orchestrator:
    """
    Return the app's Orchestrator, creating it on first use.

    Raises:
        Exception: Whatever the factory raised (e.g. unknown profile)
    """
    state = request.app.state
    if getattr(state, "orchestrator", None) is None:
        factory = getattr(state, "factory", None) or OrchestratorFactory()
        state.orchestrator = await factory.create_orchestrator(getattr(state, "profile", None))
        logger.info("orchestrator.created_for_api")
    return state.orchestrator
