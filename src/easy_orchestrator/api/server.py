import os
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from easy_orchestrator import __version__
from easy_orchestrator.api.dependencies import error_response
from easy_orchestrator.api.routes import agents, sessions
from easy_orchestrator.api.routes import orchestrator as orchestrator_routes
from easy_orchestrator.application.factory import OrchestratorFactory
from easy_orchestrator.core.domain.orchestrator import Orchestrator
from easy_orchestrator.infrastructure.log_setup import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI startup/shutdown events."""
    factory: OrchestratorFactory = app.state.factory
    configure_logging(*factory.profile_logging_settings(app.state.profile))

    await logger.ainfo("fastapi.startup", message="Easy Orchestrator API starting...")
    yield
    await logger.ainfo("fastapi.shutdown", message="Easy Orchestrator API shutting down...")

    store = None
    if getattr(app.state, "orchestrator", None) is not None:
        store = app.state.orchestrator.registry.executor.session_store
    disconnect = getattr(store, "disconnect", None)
    if disconnect is not None:
        await disconnect()


def create_app(
    orchestrator: Optional[Orchestrator] = None,
    profile: Optional[str] = None,
    factory: Optional[OrchestratorFactory] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        orchestrator: Pre-built orchestrator; built lazily from ``profile`` when None
        profile: Configuration profile for the lazily built orchestrator
        factory: Factory used for lazy construction
    """
    app = FastAPI(
        title="Easy Orchestrator API",
        description="Goal planning and execution with LLM, MCP tools and session memory",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.orchestrator = orchestrator
    app.state.profile = profile
    app.state.factory = factory or OrchestratorFactory()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    @app.exception_handler(Exception)
    async def unhandled_error(request, exc: Exception):
        logger.error("api.unhandled_error", path=request.url.path, error=str(exc))
        return error_response(500, str(exc))

    app.include_router(orchestrator_routes.router, tags=["orchestrator"])
    app.include_router(agents.router, tags=["agents"])
    app.include_router(sessions.router, tags=["sessions"])

    return app


def run(host: Optional[str] = None, port: Optional[int] = None, profile: Optional[str] = None) -> None:
    """Serve the API with uvicorn using the profile's server settings."""
    import uvicorn

    factory = OrchestratorFactory()
    settings = factory.server_settings(profile)
    uvicorn.run(
        create_app(profile=profile, factory=factory),
        host=host or os.getenv("HOST") or settings["host"],
        port=port or int(os.getenv("PORT") or settings["port"]),
    )


if __name__ == "__main__":
    run()
