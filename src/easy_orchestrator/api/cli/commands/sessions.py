"""Sessions command - Manage session memory."""

import asyncio
from typing import Optional

import typer
from rich.console import Console

from easy_orchestrator.application.factory import OrchestratorFactory

app = typer.Typer(help="Session management")
console = Console()


async def _clear(profile: Optional[str], session_id: str) -> bool:
    orchestrator = await OrchestratorFactory().create_orchestrator(profile)
    cleared = await orchestrator.clear_session(session_id)
    disconnect = getattr(orchestrator.registry.executor.session_store, "disconnect", None)
    if disconnect is not None:
        await disconnect()
    return cleared


@app.command("clear")
def clear_session(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),
):
    """Delete conversation, goal history and task results of a session."""
    profile = (ctx.obj or {}).get("profile")

    if asyncio.run(_clear(profile, session_id)):
        console.print(f"[green]Session '{session_id}' cleared[/green]")
    else:
        console.print(f"[red]Session '{session_id}' could not be cleared (no session store)[/red]")
        raise typer.Exit(1)
