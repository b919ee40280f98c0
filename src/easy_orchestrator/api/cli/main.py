"""Easy Orchestrator CLI entry point."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from easy_orchestrator.api.cli.commands import run, sessions
from easy_orchestrator.application.factory import OrchestratorFactory
from easy_orchestrator.infrastructure.log_setup import configure_logging

app = typer.Typer(
    name="easy-orchestrator",
    help="Easy Orchestrator - plan and execute goals with LLMs and MCP tools",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

# Register command groups
app.command("run")(run.run_goal)
app.add_typer(sessions.app, name="sessions", help="Session management")


@app.callback()
def main(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Configuration profile"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """Easy Orchestrator CLI."""
    # Store global options in context for subcommands
    ctx.obj = {"profile": profile, "verbose": verbose}
    if verbose:
        configure_logging("DEBUG")
    else:
        configure_logging(*OrchestratorFactory().profile_logging_settings(profile))


@app.command()
def status(ctx: typer.Context):
    """Show orchestrator status and configured backends."""
    orchestrator = asyncio.run(OrchestratorFactory().create_orchestrator(ctx.obj.get("profile")))
    info = orchestrator.get_status()

    console.print(f"[bold]Status:[/bold] {info['status']}")
    console.print(f"[bold]Capabilities:[/bold] {', '.join(info['capabilities'])}")
    backends = orchestrator.get_agent_state("executor")["backends"]
    for name, configured in backends.items():
        marker = "[green]configured[/green]" if configured else "[yellow]not configured[/yellow]"
        console.print(f"  {name}: {marker}")


@app.command()
def agents(ctx: typer.Context):
    """List agents and their capabilities."""
    orchestrator = asyncio.run(OrchestratorFactory().create_orchestrator(ctx.obj.get("profile")))

    table = Table(title="Agents")
    table.add_column("Name", style="cyan")
    table.add_column("Status", style="white")
    table.add_column("Capabilities", style="magenta")

    for name in orchestrator.get_status()["agents"]:
        state = orchestrator.get_agent_state(name) or {}
        table.add_row(name, state.get("status", "unknown"), ", ".join(state.get("capabilities", [])))

    console.print(table)


@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Port"),
):
    """Serve the HTTP API with uvicorn."""
    from easy_orchestrator.api.server import run as run_server

    run_server(host=host, port=port, profile=ctx.obj.get("profile"))


@app.command()
def version():
    """Show Easy Orchestrator version."""
    from easy_orchestrator import __version__

    console.print(f"[bold blue]Easy Orchestrator[/bold blue] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
