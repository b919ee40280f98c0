"""Run command - Execute a goal."""

import asyncio
import json
from typing import Any, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from easy_orchestrator.application.factory import OrchestratorFactory
from easy_orchestrator.core.domain.models import GoalResult

console = Console()


async def _execute(profile: Optional[str], goal: str, context: dict[str, Any]) -> GoalResult:
    orchestrator = await OrchestratorFactory().create_orchestrator(profile)
    try:
        return await orchestrator.execute_goal(goal, context)
    finally:
        disconnect = getattr(orchestrator.registry.executor.session_store, "disconnect", None)
        if disconnect is not None:
            await disconnect()


def _print_result(result: GoalResult) -> None:
    table = Table(title="Execution Results")
    table.add_column("Task", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Method", style="magenta")
    table.add_column("Status")
    table.add_column("Duration", justify="right")

    for task_result in result.execution_results:
        status = "[green]completed[/green]" if task_result.success else "[red]failed[/red]"
        table.add_row(
            task_result.task_id,
            task_result.description,
            task_result.method.value,
            status,
            f"{task_result.duration} ms",
        )
    console.print(table)

    if result.report:
        for insight in result.report.insights:
            console.print(f"  [dim]-[/dim] {insight}")
        for recommendation in result.report.recommendations:
            console.print(f"  [yellow]\\[{recommendation.priority}][/yellow] {recommendation.message}")


def run_goal(
    ctx: typer.Context,
    goal: str = typer.Argument(..., help="Goal description"),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Context as a JSON object"),
    session_id: Optional[str] = typer.Option(None, "--session", "-s", help="Continue an existing session"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
):
    """Execute a goal: plan, execute, and report.

    Examples:
        easy-orchestrator run "Create a sales report for Q3"

        easy-orchestrator run "Analyze feedback" --context '{"region": "EMEA"}' --session abc-123
    """
    global_opts = ctx.obj or {}

    try:
        goal_context = json.loads(context) if context else {}
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid --context JSON: {e.msg}[/red]")
        raise typer.Exit(2)
    if not isinstance(goal_context, dict):
        console.print("[red]--context must be a JSON object[/red]")
        raise typer.Exit(2)
    if session_id:
        goal_context["session_id"] = session_id

    if as_json:
        result = asyncio.run(_execute(global_opts.get("profile"), goal, goal_context))
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("[>] Executing goal...", total=None)
            result = asyncio.run(_execute(global_opts.get("profile"), goal, goal_context))

    if as_json:
        console.print_json(data=result.to_dict())
    elif result.success:
        console.print(f"[bold green]Goal completed[/bold green] (session {result.metadata['session_id']})")
        console.print(
            f"{result.metadata['completed_tasks']}/{result.metadata['total_tasks']} tasks completed "
            f"in {result.metadata['execution_time']} ms"
        )
        _print_result(result)
    else:
        console.print(f"[bold red]Goal failed:[/bold red] {result.error}")
        console.print(f"[dim]{result.metadata.get('error_kind')} ({result.metadata.get('error_type')})[/dim]")

    if not result.success:
        raise typer.Exit(1)
