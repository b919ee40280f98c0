"""
Result Coordination

Pure functions that score a completed plan and its execution results:
planning quality, execution efficiency, plan/execution alignment,
recommendations and the final goal report. Nothing here performs I/O.
"""

import math

from easy_orchestrator.core.domain.models import (
    Alignment,
    CoordinationReport,
    ExecutionEfficiency,
    GoalReport,
    PlanningQuality,
    Recommendation,
    ReportSummary,
    Task,
    TaskResult,
)

SLOW_TASK_MS = 1000
MANY_TASKS = 6


def js_round(value: float) -> int:
    """Round half up (2.5 -> 3, -2.5 -> -2), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def _ratio(part: int, whole: int) -> float:
    return part / whole if whole else 0.0


def _rate_label(ratio: float) -> str:
    if ratio < 0.8:
        return "poor"
    if ratio < 0.9:
        return "good"
    if ratio < 0.95:
        return "very good"
    return "excellent"


def assess_planning_quality(plan: list[Task]) -> PlanningQuality:
    """
    Score a plan by its size and description length.

    Fewer than 3 tasks is "poor", more than 8 "complex", an average
    description shorter than 20 characters "basic", otherwise "good".
    """
    task_count = len(plan)
    avg_length = _ratio(sum(len(task.description) for task in plan), task_count)

    if task_count < 3:
        quality = "poor"
    elif task_count > 8:
        quality = "complex"
    elif avg_length < 20:
        quality = "basic"
    else:
        quality = "good"

    rounded = js_round(avg_length)
    return PlanningQuality(
        score=quality,
        task_count=task_count,
        avg_task_length=rounded,
        details=f"Planning quality: {quality} ({task_count} tasks, avg length: {rounded} chars)",
    )


def assess_execution_efficiency(results: list[TaskResult]) -> ExecutionEfficiency:
    total = len(results)
    efficiency = _ratio(sum(1 for r in results if r.success), total)
    avg_duration = js_round(_ratio(sum(r.duration for r in results), total))
    rating = _rate_label(efficiency)
    success_rate = js_round(efficiency * 100)

    return ExecutionEfficiency(
        score=rating,
        success_rate=success_rate,
        avg_duration=avg_duration,
        details=(
            f"Execution efficiency: {rating} ({success_rate}% success, "
            f"avg duration: {avg_duration}ms)"
        ),
    )


def assess_alignment(plan: list[Task], results: list[TaskResult]) -> Alignment:
    alignment = _ratio(len(results), len(plan))
    rating = _rate_label(alignment)
    percent = js_round(alignment * 100)

    return Alignment(
        score=rating,
        alignment=percent,
        details=f"Plan-execution alignment: {rating} ({percent}% of planned tasks executed)",
    )


def generate_recommendations(plan: list[Task], results: list[TaskResult]) -> list[Recommendation]:
    """
    Derive improvement hints from failed tasks, slow tasks and plan size.

    Returns:
        Recommendations ordered error_handling, performance, planning
    """
    recommendations: list[Recommendation] = []

    failed = [r.task_id for r in results if not r.success]
    if failed:
        recommendations.append(
            Recommendation(
                type="error_handling",
                priority="high",
                message=f"{len(failed)} tasks failed. Consider improving error handling and retry logic.",
                affected_tasks=failed,
            )
        )

    slow = [r.task_id for r in results if r.duration > SLOW_TASK_MS]
    if slow:
        recommendations.append(
            Recommendation(
                type="performance",
                priority="medium",
                message=f"{len(slow)} tasks took longer than 1 second. Consider optimization.",
                affected_tasks=slow,
            )
        )

    if len(plan) > MANY_TASKS:
        recommendations.append(
            Recommendation(
                type="planning",
                priority="low",
                message="Plan has many tasks. Consider breaking down into smaller, more manageable chunks.",
                suggestion="Split complex goals into multiple sub-goals",
            )
        )

    return recommendations


def coordinate(plan: list[Task], results: list[TaskResult]) -> CoordinationReport:
    return CoordinationReport(
        planning_quality=assess_planning_quality(plan),
        execution_efficiency=assess_execution_efficiency(results),
        overall_alignment=assess_alignment(plan, results),
        recommendations=generate_recommendations(plan, results),
    )


def generate_report(
    goal: str,
    plan: list[Task],
    results: list[TaskResult],
    coordination: CoordinationReport,
) -> GoalReport:
    completed = sum(1 for r in results if r.success)
    summary = ReportSummary(
        goal=goal,
        status="completed",
        total_tasks=len(plan),
        completed_tasks=completed,
        failed_tasks=len(results) - completed,
        success_rate=js_round(_ratio(completed, len(results)) * 100),
    )

    return GoalReport(
        summary=summary,
        planning=coordination.planning_quality,
        execution=coordination.execution_efficiency,
        alignment=coordination.overall_alignment,
        recommendations=list(coordination.recommendations),
        insights=[
            f'Goal "{goal}" was processed through {len(plan)} planned tasks',
            f"Execution completed with {coordination.execution_efficiency.success_rate}% success rate",
            f"Overall system performance: {coordination.overall_alignment.score}",
        ],
    )
