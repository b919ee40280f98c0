"""
Core Domain Models

This module defines the data models shared by the goal-execution pipeline:
tasks and plans produced by planning, task results produced by execution,
the per-agent execution outcome, the coordination report, and the final
goal result returned by the orchestrator.

All models serialize to JSON-friendly dicts via ``to_dict()``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from easy_orchestrator.core.domain.errors import MalformedResponseError

SIMULATION_TOOL = "simulation"


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutionMethod(str, Enum):
    """Backend that actually executed a task."""

    MCP = "mcp"
    LLM = "llm"
    SIMULATION = "simulation"


class AgentRole(str, Enum):
    PLANNER = "planner"
    EXECUTOR = "executor"


def parse_priority(value: Any) -> TaskPriority:
    """Parse a priority string, falling back to MEDIUM for unknown values."""
    text = str(value or "").strip().lower()
    try:
        return TaskPriority(text)
    except ValueError:
        return TaskPriority.MEDIUM


def parse_status(value: Any) -> TaskStatus:
    text = str(value or "").strip().lower()
    try:
        return TaskStatus(text)
    except ValueError:
        return TaskStatus.PENDING


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class Task:
    """
    One unit of planned work.

    Attributes:
        id: Identifier, unique within its plan
        description: What the task must accomplish
        priority: high, medium or low
        dependencies: Ids of tasks this one depends on (informational only,
            execution always follows plan order)
        estimated_duration: Estimated effort in minutes
        preferred_tool: Tool name, or "simulation" when no tool is wanted
        status: pending until executed, then completed or failed
    """

    id: str
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    dependencies: list[str] = field(default_factory=list)
    estimated_duration: int = 30
    preferred_tool: str = SIMULATION_TOOL
    status: TaskStatus = TaskStatus.PENDING

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: int) -> Task:
        """Build a Task from a raw mapping, applying per-field defaults.

        Accepts both the camelCase wire names used in planning responses
        (``estimatedDuration``, ``preferredTool``) and snake_case names.

        Args:
            data: Raw task mapping
            index: 1-based position of the task in its plan

        Returns:
            Task with defaults applied
        """
        dependencies = data.get("dependencies") or []
        if not isinstance(dependencies, (list, tuple)):
            dependencies = [dependencies]

        duration = data.get("estimatedDuration", data.get("estimated_duration"))
        try:
            estimated_duration = 30 if duration is None else int(duration)
        except (TypeError, ValueError):
            estimated_duration = 30

        preferred_tool = data.get("preferredTool", data.get("preferred_tool"))

        return cls(
            id=str(data.get("id") or f"task_{index}"),
            description=str(data.get("description") or f"Task {index}"),
            priority=parse_priority(data.get("priority")),
            dependencies=[str(dep) for dep in dependencies],
            estimated_duration=estimated_duration,
            preferred_tool=str(preferred_tool or SIMULATION_TOOL),
            status=parse_status(data.get("status")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "priority": self.priority.value,
            "dependencies": list(self.dependencies),
            "estimated_duration": self.estimated_duration,
            "preferred_tool": self.preferred_tool,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class TaskResult:
    """
    Outcome of executing a single task.

    Attributes:
        task_id: Id of the executed task
        description: Task description, copied for reporting
        success: Whether the task completed
        duration: Wall-clock duration in milliseconds
        executed_at: When execution finished
        method: Backend that actually ran the task (mcp, llm, simulation)
        result: Output text on success
        error: Error message on failure
    """

    task_id: str
    description: str
    success: bool
    duration: int
    executed_at: datetime
    method: ExecutionMethod
    result: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "task_id": self.task_id,
            "description": self.description,
            "success": self.success,
            "duration": self.duration,
            "executed_at": _isoformat(self.executed_at),
            "method": self.method.value,
        }
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error
        return data


@dataclass
class GoalContext:
    """
    Typed execution context passed through the pipeline.

    The fields the pipeline reads itself are typed; anything else the caller
    supplies is carried untouched in ``extra`` and merged back on
    serialization.

    Attributes:
        session_id: Session identifier for memory continuity
        available_tools: Tools discovered on the tool server
        available_prompts: Prompts discovered on the tool server
        available_resources: Resources discovered on the tool server
        plan: Plan handed from the planner to the executor
        previous_conversation: Conversation log loaded from the session store
        goal_history: Recent goal records loaded from the session store
        extra: Caller-supplied opaque data
    """

    session_id: str | None = None
    available_tools: list[dict[str, Any]] = field(default_factory=list)
    available_prompts: list[dict[str, Any]] = field(default_factory=list)
    available_resources: list[dict[str, Any]] = field(default_factory=list)
    plan: list[Task] | None = None
    previous_conversation: list[dict[str, Any]] | None = None
    goal_history: list[dict[str, Any]] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    _ALIASES = {
        "sessionId": "session_id",
        "session_id": "session_id",
        "availableTools": "available_tools",
        "available_tools": "available_tools",
        "availablePrompts": "available_prompts",
        "available_prompts": "available_prompts",
        "availableResources": "available_resources",
        "available_resources": "available_resources",
        "plan": "plan",
        "previousConversation": "previous_conversation",
        "previous_conversation": "previous_conversation",
        "goalHistory": "goal_history",
        "goal_history": "goal_history",
    }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | GoalContext | None) -> GoalContext:
        """Build a context from a plain mapping; unknown keys go to ``extra``."""
        if isinstance(data, GoalContext):
            return data
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in (data or {}).items():
            target = cls._ALIASES.get(key)
            if target is None:
                extra[key] = value
            else:
                known[target] = value

        plan = known.get("plan")
        if plan is not None:
            if not isinstance(plan, (list, tuple)):
                raise MalformedResponseError(
                    f"Context plan must be a list of tasks, got {type(plan).__name__}"
                )
            tasks = []
            for index, item in enumerate(plan, start=1):
                if isinstance(item, Task):
                    tasks.append(item)
                elif isinstance(item, Mapping):
                    tasks.append(Task.from_dict(item, index))
                else:
                    raise MalformedResponseError(
                        f"Context plan item {index} must be an object, got {type(item).__name__}"
                    )
            known["plan"] = tasks
        for list_field in ("available_tools", "available_prompts", "available_resources", "goal_history"):
            if known.get(list_field) is None:
                known.pop(list_field, None)

        return cls(extra=extra, **known)

    def with_updates(self, **changes: Any) -> GoalContext:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        if self.session_id:
            data["session_id"] = self.session_id
        if self.available_tools:
            data["available_tools"] = self.available_tools
        if self.available_prompts:
            data["available_prompts"] = self.available_prompts
        if self.available_resources:
            data["available_resources"] = self.available_resources
        if self.plan is not None:
            data["plan"] = [task.to_dict() for task in self.plan]
        if self.previous_conversation is not None:
            data["previous_conversation"] = self.previous_conversation
        if self.goal_history:
            data["goal_history"] = self.goal_history
        return data


@dataclass
class ExecutionMetadata:
    agent: str
    session_id: str
    execution_time: int
    task_count: int = 0
    completed_tasks: int = 0
    executed_at: datetime | None = None
    failed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "agent": self.agent,
            "session_id": self.session_id,
            "task_count": self.task_count,
            "completed_tasks": self.completed_tasks,
            "execution_time": self.execution_time,
        }
        if self.executed_at:
            data["executed_at"] = _isoformat(self.executed_at)
        if self.failed_at:
            data["failed_at"] = _isoformat(self.failed_at)
        return data


@dataclass
class ExecutionOutcome:
    """
    Result of one ``Agent.execute`` call.

    On failure ``plan`` and ``results`` are empty and ``error``/``error_kind``
    describe the root cause.
    """

    success: bool
    goal: str
    metadata: ExecutionMetadata
    plan: list[Task] = field(default_factory=list)
    results: list[TaskResult] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None

    @property
    def completed_tasks(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_tasks(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "goal": self.goal,
            "metadata": self.metadata.to_dict(),
        }
        if self.success:
            data["plan"] = [task.to_dict() for task in self.plan]
            data["results"] = [result.to_dict() for result in self.results]
        else:
            data["error"] = self.error
            data["error_kind"] = self.error_kind
        return data


# ===== Coordination =====


@dataclass(frozen=True)
class PlanningQuality:
    score: str
    task_count: int
    avg_task_length: int
    details: str

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class ExecutionEfficiency:
    score: str
    success_rate: int
    avg_duration: int
    details: str

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class Alignment:
    score: str
    alignment: int
    details: str

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class Recommendation:
    type: str
    priority: str
    message: str
    affected_tasks: list[str] | None = None
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "priority": self.priority, "message": self.message}
        if self.affected_tasks is not None:
            data["affected_tasks"] = list(self.affected_tasks)
        if self.suggestion is not None:
            data["suggestion"] = self.suggestion
        return data


@dataclass(frozen=True)
class CoordinationReport:
    planning_quality: PlanningQuality
    execution_efficiency: ExecutionEfficiency
    overall_alignment: Alignment
    recommendations: list[Recommendation]

    def to_dict(self) -> dict[str, Any]:
        return {
            "planning_quality": self.planning_quality.to_dict(),
            "execution_efficiency": self.execution_efficiency.to_dict(),
            "overall_alignment": self.overall_alignment.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


@dataclass(frozen=True)
class ReportSummary:
    goal: str
    status: str
    total_tasks: int
    completed_tasks: int
    failed_tasks: int
    success_rate: int

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class GoalReport:
    summary: ReportSummary
    planning: PlanningQuality
    execution: ExecutionEfficiency
    alignment: Alignment
    recommendations: list[Recommendation]
    insights: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "quality": {
                "planning": self.planning.to_dict(),
                "execution": self.execution.to_dict(),
                "alignment": self.alignment.to_dict(),
            },
            "recommendations": [r.to_dict() for r in self.recommendations],
            "insights": list(self.insights),
        }


@dataclass
class GoalResult:
    """
    Final payload returned by ``Orchestrator.execute_goal``.

    Failures never raise: they come back with ``success=False``, the error
    message, and ``error_kind``/``error_type`` in ``metadata``.
    """

    success: bool
    goal: str
    metadata: dict[str, Any]
    plan: list[Task] = field(default_factory=list)
    execution_results: list[TaskResult] = field(default_factory=list)
    coordination: CoordinationReport | None = None
    report: GoalReport | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        metadata = {
            key: _isoformat(value) if isinstance(value, datetime) else value
            for key, value in self.metadata.items()
        }
        if not self.success:
            return {"success": False, "goal": self.goal, "error": self.error, "metadata": metadata}
        return {
            "success": True,
            "goal": self.goal,
            "plan": [task.to_dict() for task in self.plan],
            "execution_results": [result.to_dict() for result in self.execution_results],
            "coordination": self.coordination.to_dict() if self.coordination else None,
            "report": self.report.to_dict() if self.report else None,
            "metadata": metadata,
        }
