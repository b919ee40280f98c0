"""
Task Execution

This module executes a plan one task at a time, in plan order, choosing a
backend per task:

1. Tool execution when the task names a tool and a ToolInvoker is configured
   (falling back to LLM execution when the tool call fails)
2. LLM execution when a CompletionService is configured
3. Local simulation when neither backend is configured

``execute_plan`` never raises: every failure becomes a failed TaskResult
and execution continues with the next task. Declared task dependencies are
never consulted.
"""

import asyncio
import json
import random
import time
from datetime import datetime
from typing import Any, Awaitable, Callable

import structlog

from easy_orchestrator.core.domain.errors import TaskFailure, ToolCallFailed
from easy_orchestrator.core.domain.models import (
    SIMULATION_TOOL,
    ExecutionMethod,
    GoalContext,
    Task,
    TaskResult,
    TaskStatus,
)
from easy_orchestrator.core.interfaces.llm import CompletionServiceProtocol
from easy_orchestrator.core.interfaces.tools import ToolInvokerProtocol
from easy_orchestrator.core.prompts.pipeline_prompts import (
    EXECUTION_SYSTEM_PROMPT,
    EXECUTION_USER_TEMPLATE,
    NO_RESOURCES_ACCESSED_TEXT,
    PROMPTED_EXECUTION_USER_TEMPLATE,
)

# (keyword in task description, keyword in tool name/description)
TOOL_KEYWORD_RULES: list[tuple[str, str]] = [
    ("data", "data"),
    ("analysis", "analysis"),
    ("report", "report"),
    ("visualization", "chart"),
]

GENERAL_PROMPT_MARKERS = ("general", "default", "analysis", "execution")


def select_tool(task: Task, tools: list[dict[str, Any]]) -> str | None:
    """
    Pick a tool for a task by keyword containment.

    Tools are checked in enumeration order; for each tool the keyword rules
    are checked in order and the first match wins. Without any match the
    first enumerated tool is returned.

    Args:
        task: Task to place
        tools: Tool descriptors (``name``, ``description``)

    Returns:
        Selected tool name, or None when no tools are available
    """
    description = task.description.lower()
    for tool in tools:
        name = (tool.get("name") or "").lower()
        tool_description = (tool.get("description") or "").lower()
        for task_keyword, tool_keyword in TOOL_KEYWORD_RULES:
            if task_keyword in description and (
                tool_keyword in name or tool_keyword in tool_description
            ):
                return tool.get("name")
    return tools[0].get("name") if tools else None


def select_prompt(task: Task, prompts: list[dict[str, Any]]) -> dict[str, Any] | None:
    """
    Pick a server prompt for a task.

    A prompt matches when its name or description contains any task word
    longer than three characters; otherwise the first general-purpose prompt
    (general, default, analysis, execution) is used.
    """
    if not prompts:
        return None

    keywords = [word for word in task.description.lower().split() if len(word) > 3]
    for prompt in prompts:
        text = f"{(prompt.get('name') or '').lower()} {(prompt.get('description') or '').lower()}"
        if any(keyword in text for keyword in keywords):
            return prompt

    for prompt in prompts:
        name = (prompt.get("name") or "").lower()
        if any(marker in name for marker in GENERAL_PROMPT_MARKERS):
            return prompt

    return None


def build_tool_arguments(task: Task, context: GoalContext) -> dict[str, Any]:
    return {
        "task": task.description,
        "context": context.to_dict(),
        "priority": task.priority.value,
        "estimatedDuration": task.estimated_duration,
    }


class SimulationBackend:
    """
    Stand-in execution used when no backend is configured.

    Sleeps a random 50-150 ms and fails 5% of the time. Randomness and
    sleeping are injected so tests can force either branch.

    Args:
        rng: Random source (``random()`` in [0, 1))
        sleep: Async sleep function taking seconds
        failure_rate: Probability of a simulated failure
        min_delay_ms: Lower bound of the simulated delay
        max_delay_ms: Upper bound of the simulated delay
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        failure_rate: float = 0.05,
        min_delay_ms: int = 50,
        max_delay_ms: int = 150,
    ):
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.failure_rate = failure_rate
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms

    async def run(self, task: Task) -> str:
        delay_ms = self.min_delay_ms + self.rng.random() * (self.max_delay_ms - self.min_delay_ms)
        await self.sleep(delay_ms / 1000)

        if self.rng.random() < self.failure_rate:
            raise TaskFailure(f"Simulated failure in task: {task.description}", task_id=task.id)

        return (
            "**Simulation Summary**\n"
            f"**Task**: {task.description}\n"
            "**Status**: Simulated Execution\n"
            "**Result**: Task simulation completed. A configured backend would "
            "execute the actual work here."
        )


class _ToolCatalog:
    """Lazily enumerates tools once per plan execution."""

    def __init__(self, tool_invoker: ToolInvokerProtocol):
        self._tool_invoker = tool_invoker
        self._tools: list[dict[str, Any]] | None = None

    async def tools(self) -> list[dict[str, Any]]:
        if self._tools is None:
            listing = await self._tool_invoker.list_tools()
            self._tools = list((listing or {}).get("tools") or [])
        return self._tools


class TaskExecutor:
    """
    Executes plans task by task with backend fallback.

    Args:
        completion_service: Completion backend, or None
        tool_invoker: Tool backend, or None
        simulation: Simulation backend used when neither is configured
        temperature: Sampling temperature for LLM task execution
        max_tokens: Token ceiling for LLM task execution
        max_resources: Number of discovered resources read per LLM task
    """

    def __init__(
        self,
        completion_service: CompletionServiceProtocol | None = None,
        tool_invoker: ToolInvokerProtocol | None = None,
        simulation: SimulationBackend | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        max_resources: int = 3,
    ):
        self.completion_service = completion_service
        self.tool_invoker = tool_invoker
        self.simulation = simulation or SimulationBackend()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_resources = max_resources
        self.logger = structlog.get_logger().bind(component="task_executor")

    async def execute_plan(self, plan: list[Task], context: GoalContext) -> list[TaskResult]:
        """
        Execute every task of a plan sequentially.

        Args:
            plan: Tasks in execution order
            context: Typed execution context

        Returns:
            One TaskResult per task, in plan order
        """
        catalog = _ToolCatalog(self.tool_invoker) if self.tool_invoker is not None else None
        results: list[TaskResult] = []
        for task in plan:
            results.append(await self.execute_task(task, context, catalog))

        self.logger.info(
            "plan.executed",
            task_count=len(results),
            completed=sum(1 for r in results if r.success),
        )
        return results

    async def execute_task(
        self,
        task: Task,
        context: GoalContext,
        catalog: _ToolCatalog | None = None,
    ) -> TaskResult:
        """Execute one task; failures are returned as a failed TaskResult."""
        start = time.perf_counter()
        method = ExecutionMethod.SIMULATION

        try:
            if task.preferred_tool != SIMULATION_TOOL and self.tool_invoker is not None:
                method = ExecutionMethod.MCP
                try:
                    output = await self._execute_with_tool(
                        task, context, catalog or _ToolCatalog(self.tool_invoker)
                    )
                except Exception as tool_error:
                    if self.completion_service is None:
                        raise
                    self.logger.warning(
                        "task.tool_failed_fallback_llm",
                        task_id=task.id,
                        preferred_tool=task.preferred_tool,
                        error=str(tool_error),
                    )
                    method = ExecutionMethod.LLM
                    output = await self._execute_with_llm(task, context)
            elif self.completion_service is not None:
                method = ExecutionMethod.LLM
                output = await self._execute_with_llm(task, context)
            else:
                output = await self.simulation.run(task)

        except Exception as e:
            task.status = TaskStatus.FAILED
            self.logger.error(
                "task.failed",
                task_id=task.id,
                description=task.description[:80],
                method=method.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TaskResult(
                task_id=task.id,
                description=task.description,
                success=False,
                error=str(e),
                duration=self._elapsed_ms(start),
                executed_at=datetime.now(),
                method=method,
            )

        task.status = TaskStatus.COMPLETED
        self.logger.info(
            "task.completed",
            task_id=task.id,
            description=task.description[:80],
            method=method.value,
        )
        return TaskResult(
            task_id=task.id,
            description=task.description,
            success=True,
            result=output,
            duration=self._elapsed_ms(start),
            executed_at=datetime.now(),
            method=method,
        )

    async def _execute_with_tool(
        self, task: Task, context: GoalContext, catalog: _ToolCatalog
    ) -> str:
        tools = await catalog.tools()
        if not tools:
            raise ToolCallFailed("No suitable tool found")

        tool_name = None
        available = [tool.get("name") for tool in tools]
        if task.preferred_tool in available:
            tool_name = task.preferred_tool
        else:
            self.logger.warning(
                "task.preferred_tool_unavailable",
                task_id=task.id,
                preferred_tool=task.preferred_tool,
                available_tools=available,
            )
            tool_name = select_tool(task, tools)

        if not tool_name:
            raise ToolCallFailed("No suitable tool found")

        result = await self.tool_invoker.call_tool(tool_name, build_tool_arguments(task, context))
        return (
            "**Tool Execution Summary**\n"
            f"**Tool**: {tool_name}\n"
            "**Status**: Successfully Executed\n"
            f"**Output**: {json.dumps(result, indent=2, default=str)}"
        )

    async def _execute_with_llm(self, task: Task, context: GoalContext) -> str:
        prompt = select_prompt(task, context.available_prompts)
        resources = await self._read_resources(context)

        context_json = json.dumps(context.to_dict(), indent=2, default=str)
        resources_text = (
            json.dumps(resources, indent=2, default=str) if resources else NO_RESOURCES_ACCESSED_TEXT
        )

        if prompt:
            self.logger.info("task.prompt_selected", task_id=task.id, prompt=prompt.get("name"))
            system_prompt = prompt.get("prompt") or prompt.get("description") or EXECUTION_SYSTEM_PROMPT
            user_message = PROMPTED_EXECUTION_USER_TEMPLATE.format(
                task=task.description,
                context=context_json,
                prompt_name=prompt.get("name"),
                resources=resources_text,
            )
        else:
            system_prompt = EXECUTION_SYSTEM_PROMPT
            user_message = EXECUTION_USER_TEMPLATE.format(
                task=task.description,
                context=context_json,
                resources=resources_text,
            )

        response = await self.completion_service.generate_response(
            system_prompt,
            user_message,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.content

    async def _read_resources(self, context: GoalContext) -> dict[str, Any]:
        if self.tool_invoker is None or not context.available_resources:
            return {}

        contents: dict[str, Any] = {}
        for resource in context.available_resources[: self.max_resources]:
            name = resource.get("name")
            if not name:
                continue
            try:
                data = await self.tool_invoker.read_resource(name)
            except Exception as e:
                self.logger.warning("resource.read_failed", resource=name, error=str(e))
                continue
            if data is not None:
                contents[name] = data
        return contents

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
