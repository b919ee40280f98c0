"""
Core Agent Domain Logic

The Agent binds a PlanGenerator, a TaskExecutor and an optional SessionStore
to a role (planner or executor) and exposes one ``execute(goal, context)``
operation:

1. Resolve the session id (from context, or minted from the current time)
2. Load previous conversation and recent goal history (best effort)
3. Reuse the plan handed in through the context, or generate one
4. Execute the plan (executor role only)
5. Persist goal, conversation entry, task results and agent state (best effort)

Planning errors short-circuit into a failed ExecutionOutcome; the agent
itself never raises to its caller.
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Mapping

import structlog

from easy_orchestrator.core.domain.errors import error_kind_of
from easy_orchestrator.core.domain.models import (
    AgentRole,
    ExecutionMetadata,
    ExecutionOutcome,
    GoalContext,
    Task,
    TaskResult,
)
from easy_orchestrator.core.domain.planner import PlanGenerator
from easy_orchestrator.core.domain.task_executor import TaskExecutor
from easy_orchestrator.core.interfaces.session import SessionStoreProtocol
from easy_orchestrator.core.interfaces.tools import ToolInvokerProtocol

GOAL_HISTORY_LIMIT = 5

DEFAULT_CAPABILITIES: dict[AgentRole, list[str]] = {
    AgentRole.PLANNER: ["planning", "task_decomposition", "strategy_development"],
    AgentRole.EXECUTOR: ["execution", "task_execution", "implementation"],
}


def mint_session_id() -> str:
    """Time-based session id, e.g. ``session_1718000000000``."""
    return f"session_{int(time.time() * 1000)}"


class Agent:
    """
    Role-bound planning/execution agent with session memory.

    All collaborators are injected; the agent holds no per-call state, so one
    instance can serve concurrent goals.
    """

    def __init__(
        self,
        role: AgentRole,
        plan_generator: PlanGenerator,
        task_executor: TaskExecutor,
        session_store: SessionStoreProtocol | None = None,
        tool_invoker: ToolInvokerProtocol | None = None,
        capabilities: list[str] | None = None,
    ):
        """
        Initialize Agent with injected dependencies.

        Args:
            role: planner or executor
            plan_generator: Plan generation component
            task_executor: Task execution component
            session_store: Optional session persistence
            tool_invoker: Tool server used for capability discovery
                (defaults to the executor's tool invoker)
            capabilities: Capability labels reported by ``get_status``
        """
        self.role = AgentRole(role)
        self.plan_generator = plan_generator
        self.task_executor = task_executor
        self.session_store = session_store
        self.tool_invoker = tool_invoker if tool_invoker is not None else task_executor.tool_invoker
        self.capabilities = list(capabilities or DEFAULT_CAPABILITIES[self.role])
        self.logger = structlog.get_logger().bind(component="agent", agent=self.name)

    @property
    def name(self) -> str:
        return self.role.value

    async def execute(
        self,
        goal: str,
        context: GoalContext | Mapping[str, Any] | None = None,
    ) -> ExecutionOutcome:
        """
        Plan (and, for the executor role, execute) a goal.

        Args:
            goal: Natural-language objective
            context: Typed context or plain mapping; ``plan`` skips planning

        Returns:
            ExecutionOutcome; ``success=False`` when planning failed
        """
        context = GoalContext.from_mapping(context)
        session_id = context.session_id or mint_session_id()
        start = time.perf_counter()

        self.logger.info("agent.execute_start", goal=goal[:100], session_id=session_id)

        previous_conversation = await self._load_conversation(session_id)
        goal_history = await self._load_goal_history(session_id)
        enhanced = context.with_updates(
            session_id=session_id,
            previous_conversation=previous_conversation,
            goal_history=goal_history,
        )

        try:
            plan = await self._resolve_plan(goal, enhanced)
            results: list[TaskResult] = []
            if self.role is AgentRole.EXECUTOR:
                results = await self.task_executor.execute_plan(plan, enhanced.with_updates(plan=plan))
        except Exception as e:
            elapsed = self._elapsed_ms(start)
            self.logger.error(
                "agent.execute_failed",
                session_id=session_id,
                error=str(e),
                error_type=type(e).__name__,
                execution_time=elapsed,
            )
            return ExecutionOutcome(
                success=False,
                goal=goal,
                error=str(e),
                error_kind=error_kind_of(e),
                metadata=ExecutionMetadata(
                    agent=self.name,
                    session_id=session_id,
                    failed_at=datetime.now(),
                    execution_time=elapsed,
                ),
            )

        outcome = ExecutionOutcome(
            success=True,
            goal=goal,
            plan=plan,
            results=results,
            metadata=ExecutionMetadata(
                agent=self.name,
                session_id=session_id,
                executed_at=datetime.now(),
                task_count=len(plan),
                completed_tasks=sum(1 for r in results if r.success),
                execution_time=self._elapsed_ms(start),
            ),
        )

        self.logger.info(
            "agent.execute_completed",
            session_id=session_id,
            task_count=outcome.metadata.task_count,
            completed_tasks=outcome.metadata.completed_tasks,
            execution_time=outcome.metadata.execution_time,
        )

        await self._store_execution(session_id, goal, context, outcome)
        return outcome

    async def _resolve_plan(self, goal: str, context: GoalContext) -> list[Task]:
        if context.plan is not None:
            self.logger.info("agent.plan_reused", task_count=len(context.plan))
            return context.plan
        plan = await self.plan_generator.generate_plan(goal, context)
        self.logger.info("agent.plan_created", task_count=len(plan))
        return plan

    # ===== Capability discovery =====

    async def discover_tools(self) -> list[dict[str, Any]]:
        return await self._discover("tools")

    async def discover_prompts(self) -> list[dict[str, Any]]:
        return await self._discover("prompts")

    async def discover_resources(self) -> list[dict[str, Any]]:
        return await self._discover("resources")

    async def discover_capabilities(self) -> dict[str, Any]:
        """Discover tools, prompts and resources concurrently."""
        tools, prompts, resources = await asyncio.gather(
            self.discover_tools(),
            self.discover_prompts(),
            self.discover_resources(),
        )
        summary = {
            "tools_count": len(tools),
            "prompts_count": len(prompts),
            "resources_count": len(resources),
        }
        self.logger.info("capabilities.discovered", **summary)
        return {"tools": tools, "prompts": prompts, "resources": resources, "summary": summary}

    async def _discover(self, kind: str) -> list[dict[str, Any]]:
        if self.tool_invoker is None:
            self.logger.warning("capabilities.unavailable", kind=kind)
            return []

        fetch = {
            "tools": self.tool_invoker.list_tools,
            "prompts": self.tool_invoker.list_prompts,
            "resources": self.tool_invoker.list_resources,
        }[kind]

        try:
            listing = await fetch()
        except Exception as e:
            self.logger.error("capabilities.discovery_failed", kind=kind, error=str(e))
            return []

        items = list((listing or {}).get(kind) or [])
        self.logger.info("capabilities.found", kind=kind, count=len(items))
        return items

    # ===== Session memory =====

    async def _load_conversation(self, session_id: str) -> list[dict[str, Any]] | None:
        if self.session_store is None:
            return None
        try:
            return await self.session_store.get_conversation(session_id)
        except Exception as e:
            self.logger.warning("memory.conversation_load_failed", session_id=session_id, error=str(e))
            return None

    async def _load_goal_history(self, session_id: str) -> list[dict[str, Any]]:
        if self.session_store is None:
            return []
        try:
            return await self.session_store.get_goal_history(session_id, GOAL_HISTORY_LIMIT) or []
        except Exception as e:
            self.logger.warning("memory.goal_history_load_failed", session_id=session_id, error=str(e))
            return []

    async def _store_execution(
        self,
        session_id: str,
        goal: str,
        context: GoalContext,
        outcome: ExecutionOutcome,
    ) -> None:
        if self.session_store is None:
            return

        try:
            await self.session_store.store_goal(session_id, goal, context.to_dict(), outcome.to_dict())

            conversation = await self.session_store.get_conversation(session_id) or []
            conversation.append(
                {
                    "timestamp": datetime.now().isoformat(),
                    "goal": goal,
                    "success": outcome.success,
                    "task_count": outcome.metadata.task_count,
                    "completed_tasks": outcome.metadata.completed_tasks,
                }
            )
            await self.session_store.store_conversation(session_id, conversation)

            for result in outcome.results:
                await self.session_store.store_task_result(session_id, result.task_id, result.to_dict())

            await self.session_store.store_agent_state(
                self.name,
                {
                    "status": "ready",
                    "last_goal": goal,
                    "last_session_id": session_id,
                    "last_run_at": datetime.now().isoformat(),
                },
            )
        except Exception as e:
            self.logger.warning("memory.store_failed", session_id=session_id, error=str(e))

    async def clear_session(self, session_id: str) -> bool:
        """Delete conversation, goal and task-result keys of a session."""
        if self.session_store is None:
            return False
        try:
            return await self.session_store.clear_session(session_id)
        except Exception as e:
            self.logger.warning("memory.clear_failed", session_id=session_id, error=str(e))
            return False

    def get_status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": "ready",
            "capabilities": list(self.capabilities),
            "backends": {
                "completion": self.plan_generator.completion_service is not None,
                "tools": self.tool_invoker is not None,
                "session_store": self.session_store is not None,
            },
        }

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
