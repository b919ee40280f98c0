"""
Goal Orchestration

The Orchestrator owns a fixed AgentRegistry (one planner, one executor) and
runs one goal through the pipeline:

Phase 1: Discovery & Planning - the planner discovers tools, prompts and
         resources, then builds the plan
Phase 2: Execution - the executor runs the planner's plan
Phase 3: Coordination - ResultCoordinator scores the run and builds the report

``execute_goal`` never raises: any failure is returned as a GoalResult with
``success=False`` and the root cause's category in ``metadata.error_kind``.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

import structlog

from easy_orchestrator.core.domain import coordinator
from easy_orchestrator.core.domain.agent import Agent, mint_session_id
from easy_orchestrator.core.domain.errors import PipelineFailure, error_kind_of
from easy_orchestrator.core.domain.models import AgentRole, GoalContext, GoalResult

ORCHESTRATOR_CAPABILITIES = ["planning", "execution", "coordination", "validation"]


def _session_id_of(context: GoalContext | Mapping[str, Any] | None) -> str | None:
    if isinstance(context, GoalContext):
        return context.session_id
    if isinstance(context, Mapping):
        return context.get("session_id") or context.get("sessionId")
    return None


@dataclass
class AgentRegistry:
    """Fixed set of agents, built once and reused across goals."""

    planner: Agent
    executor: Agent

    def get(self, role: AgentRole | str) -> Agent | None:
        try:
            role = AgentRole(role)
        except ValueError:
            return None
        return self.planner if role is AgentRole.PLANNER else self.executor

    def roles(self) -> list[str]:
        return [AgentRole.PLANNER.value, AgentRole.EXECUTOR.value]


class Orchestrator:
    """
    Runs goals through planning, execution and coordination.

    Concurrent ``execute_goal`` calls are safe: agents hold only wiring and
    every plan, result list and context is local to one call.
    """

    def __init__(self, registry: AgentRegistry):
        self.registry = registry
        self.logger = structlog.get_logger().bind(component="orchestrator")
        self.logger.info("orchestrator.initialized", agents=registry.roles())

    async def execute_goal(
        self,
        goal: str,
        context: GoalContext | Mapping[str, Any] | None = None,
    ) -> GoalResult:
        """
        Execute a goal end to end.

        Args:
            goal: Natural-language objective
            context: Caller context (``session_id`` plus opaque extra data)

        Returns:
            GoalResult with plan, results, coordination and report, or a
            failure result carrying the error and its category
        """
        session_id = _session_id_of(context) or mint_session_id()
        start = time.perf_counter()

        self.logger.info("goal.started", goal=goal[:100], session_id=session_id)

        try:
            context = GoalContext.from_mapping(context).with_updates(session_id=session_id)
            self.logger.info("goal.phase", phase="discovery_planning")
            planner = self.registry.planner
            capabilities = await planner.discover_capabilities()
            self.logger.info("goal.tools_discovered", tool_count=len(capabilities["tools"]))

            plan_outcome = await planner.execute(
                goal,
                context.with_updates(
                    available_tools=capabilities["tools"],
                    available_prompts=capabilities["prompts"],
                    available_resources=capabilities["resources"],
                ),
            )
            if not plan_outcome.success:
                raise PipelineFailure(
                    f"Planning failed: {plan_outcome.error}",
                    error_kind=plan_outcome.error_kind,
                )

            self.logger.info("goal.phase", phase="execution")
            execution_outcome = await self.registry.executor.execute(
                goal,
                context.with_updates(
                    plan=plan_outcome.plan,
                    available_prompts=capabilities["prompts"],
                    available_resources=capabilities["resources"],
                ),
            )
            if not execution_outcome.success:
                raise PipelineFailure(
                    f"Execution failed: {execution_outcome.error}",
                    error_kind=execution_outcome.error_kind,
                )

            self.logger.info("goal.phase", phase="coordination")
            plan = plan_outcome.plan
            results = execution_outcome.results
            coordination = coordinator.coordinate(plan, results)
            report = coordinator.generate_report(goal, plan, results, coordination)

        except Exception as e:
            self.logger.error(
                "goal.failed",
                session_id=session_id,
                error=str(e),
                error_type=type(e).__name__,
                error_kind=error_kind_of(e),
            )
            return GoalResult(
                success=False,
                goal=goal,
                error=str(e),
                metadata={
                    "failed_at": datetime.now(),
                    "error_kind": error_kind_of(e),
                    "error_type": type(e).__name__,
                    "session_id": session_id,
                },
            )

        completed = execution_outcome.completed_tasks
        result = GoalResult(
            success=True,
            goal=goal,
            plan=plan,
            execution_results=results,
            coordination=coordination,
            report=report,
            metadata={
                "session_id": session_id,
                "total_tasks": len(plan),
                "completed_tasks": completed,
                "failed_tasks": execution_outcome.failed_tasks,
                "execution_time": int((time.perf_counter() - start) * 1000),
                "agents": self.registry.roles(),
            },
        )

        self.logger.info(
            "goal.completed",
            session_id=session_id,
            total_tasks=len(plan),
            completed_tasks=completed,
            execution_time=result.metadata["execution_time"],
        )
        return result

    def get_status(self) -> dict[str, Any]:
        return {
            "agents": self.registry.roles(),
            "status": "ready",
            "capabilities": list(ORCHESTRATOR_CAPABILITIES),
        }

    def get_agent_state(self, role: AgentRole | str) -> dict[str, Any] | None:
        """Status of one agent, or None for an unknown role."""
        agent = self.registry.get(role)
        return agent.get_status() if agent else None

    async def clear_session(self, session_id: str) -> bool:
        return await self.registry.executor.clear_session(session_id)
