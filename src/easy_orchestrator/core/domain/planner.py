"""
Plan Generation

This module turns a goal into an ordered list of Tasks:
1. Build the planning prompts (schema instruction + goal, context, capabilities)
2. Ask the CompletionService once (temperature 0.3, 2000 tokens by default)
3. Strip Markdown code fences and strictly decode the JSON task array
4. Apply per-field defaults and reset every status to pending

The default policy is hard failure: no completion service raises
PlanningUnavailable, an undecodable response raises PlanningMalformed.
A permissive policy is available only through an explicitly configured
RuleBasedPlanStrategy.
"""

import json
import re
from typing import Any

import structlog

from easy_orchestrator.core.domain.errors import PlanningMalformed, PlanningUnavailable
from easy_orchestrator.core.domain.models import GoalContext, Task, TaskPriority, TaskStatus
from easy_orchestrator.core.interfaces.llm import CompletionServiceProtocol
from easy_orchestrator.core.prompts.pipeline_prompts import (
    NO_PROMPTS_TEXT,
    NO_RESOURCES_TEXT,
    NO_TOOLS_TEXT,
    PLANNING_SYSTEM_PROMPT,
    PLANNING_USER_TEMPLATE,
)

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")

RAW_EXCERPT_CHARS = 500


def strip_code_fence(raw: str) -> str:
    """Remove a surrounding Markdown code fence (```json or bare ```)."""
    text = (raw or "").strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text, count=1)
        text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def decode_plan(raw: str) -> list[Task]:
    """
    Strictly decode a planning response into Tasks.

    The response must be a JSON array of objects (optionally wrapped in a
    code fence). Missing fields receive their documented defaults; duplicate
    ids are suffixed with their position so ids stay unique.

    Args:
        raw: Raw completion content

    Returns:
        Tasks in response order, all pending

    Raises:
        PlanningMalformed: If the content is not a JSON array of objects
    """
    cleaned = strip_code_fence(raw)
    excerpt = (raw or "")[:RAW_EXCERPT_CHARS]

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise PlanningMalformed(
            f"Failed to parse planning response as JSON: {e.msg}", raw=excerpt
        ) from e

    if not isinstance(data, list):
        raise PlanningMalformed(
            f"Planning response must be a JSON array of tasks, got {type(data).__name__}",
            raw=excerpt,
        )

    tasks: list[Task] = []
    seen_ids: set[str] = set()
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            raise PlanningMalformed(
                f"Plan entry {index} must be an object, got {type(item).__name__}",
                raw=excerpt,
            )
        task = Task.from_dict(item, index)
        task.status = TaskStatus.PENDING
        while task.id in seen_ids:
            task.id = f"{task.id}_{index}"
        seen_ids.add(task.id)
        tasks.append(task)

    return tasks


def _listing(title: str, entries: list[dict[str, Any]], empty_text: str) -> str:
    if not entries:
        return f"\n\n{empty_text}"
    lines = [
        f"- {entry.get('name', 'unnamed')}: {entry.get('description') or 'No description'}"
        for entry in entries
    ]
    return f"\n\n{title}:\n" + "\n".join(lines)


def format_capabilities(context: GoalContext) -> str:
    """Human-readable listings of discovered tools, prompts and resources."""
    return (
        _listing("Available Tools", context.available_tools, NO_TOOLS_TEXT)
        + _listing("Available Prompts", context.available_prompts, NO_PROMPTS_TEXT)
        + _listing("Available Resources", context.available_resources, NO_RESOURCES_TEXT)
    )


class RuleBasedPlanStrategy:
    """
    Named fallback strategy producing a fixed plan from the goal's wording.

    Used only when configured on the PlanGenerator (``planning.fallback:
    rule_based``); the default pipeline never synthesizes a plan.
    """

    name = "rule_based"

    # (description, priority, dependencies, minutes)
    TEMPLATES: dict[str, list[tuple[str, str, list[str], int]]] = {
        "data_analysis": [
            ("Analyze data structure and format", "high", [], 30),
            ("Perform statistical analysis", "high", ["task_1"], 45),
            ("Generate insights and recommendations", "medium", ["task_2"], 30),
            ("Create visualization charts", "medium", ["task_2"], 25),
            ("Compile final report", "high", ["task_3", "task_4"], 20),
        ],
        "marketing_strategy": [
            ("Analyze target audience and market", "high", [], 40),
            ("Define value proposition and messaging", "high", ["task_1"], 35),
            ("Select marketing channels and tactics", "medium", ["task_2"], 30),
            ("Create content calendar and budget", "medium", ["task_3"], 25),
            ("Develop implementation timeline", "high", ["task_4"], 20),
        ],
        "process_automation": [
            ("Map current process workflow", "high", [], 35),
            ("Identify automation opportunities", "high", ["task_1"], 30),
            ("Design automated workflow", "medium", ["task_2"], 40),
            ("Implement automation tools", "high", ["task_3"], 50),
            ("Test and validate automation", "high", ["task_4"], 25),
        ],
        "generic": [
            ("Analyze goal: {goal}", "high", [], 20),
            ("Break down into actionable steps", "high", ["task_1"], 25),
            ("Execute planned actions", "medium", ["task_2"], 30),
            ("Validate and review results", "medium", ["task_3"], 15),
        ],
    }

    def classify(self, goal: str) -> str:
        text = goal.lower()
        if "data" in text and "analysis" in text:
            return "data_analysis"
        if "marketing" in text or "strategy" in text:
            return "marketing_strategy"
        if "automation" in text or "process" in text:
            return "process_automation"
        return "generic"

    def build(self, goal: str) -> list[Task]:
        return [
            Task(
                id=f"task_{index}",
                description=description.format(goal=goal),
                priority=TaskPriority(priority),
                dependencies=list(dependencies),
                estimated_duration=minutes,
            )
            for index, (description, priority, dependencies, minutes) in enumerate(
                self.TEMPLATES[self.classify(goal)], start=1
            )
        ]


class PlanGenerator:
    """
    Produces an ordered plan for a goal using a CompletionService.

    Args:
        completion_service: Completion backend, or None when not configured
        temperature: Sampling temperature for the planning call
        max_tokens: Token ceiling for the planning call
        fallback_strategy: Optional named strategy used when planning fails
    """

    def __init__(
        self,
        completion_service: CompletionServiceProtocol | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        fallback_strategy: RuleBasedPlanStrategy | None = None,
    ):
        self.completion_service = completion_service
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.fallback_strategy = fallback_strategy
        self.logger = structlog.get_logger().bind(component="plan_generator")

    async def generate_plan(self, goal: str, context: GoalContext) -> list[Task]:
        """
        Generate the plan for a goal.

        Args:
            goal: Natural-language objective
            context: Typed execution context (tools, prompts, resources, history)

        Returns:
            Ordered list of pending Tasks

        Raises:
            PlanningUnavailable: No completion service and no fallback strategy
            PlanningMalformed: Response is not a JSON task array
            CompletionRequestFailed: The completion request itself failed
        """
        try:
            return await self._generate_with_llm(goal, context)
        except Exception as e:
            if self.fallback_strategy is None:
                raise
            plan = self.fallback_strategy.build(goal)
            self.logger.warning(
                "plan.fallback_used",
                strategy=self.fallback_strategy.name,
                error=str(e),
                error_type=type(e).__name__,
                task_count=len(plan),
            )
            return plan

    def build_prompts(self, goal: str, context: GoalContext) -> tuple[str, str]:
        """Return ``(system_prompt, user_message)`` for the planning call."""
        user_message = PLANNING_USER_TEMPLATE.format(
            goal=goal,
            context=json.dumps(context.to_dict(), indent=2, default=str),
            capabilities=format_capabilities(context),
        )
        return PLANNING_SYSTEM_PROMPT, user_message

    async def _generate_with_llm(self, goal: str, context: GoalContext) -> list[Task]:
        if self.completion_service is None:
            raise PlanningUnavailable(
                "No completion provider available for planning. "
                "Configure OpenRouter or Ollama in the active profile."
            )

        system_prompt, user_message = self.build_prompts(goal, context)
        self.logger.info(
            "plan.requested",
            goal=goal[:100],
            tool_count=len(context.available_tools),
        )

        response = await self.completion_service.generate_response(
            system_prompt,
            user_message,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        try:
            plan = decode_plan(response.content)
        except PlanningMalformed as e:
            self.logger.warning("plan.parse_failed", error=str(e), response=e.raw)
            raise

        self.logger.info(
            "plan.generated",
            task_count=len(plan),
            tokens=response.usage.get("total_tokens", 0),
        )
        return plan
