"""
Unit tests for PlanGenerator and the plan decoder.

Tests verify:
- The sales-report scenario decodes into five pending tasks
- Markdown code fences are stripped
- Prose, non-array and non-object responses raise PlanningMalformed
- Missing completion service raises PlanningUnavailable
- The rule-based strategy is only used when configured
"""

import json
from unittest.mock import AsyncMock

import pytest

from conftest import completion
from easy_orchestrator.core.domain.errors import (
    ConfigurationError,
    PlanningMalformed,
    PlanningUnavailable,
)
from easy_orchestrator.core.domain.models import GoalContext, TaskStatus
from easy_orchestrator.core.domain.planner import (
    PlanGenerator,
    RuleBasedPlanStrategy,
    decode_plan,
    format_capabilities,
    strip_code_fence,
)


class TestDecodePlan:
    def test_strip_code_fence_variants(self):
        assert strip_code_fence('```json\n[{"id": "a"}]\n```') == '[{"id": "a"}]'
        assert strip_code_fence('```\n[]\n```') == "[]"
        assert strip_code_fence("  []  ") == "[]"

    def test_decode_fenced_plan(self, sales_plan_json):
        plan = decode_plan(f"```json\n{sales_plan_json}\n```")
        assert [task.id for task in plan] == ["task_1", "task_2", "task_3", "task_4", "task_5"]

    def test_status_is_always_pending(self):
        plan = decode_plan('[{"id": "a", "description": "x", "status": "completed"}]')
        assert plan[0].status == TaskStatus.PENDING

    def test_prose_raises_malformed(self):
        with pytest.raises(PlanningMalformed) as exc_info:
            decode_plan("Sure! Here is your plan: first gather data, then analyze it.")
        assert exc_info.value.raw.startswith("Sure!")

    def test_object_instead_of_array_raises_malformed(self):
        with pytest.raises(PlanningMalformed, match="JSON array"):
            decode_plan('{"tasks": []}')

    def test_non_object_entry_raises_malformed(self):
        with pytest.raises(PlanningMalformed, match="entry 2"):
            decode_plan('[{"id": "a"}, "b"]')

    def test_duplicate_ids_are_made_unique(self):
        plan = decode_plan('[{"id": "a"}, {"id": "a"}]')
        assert plan[0].id == "a"
        assert plan[1].id == "a_2"

    def test_empty_array_is_an_empty_plan(self):
        assert decode_plan("[]") == []


class TestPlanGenerator:
    @pytest.mark.asyncio
    async def test_sales_report_scenario(self, mock_completion_service):
        generator = PlanGenerator(completion_service=mock_completion_service)

        plan = await generator.generate_plan("Create a Q3 sales report", GoalContext())

        assert len(plan) == 5
        assert all(task.status == TaskStatus.PENDING for task in plan)
        assert plan[0].preferred_tool == "data_loader"

        call = mock_completion_service.generate_response.call_args
        assert call.kwargs["temperature"] == 0.3
        assert call.kwargs["max_tokens"] == 2000
        assert "Create a Q3 sales report" in call.args[1]

    @pytest.mark.asyncio
    async def test_without_completion_service_raises_configuration_error(self):
        generator = PlanGenerator()

        with pytest.raises(PlanningUnavailable) as exc_info:
            await generator.generate_plan("goal", GoalContext())
        assert isinstance(exc_info.value, ConfigurationError)

    @pytest.mark.asyncio
    async def test_prose_response_raises_malformed(self):
        service = AsyncMock()
        service.generate_response.return_value = completion("I would start by collecting data.")
        generator = PlanGenerator(completion_service=service)

        with pytest.raises(PlanningMalformed):
            await generator.generate_plan("goal", GoalContext())

    @pytest.mark.asyncio
    async def test_fallback_strategy_replaces_failed_planning(self):
        generator = PlanGenerator(fallback_strategy=RuleBasedPlanStrategy())

        plan = await generator.generate_plan("Run a data analysis of churn", GoalContext())

        assert len(plan) == 5
        assert plan[0].description == "Analyze data structure and format"
        assert plan[4].dependencies == ["task_3", "task_4"]

    def test_user_message_lists_capabilities(self):
        generator = PlanGenerator()
        context = GoalContext(
            available_tools=[{"name": "data_loader", "description": "Loads data"}],
            extra={"region": "EMEA"},
        )

        system_prompt, user_message = generator.build_prompts("goal", context)

        assert '"preferredTool"' in system_prompt
        assert "- data_loader: Loads data" in user_message
        assert json.dumps("EMEA") in user_message
        assert "No server prompts available" in user_message


class TestRuleBasedPlanStrategy:
    @pytest.mark.parametrize(
        "goal,category",
        [
            ("Data analysis of sales", "data_analysis"),
            ("New marketing plan", "marketing_strategy"),
            ("Automate the invoice process", "process_automation"),
            ("Plan a team offsite", "generic"),
        ],
    )
    def test_classify(self, goal, category):
        assert RuleBasedPlanStrategy().classify(goal) == category

    def test_generic_plan_mentions_goal(self):
        plan = RuleBasedPlanStrategy().build("Plan a team offsite")
        assert len(plan) == 4
        assert plan[0].description == "Analyze goal: Plan a team offsite"


def test_format_capabilities_empty_context():
    text = format_capabilities(GoalContext())
    assert "No tools available" in text
    assert "No server resources available" in text
