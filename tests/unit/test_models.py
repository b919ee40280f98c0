"""
Unit tests for the domain models.

Tests verify:
- Task defaults and camelCase/snake_case field parsing
- GoalContext mapping, extra passthrough and copy-on-update
- Serialization of results and failure payloads
"""

from datetime import datetime

import pytest

from easy_orchestrator.core.domain.errors import MalformedResponseError
from easy_orchestrator.core.domain.models import (
    ExecutionMethod,
    GoalContext,
    GoalResult,
    Task,
    TaskPriority,
    TaskResult,
    TaskStatus,
)


class TestTask:
    def test_from_dict_applies_defaults(self):
        task = Task.from_dict({}, 3)

        assert task.id == "task_3"
        assert task.description == "Task 3"
        assert task.priority == TaskPriority.MEDIUM
        assert task.dependencies == []
        assert task.estimated_duration == 30
        assert task.preferred_tool == "simulation"
        assert task.status == TaskStatus.PENDING

    def test_from_dict_reads_wire_names(self):
        task = Task.from_dict(
            {
                "id": "a",
                "description": "Load data",
                "priority": "HIGH",
                "dependencies": ["b"],
                "estimatedDuration": 15,
                "preferredTool": "loader",
            },
            1,
        )

        assert task.priority == TaskPriority.HIGH
        assert task.estimated_duration == 15
        assert task.preferred_tool == "loader"
        assert task.dependencies == ["b"]

    def test_explicit_zero_duration_is_kept(self):
        assert Task.from_dict({"estimatedDuration": 0}, 1).estimated_duration == 0

    def test_unknown_priority_falls_back_to_medium(self):
        task = Task.from_dict({"priority": "urgent"}, 1)
        assert task.priority == TaskPriority.MEDIUM

    def test_to_dict_uses_snake_case(self):
        data = Task(id="t", description="d").to_dict()
        assert data["estimated_duration"] == 30
        assert data["preferred_tool"] == "simulation"
        assert data["status"] == "pending"


class TestGoalContext:
    def test_from_mapping_splits_known_and_extra(self):
        context = GoalContext.from_mapping(
            {"sessionId": "s1", "region": "EMEA", "plan": [{"description": "x"}]}
        )

        assert context.session_id == "s1"
        assert context.extra == {"region": "EMEA"}
        assert context.plan[0].id == "task_1"

    def test_with_updates_does_not_mutate_original(self):
        context = GoalContext(session_id="s1", extra={"k": "v"})
        updated = context.with_updates(session_id="s2")

        assert context.session_id == "s1"
        assert updated.session_id == "s2"
        assert updated.extra == {"k": "v"}

    def test_to_dict_merges_extra_and_omits_empty_fields(self):
        context = GoalContext(session_id="s1", extra={"region": "EMEA"})
        assert context.to_dict() == {"region": "EMEA", "session_id": "s1"}

    def test_from_mapping_none(self):
        context = GoalContext.from_mapping(None)
        assert context.session_id is None
        assert context.plan is None

    def test_from_mapping_rejects_non_list_plan(self):
        with pytest.raises(MalformedResponseError, match="must be a list"):
            GoalContext.from_mapping({"plan": "not-a-list"})

    def test_from_mapping_rejects_non_object_plan_item(self):
        with pytest.raises(MalformedResponseError, match="item 2"):
            GoalContext.from_mapping({"plan": [{"description": "ok"}, "oops"]})


class TestSerialization:
    def test_task_result_success_has_result_only(self):
        result = TaskResult(
            task_id="t",
            description="d",
            success=True,
            duration=5,
            executed_at=datetime(2024, 1, 1),
            method=ExecutionMethod.LLM,
            result="done",
        )
        data = result.to_dict()

        assert data["result"] == "done"
        assert "error" not in data
        assert data["method"] == "llm"

    def test_failed_goal_result(self):
        result = GoalResult(
            success=False,
            goal="g",
            error="boom",
            metadata={"failed_at": datetime(2024, 1, 1), "error_kind": "ConfigurationError"},
        )
        data = result.to_dict()

        assert data == {
            "success": False,
            "goal": "g",
            "error": "boom",
            "metadata": {"failed_at": "2024-01-01T00:00:00", "error_kind": "ConfigurationError"},
        }
