"""Shared fixtures for the unit tests."""

import json
from unittest.mock import AsyncMock

import pytest

from easy_orchestrator.core.domain.agent import Agent
from easy_orchestrator.core.domain.models import AgentRole
from easy_orchestrator.core.domain.orchestrator import AgentRegistry, Orchestrator
from easy_orchestrator.core.domain.planner import PlanGenerator
from easy_orchestrator.core.domain.task_executor import SimulationBackend, TaskExecutor
from easy_orchestrator.core.interfaces.llm import CompletionResponse
from easy_orchestrator.infrastructure.persistence.memory_store import InMemorySessionStore

SALES_PLAN = [
    {
        "id": "task_1",
        "description": "Collect Q3 sales data from the CRM export",
        "priority": "high",
        "dependencies": [],
        "estimatedDuration": 30,
        "preferredTool": "data_loader",
    },
    {
        "id": "task_2",
        "description": "Clean and validate the sales data set",
        "priority": "high",
        "dependencies": ["task_1"],
        "estimatedDuration": 20,
        "preferredTool": "simulation",
    },
    {
        "id": "task_3",
        "description": "Perform revenue trend analysis per region",
        "priority": "medium",
        "dependencies": ["task_2"],
        "estimatedDuration": 45,
        "preferredTool": "simulation",
    },
    {
        "id": "task_4",
        "description": "Create visualization charts for the trends",
        "priority": "medium",
        "dependencies": ["task_3"],
        "estimatedDuration": 25,
        "preferredTool": "simulation",
    },
    {
        "id": "task_5",
        "description": "Compile the final sales report for management",
        "priority": "high",
        "dependencies": ["task_3", "task_4"],
        "estimatedDuration": 20,
        "preferredTool": "simulation",
    },
]


class StubRandom:
    """Deterministic stand-in for random.Random returning queued values."""

    def __init__(self, values, default=0.5):
        self.values = list(values)
        self.default = default

    def random(self):
        return self.values.pop(0) if self.values else self.default


async def no_sleep(_seconds):
    return None


def completion(content: str) -> CompletionResponse:
    return CompletionResponse(content=content, usage={"total_tokens": 42}, model="test-model")


@pytest.fixture
def sales_plan_json():
    return json.dumps(SALES_PLAN)


@pytest.fixture
def mock_completion_service(sales_plan_json):
    """Completion service answering every call with the sales plan."""
    mock = AsyncMock()
    mock.generate_response.return_value = completion(sales_plan_json)
    return mock


@pytest.fixture
def mock_tool_invoker():
    """Tool server with two tools and no prompts/resources."""
    mock = AsyncMock()
    mock.list_tools.return_value = {
        "tools": [
            {"name": "data_loader", "description": "Loads data from files"},
            {"name": "report_builder", "description": "Builds a report document"},
        ]
    }
    mock.call_tool.return_value = {"status": "ok"}
    mock.list_prompts.return_value = {"prompts": []}
    mock.list_resources.return_value = {"resources": []}
    return mock


@pytest.fixture
def quiet_simulation():
    """Simulation that never sleeps and never fails."""
    return SimulationBackend(rng=StubRandom([], default=0.5), sleep=no_sleep)


@pytest.fixture
def memory_store():
    return InMemorySessionStore()


def build_orchestrator(completion_service=None, tool_invoker=None, session_store=None, simulation=None):
    """Wire a planner/executor pair the way the factory does."""

    def agent(role):
        return Agent(
            role=role,
            plan_generator=PlanGenerator(completion_service=completion_service),
            task_executor=TaskExecutor(
                completion_service=completion_service,
                tool_invoker=tool_invoker,
                simulation=simulation or SimulationBackend(rng=StubRandom([]), sleep=no_sleep),
            ),
            session_store=session_store,
            tool_invoker=tool_invoker,
        )

    return Orchestrator(AgentRegistry(planner=agent(AgentRole.PLANNER), executor=agent(AgentRole.EXECUTOR)))
