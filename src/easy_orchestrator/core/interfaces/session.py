"""
Session Store Protocol

Key-scoped persistence for conversation history, goal history, task results
and agent state. Every entry carries its own TTL. All operations are best
effort: an unavailable store returns None, [] or False and never raises.
"""

from typing import Any, Protocol, runtime_checkable

CONVERSATION_TTL_SECONDS = 24 * 60 * 60
GOAL_TTL_SECONDS = 7 * 24 * 60 * 60
TASK_RESULT_TTL_SECONDS = 60 * 60
AGENT_STATE_TTL_SECONDS = 30 * 60


def conversation_key(session_id: str) -> str:
    return f"conversation:{session_id}"


def goal_key(session_id: str, timestamp_ms: int) -> str:
    return f"goal:{session_id}:{timestamp_ms}"


def task_key(session_id: str, task_id: str) -> str:
    return f"task:{session_id}:{task_id}"


def agent_key(agent_id: str) -> str:
    return f"agent:{agent_id}"


def session_patterns(session_id: str) -> list[str]:
    """Key patterns that belong to a session (agent state is not session scoped)."""
    return [
        conversation_key(session_id),
        f"goal:{session_id}:*",
        f"task:{session_id}:*",
    ]


@runtime_checkable
class SessionStoreProtocol(Protocol):
    """Protocol for TTL-based session persistence."""

    async def get_conversation(self, session_id: str) -> list[dict[str, Any]] | None:
        ...

    async def store_conversation(self, session_id: str, conversation: list[dict[str, Any]]) -> bool:
        ...

    async def get_goal_history(self, session_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Return up to ``limit`` goal records, newest first."""
        ...

    async def store_goal(
        self,
        session_id: str,
        goal: str,
        context: dict[str, Any],
        result: dict[str, Any],
    ) -> bool:
        ...

    async def store_task_result(self, session_id: str, task_id: str, result: dict[str, Any]) -> bool:
        ...

    async def get_task_result(self, session_id: str, task_id: str) -> dict[str, Any] | None:
        ...

    async def store_agent_state(self, agent_id: str, state: dict[str, Any]) -> bool:
        ...

    async def get_agent_state(self, agent_id: str) -> dict[str, Any] | None:
        ...

    async def clear_session(self, session_id: str) -> bool:
        """Delete every key of the session; True on success."""
        ...
