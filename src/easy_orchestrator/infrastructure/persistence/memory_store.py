"""
In-Memory Session Store

Process-local SessionStore with per-entry TTL; expired entries are swept on
every write and key listing. Values are stored as JSON copies, so callers
can mutate what they read without touching the store.
Used by the test profile and whenever no Redis URL is configured.
"""

import fnmatch
import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from easy_orchestrator.core.interfaces.session import (
    AGENT_STATE_TTL_SECONDS,
    CONVERSATION_TTL_SECONDS,
    GOAL_TTL_SECONDS,
    TASK_RESULT_TTL_SECONDS,
    agent_key,
    conversation_key,
    goal_key,
    session_patterns,
    task_key,
)


def _copy(data: Any) -> Any:
    return json.loads(json.dumps(data, default=str))


class InMemorySessionStore:
    """
    Dict-backed SessionStore.

    Args:
        clock: Returns the current time in seconds; injectable for TTL tests
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self.logger = structlog.get_logger().bind(component="memory_store")

    # ===== Key/value primitives =====

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def _set(self, key: str, data: Any, ttl: int) -> bool:
        self._purge_expired()
        self._entries[key] = (self._clock() + ttl, _copy(data))
        return True

    def _get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, data = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return _copy(data)

    def _keys(self, pattern: str) -> List[str]:
        self._purge_expired()
        return [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]

    # ===== SessionStore operations =====

    async def get_conversation(self, session_id: str) -> Optional[List[Dict[str, Any]]]:
        return self._get(conversation_key(session_id))

    async def store_conversation(self, session_id: str, conversation: List[Dict[str, Any]]) -> bool:
        return self._set(conversation_key(session_id), conversation, CONVERSATION_TTL_SECONDS)

    async def store_goal(
        self,
        session_id: str,
        goal: str,
        context: Dict[str, Any],
        result: Dict[str, Any],
    ) -> bool:
        timestamp_ms = int(self._clock() * 1000)
        while goal_key(session_id, timestamp_ms) in self._entries:
            timestamp_ms += 1
        record = {"goal": goal, "context": context, "result": result, "session_id": session_id}
        return self._set(goal_key(session_id, timestamp_ms), record, GOAL_TTL_SECONDS)

    async def get_goal_history(self, session_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Return up to ``limit`` goal records, newest first."""
        keys = sorted(
            self._keys(f"goal:{session_id}:*"),
            key=lambda key: int(key.rsplit(":", 1)[-1]),
            reverse=True,
        )
        history = []
        for key in keys[:limit]:
            record = self._get(key)
            if record is not None:
                history.append(record)
        return history

    async def store_task_result(self, session_id: str, task_id: str, result: Dict[str, Any]) -> bool:
        return self._set(task_key(session_id, task_id), result, TASK_RESULT_TTL_SECONDS)

    async def get_task_result(self, session_id: str, task_id: str) -> Optional[Dict[str, Any]]:
        return self._get(task_key(session_id, task_id))

    async def store_agent_state(self, agent_id: str, state: Dict[str, Any]) -> bool:
        return self._set(agent_key(agent_id), state, AGENT_STATE_TTL_SECONDS)

    async def get_agent_state(self, agent_id: str) -> Optional[Dict[str, Any]]:
        return self._get(agent_key(agent_id))

    async def clear_session(self, session_id: str) -> bool:
        removed = 0
        for pattern in session_patterns(session_id):
            for key in [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]:
                del self._entries[key]
                removed += 1
        self.logger.info("session.cleared", session_id=session_id, keys_removed=removed)
        return True

    async def get_stats(self) -> Dict[str, Any]:
        return {"backend": "memory", "connected": True, "db_size": len(self._keys("*"))}
