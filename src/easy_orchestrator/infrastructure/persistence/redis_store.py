"""
Redis Session Store

SessionStore on top of ``redis.asyncio``. Each entry is a JSON envelope
``{"data": ..., "timestamp": ..., "ttl": ...}`` written with SETEX; session
keys are listed with SCAN so clearing a session never blocks the server.

Every operation is best effort: when the store is not connected, or a
Redis command fails, the error is logged and None, [] or False is returned.
"""

import json
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
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

DEFAULT_REDIS_URL = "redis://localhost:6379"


class RedisSessionStore:
    """
    Redis-backed SessionStore.

    Args:
        url: Redis connection URL
        password: Optional password (overrides the URL)
        db: Database number
        socket_timeout: Socket connect/read timeout in seconds
        client: Pre-built ``redis.asyncio`` client (tests pass a mock)
    """

    def __init__(
        self,
        url: Optional[str] = None,
        password: Optional[str] = None,
        db: int = 0,
        socket_timeout: float = 5.0,
        client: Optional[Any] = None,
    ):
        self.url = url or DEFAULT_REDIS_URL
        self.db = db
        self.logger = structlog.get_logger().bind(component="redis_store")
        self.client = client or aioredis.from_url(
            self.url,
            password=password,
            db=db,
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
        )
        self.connected = False

    async def connect(self) -> bool:
        """Ping the server; the store stays usable (but inert) when this fails."""
        try:
            await self.client.ping()
        except Exception as e:
            self.logger.error("redis.connect_failed", url=self.url, error=str(e))
            self.connected = False
            return False
        self.connected = True
        self.logger.info("redis.connected", url=self.url, db=self.db)
        return True

    async def disconnect(self) -> None:
        if self.connected:
            await self.client.aclose()
            self.connected = False
            self.logger.info("redis.disconnected")

    # ===== Key/value primitives =====

    async def _set(self, key: str, data: Any, ttl: int) -> bool:
        if not self.connected:
            self.logger.warning("redis.not_connected", operation="store", key=key)
            return False
        envelope = {"data": data, "timestamp": datetime.now().isoformat(), "ttl": ttl}
        try:
            await self.client.setex(key, ttl, json.dumps(envelope, default=str))
        except Exception as e:
            self.logger.error("redis.store_failed", key=key, error=str(e))
            return False
        return True

    async def _get(self, key: str) -> Any:
        if not self.connected:
            self.logger.warning("redis.not_connected", operation="get", key=key)
            return None
        try:
            raw = await self.client.get(key)
            if raw is None:
                return None
            return json.loads(raw).get("data")
        except Exception as e:
            self.logger.error("redis.get_failed", key=key, error=str(e))
            return None

    async def _scan(self, pattern: str) -> List[str]:
        return [key async for key in self.client.scan_iter(match=pattern, count=100)]

    # ===== SessionStore operations =====

    async def get_conversation(self, session_id: str) -> Optional[List[Dict[str, Any]]]:
        return await self._get(conversation_key(session_id))

    async def store_conversation(self, session_id: str, conversation: List[Dict[str, Any]]) -> bool:
        return await self._set(conversation_key(session_id), conversation, CONVERSATION_TTL_SECONDS)

    async def store_goal(
        self,
        session_id: str,
        goal: str,
        context: Dict[str, Any],
        result: Dict[str, Any],
    ) -> bool:
        record = {"goal": goal, "context": context, "result": result, "session_id": session_id}
        timestamp_ms = int(time.time() * 1000)
        if self.connected:
            # Goals stored in the same millisecond get the next free timestamp
            try:
                while await self.client.exists(goal_key(session_id, timestamp_ms)):
                    timestamp_ms += 1
            except Exception as e:
                self.logger.error("redis.store_failed", session_id=session_id, error=str(e))
                return False
        return await self._set(goal_key(session_id, timestamp_ms), record, GOAL_TTL_SECONDS)

    async def get_goal_history(self, session_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Return up to ``limit`` goal records, newest first."""
        if not self.connected:
            return []
        try:
            keys = await self._scan(f"goal:{session_id}:*")
        except Exception as e:
            self.logger.error("redis.goal_history_failed", session_id=session_id, error=str(e))
            return []

        keys.sort(key=lambda key: int(key.rsplit(":", 1)[-1]), reverse=True)
        history = []
        for key in keys[:limit]:
            record = await self._get(key)
            if record is not None:
                history.append(record)
        return history

    async def store_task_result(self, session_id: str, task_id: str, result: Dict[str, Any]) -> bool:
        return await self._set(task_key(session_id, task_id), result, TASK_RESULT_TTL_SECONDS)

    async def get_task_result(self, session_id: str, task_id: str) -> Optional[Dict[str, Any]]:
        return await self._get(task_key(session_id, task_id))

    async def store_agent_state(self, agent_id: str, state: Dict[str, Any]) -> bool:
        return await self._set(agent_key(agent_id), state, AGENT_STATE_TTL_SECONDS)

    async def get_agent_state(self, agent_id: str) -> Optional[Dict[str, Any]]:
        return await self._get(agent_key(agent_id))

    async def clear_session(self, session_id: str) -> bool:
        if not self.connected:
            return False
        try:
            removed = 0
            for pattern in session_patterns(session_id):
                keys = await self._scan(pattern)
                if keys:
                    removed += await self.client.delete(*keys)
        except Exception as e:
            self.logger.error("redis.clear_failed", session_id=session_id, error=str(e))
            return False
        self.logger.info("session.cleared", session_id=session_id, keys_removed=removed)
        return True

    async def get_stats(self) -> Optional[Dict[str, Any]]:
        if not self.connected:
            return None
        try:
            info = await self.client.info("memory")
            db_size = await self.client.dbsize()
        except Exception as e:
            self.logger.error("redis.stats_failed", error=str(e))
            return None
        return {"backend": "redis", "connected": True, "db_size": db_size, "memory_info": info}
