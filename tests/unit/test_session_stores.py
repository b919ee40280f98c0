"""
Unit tests for the session stores.

Tests verify:
- In-memory TTL expiry and eviction with an injected clock
- Goal history ordering and limit
- clear_session removes session keys but keeps agent state
- Redis store envelopes, best-effort degradation and SCAN-based clearing
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from easy_orchestrator.infrastructure.persistence.memory_store import InMemorySessionStore
from easy_orchestrator.infrastructure.persistence.redis_store import RedisSessionStore


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestInMemorySessionStore:
    @pytest.mark.asyncio
    async def test_conversation_round_trip_is_a_copy(self):
        store = InMemorySessionStore()
        await store.store_conversation("s1", [{"goal": "g"}])

        conversation = await store.get_conversation("s1")
        conversation.append({"goal": "mutated"})

        assert await store.get_conversation("s1") == [{"goal": "g"}]

    @pytest.mark.asyncio
    async def test_task_result_expires_after_one_hour(self):
        clock = FakeClock()
        store = InMemorySessionStore(clock=clock)
        await store.store_task_result("s1", "task_1", {"success": True})

        clock.now += 3599
        assert await store.get_task_result("s1", "task_1") == {"success": True}
        clock.now += 1
        assert await store.get_task_result("s1", "task_1") is None

    @pytest.mark.asyncio
    async def test_conversation_outlives_agent_state(self):
        clock = FakeClock()
        store = InMemorySessionStore(clock=clock)
        await store.store_conversation("s1", [])
        await store.store_agent_state("planner", {"status": "ready"})

        clock.now += 31 * 60

        assert await store.get_conversation("s1") == []
        assert await store.get_agent_state("planner") is None

    @pytest.mark.asyncio
    async def test_goal_history_newest_first_with_limit(self):
        clock = FakeClock()
        store = InMemorySessionStore(clock=clock)
        for goal in ("first", "second", "third"):
            await store.store_goal("s1", goal, {}, {})
            clock.now += 1

        history = await store.get_goal_history("s1", limit=2)

        assert [record["goal"] for record in history] == ["third", "second"]

    @pytest.mark.asyncio
    async def test_goals_stored_in_the_same_millisecond_are_kept(self):
        store = InMemorySessionStore(clock=FakeClock())
        await store.store_goal("s1", "a", {}, {})
        await store.store_goal("s1", "b", {}, {})

        assert len(await store.get_goal_history("s1")) == 2

    @pytest.mark.asyncio
    async def test_expired_entries_are_evicted_on_write(self):
        clock = FakeClock()
        store = InMemorySessionStore(clock=clock)
        for index in range(100):
            await store.store_task_result("s1", f"task_{index}", {"success": True})

        clock.now += 2 * 3600
        await store.store_task_result("s2", "task_1", {"success": True})

        assert len(store._entries) == 1
        assert (await store.get_stats())["db_size"] == 1

    @pytest.mark.asyncio
    async def test_clear_session(self):
        store = InMemorySessionStore()
        await store.store_conversation("s1", [{"goal": "g"}])
        await store.store_goal("s1", "g", {}, {})
        await store.store_task_result("s1", "task_1", {})
        await store.store_conversation("s2", [])
        await store.store_agent_state("executor", {"status": "ready"})

        assert await store.clear_session("s1") is True

        assert await store.get_conversation("s1") is None
        assert await store.get_goal_history("s1") == []
        assert await store.get_task_result("s1", "task_1") is None
        assert await store.get_conversation("s2") == []
        assert await store.get_agent_state("executor") == {"status": "ready"}


def scan_results(*batches):
    """Return a scan_iter replacement yielding the given key batches per call."""
    calls = iter(batches)

    def scan_iter(match=None, count=None):
        keys = next(calls)

        async def gen():
            for key in keys:
                yield key

        return gen()

    return scan_iter


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.ping = AsyncMock(return_value=True)
    client.setex = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    client.delete = AsyncMock(return_value=1)
    client.exists = AsyncMock(return_value=0)
    client.aclose = AsyncMock()
    return client


class TestRedisSessionStore:
    @pytest.mark.asyncio
    async def test_not_connected_degrades(self, redis_client):
        redis_client.ping.side_effect = ConnectionError("refused")
        store = RedisSessionStore(client=redis_client)

        assert await store.connect() is False
        assert await store.store_conversation("s1", []) is False
        assert await store.get_conversation("s1") is None
        assert await store.get_goal_history("s1") == []
        assert await store.clear_session("s1") is False
        assert await store.get_stats() is None
        redis_client.setex.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_writes_envelope_with_ttl(self, redis_client):
        store = RedisSessionStore(client=redis_client)
        await store.connect()

        assert await store.store_conversation("s1", [{"goal": "g"}]) is True

        key, ttl, payload = redis_client.setex.call_args.args
        assert key == "conversation:s1"
        assert ttl == 86400
        envelope = json.loads(payload)
        assert envelope["data"] == [{"goal": "g"}]
        assert envelope["ttl"] == 86400

    @pytest.mark.asyncio
    async def test_get_unwraps_envelope(self, redis_client):
        redis_client.get.return_value = json.dumps({"data": {"status": "ready"}, "ttl": 1800})
        store = RedisSessionStore(client=redis_client)
        await store.connect()

        assert await store.get_agent_state("planner") == {"status": "ready"}
        redis_client.get.assert_awaited_with("agent:planner")

    @pytest.mark.asyncio
    async def test_command_failure_returns_false(self, redis_client):
        redis_client.setex.side_effect = TimeoutError("slow")
        store = RedisSessionStore(client=redis_client)
        await store.connect()

        assert await store.store_task_result("s1", "t", {}) is False

    @pytest.mark.asyncio
    async def test_goal_history_sorted_by_timestamp(self, redis_client):
        redis_client.scan_iter = scan_results(["goal:s1:100", "goal:s1:300", "goal:s1:200"])
        redis_client.get.side_effect = lambda key: json.dumps({"data": {"key": key}})
        store = RedisSessionStore(client=redis_client)
        await store.connect()

        history = await store.get_goal_history("s1", limit=2)

        assert [record["key"] for record in history] == ["goal:s1:300", "goal:s1:200"]

    @pytest.mark.asyncio
    async def test_goals_stored_in_the_same_millisecond_get_distinct_keys(self, redis_client):
        redis_client.exists.side_effect = [1, 1, 0]
        store = RedisSessionStore(client=redis_client)
        await store.connect()

        with patch(
            "easy_orchestrator.infrastructure.persistence.redis_store.time.time",
            return_value=1_700_000_000.0,
        ):
            assert await store.store_goal("s1", "g", {}, {}) is True

        key = redis_client.setex.call_args.args[0]
        assert key == "goal:s1:1700000000002"

    @pytest.mark.asyncio
    async def test_clear_session_deletes_every_pattern(self, redis_client):
        redis_client.scan_iter = scan_results(["conversation:s1"], ["goal:s1:1", "goal:s1:2"], [])
        store = RedisSessionStore(client=redis_client)
        await store.connect()

        assert await store.clear_session("s1") is True

        deleted = [call.args for call in redis_client.delete.await_args_list]
        assert deleted == [("conversation:s1",), ("goal:s1:1", "goal:s1:2")]

    @pytest.mark.asyncio
    async def test_disconnect(self, redis_client):
        store = RedisSessionStore(client=redis_client)
        await store.connect()
        await store.disconnect()

        redis_client.aclose.assert_awaited_once()
        assert store.connected is False
