"""Tests for the in-memory and SQL store implementations.

Both backends run the same scenarios through a parametrized fixture.
"""

from datetime import datetime, timedelta, timezone

import pytest

from agentmarket.agents.errors import ExecutionNotFoundError, ExecutionStateError
from agentmarket.agents.models import AgentStatus, ExecutionPolicy
from agentmarket.execution.models import Execution, ExecutionStatus
from agentmarket.storage.memory import InMemoryAgentStore, InMemoryExecutionStore
from agentmarket.storage.repository import SqlAgentStore, SqlExecutionStore

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sql"])
def stores(request, test_db):
    """Agent and execution store pair for each backend."""
    if request.param == "memory":
        return InMemoryAgentStore(), InMemoryExecutionStore()
    return SqlAgentStore(test_db), SqlExecutionStore(test_db)


class TestAgentStore:
    async def test_create_and_get_round_trip(self, stores, make_agent) -> None:
        agent_store, _ = stores
        agent = make_agent(
            agent_id="agent_1",
            headers={"x-api-key": "k"},
            static_fields={"n": 1, "nested": {"a": [1, 2]}},
            execution_policy=ExecutionPolicy(timeout_ms=15000, fallback_template="email"),
            created_at=T0,
            updated_at=T0,
        )

        await agent_store.create(agent)

        assert await agent_store.get_by_id("agent_1") == agent
        assert await agent_store.get_by_id("agent_missing") is None

    async def test_duplicate_create_rejected(self, stores, make_agent) -> None:
        agent_store, _ = stores
        agent = make_agent(agent_id="agent_1", created_at=T0)
        await agent_store.create(agent)

        with pytest.raises(ValueError, match="already exists"):
            await agent_store.create(agent)

    async def test_update(self, stores, make_agent) -> None:
        agent_store, _ = stores
        agent = make_agent(agent_id="agent_1", created_at=T0, updated_at=T0)
        await agent_store.create(agent)

        changed = agent.model_copy(
            update={"title": "Renamed", "status": AgentStatus.INACTIVE, "updated_at": T0}
        )
        await agent_store.update(changed)

        stored = await agent_store.get_by_id("agent_1")
        assert stored.title == "Renamed"
        assert stored.status == AgentStatus.INACTIVE

    async def test_update_missing_rejected(self, stores, make_agent) -> None:
        agent_store, _ = stores

        with pytest.raises(ValueError, match="does not exist"):
            await agent_store.update(make_agent(agent_id="agent_ghost", created_at=T0))

    async def test_listing_newest_first(self, stores, make_agent) -> None:
        agent_store, _ = stores
        old = make_agent(agent_id="agent_old", created_at=T0)
        new = make_agent(agent_id="agent_new", created_at=T0 + timedelta(minutes=5))
        other = make_agent(
            agent_id="agent_other", creator_id="c2", created_at=T0 + timedelta(minutes=1)
        )
        for agent in (old, new, other):
            await agent_store.create(agent)

        assert [a.agent_id for a in await agent_store.list_all()] == [
            "agent_new",
            "agent_other",
            "agent_old",
        ]
        assert [a.agent_id for a in await agent_store.list_by_creator("creator-1")] == [
            "agent_new",
            "agent_old",
        ]


class TestExecutionStore:
    async def test_create_get_and_complete(self, stores) -> None:
        _, execution_store = stores
        execution = Execution(agent_id="agent_1", user_id="u1", inputs={"text": "x"})
        await execution_store.create(execution)

        completed = execution.complete({"summary": "ok", "text_output": "done"})
        await execution_store.update(completed)

        stored = await execution_store.get_by_id(execution.execution_id)
        assert stored.status == ExecutionStatus.COMPLETED
        assert stored.result == {"summary": "ok", "text_output": "done"}
        assert stored.inputs == {"text": "x"}
        assert stored.completed_at is not None

    async def test_second_transition_rejected(self, stores) -> None:
        _, execution_store = stores
        execution = Execution(agent_id="agent_1", user_id="u1")
        await execution_store.create(execution)
        await execution_store.update(execution.complete({"text_output": "a"}))

        with pytest.raises(ExecutionStateError) as exc_info:
            await execution_store.update(execution.fail("late failure"))

        assert exc_info.value.status_code == 409
        stored = await execution_store.get_by_id(execution.execution_id)
        assert stored.status == ExecutionStatus.COMPLETED

    async def test_update_missing_execution(self, stores) -> None:
        _, execution_store = stores
        ghost = Execution(agent_id="agent_1", user_id="u1")

        with pytest.raises(ExecutionNotFoundError):
            await execution_store.update(ghost.fail("nope"))

    async def test_list_by_user_newest_first(self, stores) -> None:
        _, execution_store = stores
        older = Execution(agent_id="a", user_id="u1", created_at=T0)
        newer = Execution(agent_id="a", user_id="u1", created_at=T0 + timedelta(seconds=1))
        foreign = Execution(agent_id="a", user_id="u2", created_at=T0)
        for execution in (older, newer, foreign):
            await execution_store.create(execution)

        listed = await execution_store.list_by_user("u1")

        assert [e.execution_id for e in listed] == [newer.execution_id, older.execution_id]
        assert listed[0].created_at == newer.created_at


def test_terminal_execution_is_immutable() -> None:
    execution = Execution(agent_id="a", user_id="u1").fail("x")

    with pytest.raises(ExecutionStateError):
        execution.complete({})
