"""In-memory implementations of the store interfaces.

Dictionary-based storage guarded by asyncio locks, suitable for development,
testing and single-instance deployments.
"""

import asyncio
from typing import Optional

from agentmarket.agents.errors import ExecutionNotFoundError, ExecutionStateError
from agentmarket.agents.models import Agent
from agentmarket.execution.models import Execution, ExecutionStatus


class InMemoryAgentStore:
    """In-memory implementation of AgentStore.

    Attributes:
        _agents: Dictionary mapping agent_id to Agent objects
        _lock: Asyncio lock serializing writes
    """

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._lock = asyncio.Lock()

    async def get_by_id(self, agent_id: str) -> Optional[Agent]:
        async with self._lock:
            return self._agents.get(agent_id)

    async def create(self, agent: Agent) -> Agent:
        async with self._lock:
            if agent.agent_id in self._agents:
                raise ValueError(f"Agent with ID {agent.agent_id} already exists")
            self._agents[agent.agent_id] = agent
            return agent

    async def update(self, agent: Agent) -> Agent:
        async with self._lock:
            if agent.agent_id not in self._agents:
                raise ValueError(f"Agent with ID {agent.agent_id} does not exist")
            self._agents[agent.agent_id] = agent
            return agent

    async def list_all(self) -> list[Agent]:
        async with self._lock:
            return _newest_first(self._agents.values())

    async def list_by_creator(self, creator_id: str) -> list[Agent]:
        async with self._lock:
            return _newest_first(a for a in self._agents.values() if a.creator_id == creator_id)


def _newest_first(agents) -> list[Agent]:
    # Insertion order breaks ties between agents created in the same instant
    ordered = list(agents)
    ordered.reverse()
    ordered.sort(key=lambda a: a.created_at.timestamp() if a.created_at else 0.0, reverse=True)
    return ordered


class InMemoryExecutionStore:
    """In-memory implementation of ExecutionStore.

    Transitions check the stored status under the lock, so two concurrent
    writers cannot both move the same execution out of ``running``.
    """

    def __init__(self) -> None:
        self._executions: dict[str, Execution] = {}
        self._lock = asyncio.Lock()

    async def get_by_id(self, execution_id: str) -> Optional[Execution]:
        async with self._lock:
            return self._executions.get(execution_id)

    async def create(self, execution: Execution) -> Execution:
        async with self._lock:
            if execution.execution_id in self._executions:
                raise ValueError(f"Execution with ID {execution.execution_id} already exists")
            self._executions[execution.execution_id] = execution
            return execution

    async def update(self, execution: Execution) -> Execution:
        async with self._lock:
            stored = self._executions.get(execution.execution_id)
            if stored is None:
                raise ExecutionNotFoundError(execution.execution_id)
            if stored.status != ExecutionStatus.RUNNING:
                raise ExecutionStateError(
                    execution.execution_id, stored.status.value, "update"
                )
            self._executions[execution.execution_id] = execution
            return execution

    async def list_by_user(self, user_id: str) -> list[Execution]:
        async with self._lock:
            executions = [e for e in self._executions.values() if e.user_id == user_id]
            executions.reverse()
            executions.sort(key=lambda e: e.created_at, reverse=True)
            return executions
