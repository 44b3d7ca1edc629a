"""Abstract store interfaces for the storage layer.

This module defines Protocol classes for agent and execution stores,
enabling in-memory and SQL backends behind the same interface.
"""

from typing import Optional, Protocol

from agentmarket.agents.models import Agent
from agentmarket.execution.models import Execution


class AgentStore(Protocol):
    """Protocol for agent storage operations."""

    async def get_by_id(self, agent_id: str) -> Optional[Agent]:
        """Retrieve an agent by ID.

        Returns:
            Agent if found, None otherwise
        """
        ...

    async def create(self, agent: Agent) -> Agent:
        """Store a new agent.

        Raises:
            ValueError: If an agent with the same ID already exists
        """
        ...

    async def update(self, agent: Agent) -> Agent:
        """Replace an existing agent.

        Raises:
            ValueError: If the agent does not exist
        """
        ...

    async def list_all(self) -> list[Agent]:
        """List every agent, newest first."""
        ...

    async def list_by_creator(self, creator_id: str) -> list[Agent]:
        """List agents registered by a creator, newest first."""
        ...


class ExecutionStore(Protocol):
    """Protocol for execution storage operations.

    ``update`` is a conditional transition: it only succeeds while the stored
    record is still ``running``, so a terminal record is never overwritten.
    """

    async def get_by_id(self, execution_id: str) -> Optional[Execution]:
        """Retrieve an execution by ID."""
        ...

    async def create(self, execution: Execution) -> Execution:
        """Store a new execution.

        Raises:
            ValueError: If an execution with the same ID already exists
        """
        ...

    async def update(self, execution: Execution) -> Execution:
        """Persist a terminal execution over its running record.

        Raises:
            ExecutionNotFoundError: If the execution does not exist
            ExecutionStateError: If the stored execution is already terminal
        """
        ...

    async def list_by_user(self, user_id: str) -> list[Execution]:
        """List a user's executions, newest first."""
        ...
