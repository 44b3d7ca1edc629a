"""SQL-backed store implementations.

Each operation runs in its own session from :class:`Database`, so a store can
be shared for the lifetime of the application.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update

from agentmarket.agents.errors import ExecutionNotFoundError, ExecutionStateError
from agentmarket.agents.models import Agent
from agentmarket.execution.models import Execution, ExecutionStatus
from agentmarket.storage.database import Database
from agentmarket.storage.orm import AgentModel, ExecutionModel


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAgentStore:
    """SQL-backed implementation of AgentStore.

    Example:
        >>> store = SqlAgentStore(db)
        >>> await store.create(agent)
        >>> retrieved = await store.get_by_id(agent.agent_id)
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def get_by_id(self, agent_id: str) -> Optional[Agent]:
        async with self.db.session() as session:
            model = await session.get(AgentModel, agent_id)
            return self._model_to_agent(model) if model is not None else None

    async def create(self, agent: Agent) -> Agent:
        async with self.db.session() as session:
            existing = await session.get(AgentModel, agent.agent_id)
            if existing is not None:
                raise ValueError(f"Agent with ID {agent.agent_id} already exists")
            session.add(self._agent_to_model(agent))
            await session.flush()
        return agent

    async def update(self, agent: Agent) -> Agent:
        async with self.db.session() as session:
            model = await session.get(AgentModel, agent.agent_id)
            if model is None:
                raise ValueError(f"Agent with ID {agent.agent_id} does not exist")

            data = self._agent_to_model(agent)
            model.title = data.title
            model.description = data.description
            model.execution_url = data.execution_url
            model.http_method = data.http_method
            model.headers = data.headers
            model.static_fields = data.static_fields
            model.input_schema = data.input_schema
            model.provider = data.provider
            model.execution_policy = data.execution_policy
            model.status = data.status
            model.updated_at = data.updated_at
            await session.flush()
        return agent

    async def list_all(self) -> list[Agent]:
        stmt = select(AgentModel).order_by(AgentModel.created_at.desc())
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return [self._model_to_agent(m) for m in result.scalars().all()]

    async def list_by_creator(self, creator_id: str) -> list[Agent]:
        stmt = (
            select(AgentModel)
            .where(AgentModel.creator_id == creator_id)
            .order_by(AgentModel.created_at.desc())
        )
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return [self._model_to_agent(m) for m in result.scalars().all()]

    @staticmethod
    def _agent_to_model(agent: Agent) -> AgentModel:
        data = agent.model_dump(mode="json")
        return AgentModel(
            agent_id=agent.agent_id,
            creator_id=agent.creator_id,
            title=agent.title,
            description=agent.description,
            execution_url=agent.execution_url,
            http_method=agent.http_method.value,
            headers=data["headers"],
            static_fields=data["static_fields"],
            input_schema=data["input_schema"],
            provider=agent.provider,
            execution_policy=data["execution_policy"],
            status=agent.status.value,
            created_at=agent.created_at,
            updated_at=agent.updated_at,
        )

    @staticmethod
    def _model_to_agent(model: AgentModel) -> Agent:
        return Agent.model_validate(
            {
                "agent_id": model.agent_id,
                "creator_id": model.creator_id,
                "title": model.title,
                "description": model.description,
                "execution_url": model.execution_url,
                "http_method": model.http_method,
                "headers": model.headers or {},
                "static_fields": model.static_fields or {},
                "input_schema": model.input_schema or [],
                "provider": model.provider,
                "execution_policy": model.execution_policy,
                "status": model.status,
                "created_at": _as_utc(model.created_at),
                "updated_at": _as_utc(model.updated_at),
            }
        )


class SqlExecutionStore:
    """SQL-backed implementation of ExecutionStore.

    Transitions are conditional updates (``WHERE status = 'running'``); the
    database decides which of two concurrent writers wins.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def get_by_id(self, execution_id: str) -> Optional[Execution]:
        async with self.db.session() as session:
            model = await session.get(ExecutionModel, execution_id)
            return self._model_to_execution(model) if model is not None else None

    async def create(self, execution: Execution) -> Execution:
        async with self.db.session() as session:
            existing = await session.get(ExecutionModel, execution.execution_id)
            if existing is not None:
                raise ValueError(f"Execution with ID {execution.execution_id} already exists")
            session.add(
                ExecutionModel(
                    execution_id=execution.execution_id,
                    agent_id=execution.agent_id,
                    user_id=execution.user_id,
                    status=execution.status.value,
                    inputs=execution.inputs,
                    result=execution.result,
                    error=execution.error,
                    created_at=execution.created_at,
                    completed_at=execution.completed_at,
                )
            )
            await session.flush()
        return execution

    async def update(self, execution: Execution) -> Execution:
        stmt = (
            update(ExecutionModel)
            .where(
                ExecutionModel.execution_id == execution.execution_id,
                ExecutionModel.status == ExecutionStatus.RUNNING.value,
            )
            .values(
                status=execution.status.value,
                result=execution.result,
                error=execution.error,
                completed_at=execution.completed_at,
            )
        )
        async with self.db.session() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                stored = await session.get(ExecutionModel, execution.execution_id)
                if stored is None:
                    raise ExecutionNotFoundError(execution.execution_id)
                raise ExecutionStateError(execution.execution_id, stored.status, "update")
        return execution

    async def list_by_user(self, user_id: str) -> list[Execution]:
        stmt = (
            select(ExecutionModel)
            .where(ExecutionModel.user_id == user_id)
            .order_by(ExecutionModel.created_at.desc())
        )
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return [self._model_to_execution(m) for m in result.scalars().all()]

    @staticmethod
    def _model_to_execution(model: ExecutionModel) -> Execution:
        return Execution(
            execution_id=model.execution_id,
            agent_id=model.agent_id,
            user_id=model.user_id,
            status=ExecutionStatus(model.status),
            inputs=model.inputs or {},
            result=model.result,
            error=model.error,
            created_at=_as_utc(model.created_at),
            completed_at=_as_utc(model.completed_at),
        )
