"""Agent registration and execution submission services."""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from agentmarket.agents.errors import (
    AgentNotFoundError,
    AgentRegistrationError,
    ExecutionNotFoundError,
)
from agentmarket.agents.models import Agent, AgentCreate, AgentUpdate
from agentmarket.execution.models import Execution
from agentmarket.execution.policy import PolicyTable
from agentmarket.execution.webhook import WebhookCaller
from agentmarket.normalization.adapters import AdapterRegistry
from agentmarket.normalization.templates import TemplateRegistry
from agentmarket.observability.logging import get_logger
from agentmarket.observability.metrics import MetricsCollector, get_metrics_collector
from agentmarket.storage.base import AgentStore, ExecutionStore
from agentmarket.validation.schema import get_field_config, is_valid_url, validate_input

logger = get_logger(__name__)


class AgentService:
    """Registers and looks up agents.

    Registration attaches an execution policy to every agent: the one
    supplied by the creator, or the host policy for its execution URL.
    """

    def __init__(
        self,
        agent_store: AgentStore,
        policies: Optional[PolicyTable] = None,
        adapters: Optional[AdapterRegistry] = None,
        templates: Optional[TemplateRegistry] = None,
    ) -> None:
        self.agent_store = agent_store
        self.policies = policies or PolicyTable()
        self.adapters = adapters
        self.templates = templates

    def _check_definition(self, agent: Agent) -> None:
        if not is_valid_url(agent.execution_url) or not agent.execution_url.lower().startswith(
            ("http://", "https://")
        ):
            raise AgentRegistrationError(
                f"execution_url must be an http(s) URL: {agent.execution_url}"
            )
        if agent.provider and self.adapters is not None:
            if self.adapters.get(agent.provider) is None:
                raise AgentRegistrationError(f"Unknown provider: {agent.provider}")
        policy = agent.execution_policy
        if policy and policy.fallback_template and self.templates is not None:
            if not self.templates.has_template(policy.fallback_template):
                raise AgentRegistrationError(
                    f"Unknown fallback template: {policy.fallback_template}"
                )

    async def create(self, request: AgentCreate) -> Agent:
        """Register a new agent.

        Raises:
            AgentRegistrationError: If the definition is rejected
        """
        now = datetime.now(timezone.utc)
        agent = Agent(**request.model_dump(), created_at=now, updated_at=now)
        if agent.execution_policy is None:
            agent = agent.model_copy(
                update={"execution_policy": self.policies.for_url(agent.execution_url)}
            )
        self._check_definition(agent)

        await self.agent_store.create(agent)
        logger.info(
            "agent_created",
            agent_id=agent.agent_id,
            creator_id=agent.creator_id,
            method=agent.http_method.value,
            headers=len(agent.headers),
            static_fields=len(agent.static_fields),
            input_fields=len(agent.input_schema),
        )
        return agent

    async def get(self, agent_id: str) -> Agent:
        """Return an agent.

        Raises:
            AgentNotFoundError: If no such agent exists
        """
        agent = await self.agent_store.get_by_id(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    async def update(self, agent_id: str, update: AgentUpdate) -> Agent:
        """Apply a partial update.

        Changing the execution URL without supplying a policy re-derives the
        policy from the host table.
        """
        current = await self.get(agent_id)
        agent = current.apply_update(update)
        fields_set = update.model_fields_set
        if "execution_url" in fields_set and "execution_policy" not in fields_set:
            agent = agent.model_copy(
                update={"execution_policy": self.policies.for_url(agent.execution_url)}
            )
        agent = agent.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        self._check_definition(agent)

        await self.agent_store.update(agent)
        logger.info("agent_updated", agent_id=agent_id, fields=sorted(fields_set))
        return agent

    async def list_all(self) -> list[Agent]:
        return await self.agent_store.list_all()

    async def list_by_creator(self, creator_id: str) -> list[Agent]:
        return await self.agent_store.list_by_creator(creator_id)

    async def form_config(self, agent_id: str) -> list[dict[str, Any]]:
        """Form field configuration for an agent's input schema."""
        agent = await self.get(agent_id)
        return [get_field_config(field) for field in agent.input_schema]


class ExecutionService:
    """Submits executions and tracks their records.

    Example:
        >>> service = ExecutionService(agent_store, execution_store)
        >>> execution = await service.submit("agent_cf15c39b", "u1", {"text": "i am"})
        >>> execution.status
        <ExecutionStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        agent_store: AgentStore,
        execution_store: ExecutionStore,
        caller: Optional[WebhookCaller] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.agent_store = agent_store
        self.execution_store = execution_store
        self.caller = caller or WebhookCaller()
        self._metrics = metrics or get_metrics_collector()

    async def submit(
        self, agent_id: str, user_id: str, inputs: Mapping[str, Any]
    ) -> Execution:
        """Run an agent for a user and record the outcome.

        Returns:
            The terminal execution, ``completed`` or ``failed``. Upstream and
            transport failures produce a ``failed`` execution, not an exception.

        Raises:
            AgentNotFoundError: If the agent does not exist
            InputValidationError: If the inputs violate the schema; no record
                is written
        """
        agent = await self.agent_store.get_by_id(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)

        validate_input(agent.input_schema, inputs)

        execution = await self.execution_store.create(
            Execution(agent_id=agent_id, user_id=user_id, inputs=dict(inputs))
        )
        logger.info(
            "execution_started",
            execution_id=execution.execution_id,
            agent_id=agent_id,
            user_id=user_id,
        )

        try:
            result = await self.caller.call(agent, inputs, user_id)
        except Exception as e:
            await self.execution_store.update(execution.fail(str(e)))
            self._metrics.record_execution("failed")
            logger.error(
                "execution_crashed",
                execution_id=execution.execution_id,
                error=str(e),
                exc_info=True,
            )
            raise

        if result.error:
            final = execution.fail(result.message, result.to_dict())
            logger.warning(
                "execution_failed",
                execution_id=execution.execution_id,
                message=result.message,
            )
        else:
            final = execution.complete(result.to_dict())
            logger.info(
                "execution_completed",
                execution_id=execution.execution_id,
                summary=result.summary or "No summary provided",
            )

        final = await self.execution_store.update(final)
        self._metrics.record_execution(final.status.value)
        return final

    async def get(self, user_id: str, execution_id: str) -> Execution:
        """Return one of a user's executions.

        Raises:
            ExecutionNotFoundError: If it does not exist or belongs to another user
        """
        execution = await self.execution_store.get_by_id(execution_id)
        if execution is None or execution.user_id != user_id:
            raise ExecutionNotFoundError(execution_id, user_id)
        return execution

    async def list_for_user(self, user_id: str) -> list[Execution]:
        """A user's executions, newest first."""
        return await self.execution_store.list_by_user(user_id)
