"""Wiring of stores, registries and services from configuration.

Shared by the HTTP application and the command line, so both run the same
execution pipeline against the same storage.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from agentmarket.config import MarketplaceConfig
from agentmarket.execution.payload import PayloadBuilder
from agentmarket.execution.policy import PolicyTable
from agentmarket.execution.service import AgentService, ExecutionService
from agentmarket.execution.webhook import WebhookCaller
from agentmarket.normalization.adapters import AdapterRegistry
from agentmarket.normalization.normalizer import ResponseNormalizer
from agentmarket.normalization.templates import TemplateRegistry
from agentmarket.observability.logging import get_logger
from agentmarket.storage.base import AgentStore, ExecutionStore
from agentmarket.storage.database import Database, DatabaseConfig
from agentmarket.storage.memory import InMemoryAgentStore, InMemoryExecutionStore
from agentmarket.storage.repository import SqlAgentStore, SqlExecutionStore

logger = get_logger(__name__)


@dataclass
class MarketplaceServices:
    """Everything a request handler or CLI command needs."""

    config: MarketplaceConfig
    agent_store: AgentStore
    execution_store: ExecutionStore
    policies: PolicyTable
    adapters: AdapterRegistry
    templates: TemplateRegistry
    caller: WebhookCaller
    agent_service: AgentService
    execution_service: ExecutionService
    database: Optional[Database] = None

    async def startup(self) -> None:
        """Create database tables when the SQL backend is in use."""
        if self.database is not None:
            await self.database.create_tables()
        logger.info(
            "marketplace_started",
            storage=self.config.storage,
            providers=len(self.adapters.list_providers()),
        )

    async def shutdown(self) -> None:
        if self.database is not None:
            await self.database.close()
        logger.info("marketplace_stopped")


def build_services(
    config: MarketplaceConfig,
    client: Optional[httpx.AsyncClient] = None,
) -> MarketplaceServices:
    """Build the service graph for a configuration.

    Args:
        config: Marketplace configuration
        client: Shared HTTP client for webhook calls; one per call when None
    """
    database: Optional[Database] = None
    agent_store: AgentStore
    execution_store: ExecutionStore
    if config.storage == "memory":
        agent_store = InMemoryAgentStore()
        execution_store = InMemoryExecutionStore()
    else:
        database = Database(DatabaseConfig(url=config.database_url))
        agent_store = SqlAgentStore(database)
        execution_store = SqlExecutionStore(database)

    policies = config.build_policy_table()
    adapters = AdapterRegistry.with_builtin_adapters()
    templates = TemplateRegistry.with_builtin_templates()
    if config.templates_file:
        templates.load_file(config.templates_file)

    normalizer = ResponseNormalizer(adapters=adapters, templates=templates, policies=policies)
    caller = WebhookCaller(
        builder=PayloadBuilder(user_agent=config.user_agent),
        normalizer=normalizer,
        policies=policies,
        client=client,
    )

    return MarketplaceServices(
        config=config,
        agent_store=agent_store,
        execution_store=execution_store,
        policies=policies,
        adapters=adapters,
        templates=templates,
        caller=caller,
        agent_service=AgentService(
            agent_store, policies=policies, adapters=adapters, templates=templates
        ),
        execution_service=ExecutionService(agent_store, execution_store, caller=caller),
        database=database,
    )
