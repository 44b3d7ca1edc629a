"""FastAPI dependencies resolving services from application state."""

from fastapi import Request

from agentmarket.bootstrap import MarketplaceServices
from agentmarket.execution.service import AgentService, ExecutionService


def get_services(request: Request) -> MarketplaceServices:
    return request.app.state.services


def get_agent_service(request: Request) -> AgentService:
    """Agent registration and lookup service."""
    return get_services(request).agent_service


def get_execution_service(request: Request) -> ExecutionService:
    """Execution submission and lookup service."""
    return get_services(request).execution_service
