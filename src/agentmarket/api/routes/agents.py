"""Agent registration and discovery route handlers."""

from typing import Any

from fastapi import APIRouter, Depends

from agentmarket.agents.models import Agent, AgentCreate, AgentUpdate
from agentmarket.api.dependencies import get_agent_service
from agentmarket.api.schemas.agents import AgentEnvelope, AgentFormResponse, AgentListResponse
from agentmarket.execution.service import AgentService
from agentmarket.observability.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["agents"])


def _serialize(agent: Agent) -> dict[str, Any]:
    return agent.model_dump(mode="json")


@router.post("/create-agent", response_model=AgentEnvelope)
async def create_agent(
    request: AgentCreate,
    service: AgentService = Depends(get_agent_service),
) -> AgentEnvelope:
    """Register a new agent.

    Example:
        >>> POST /api/create-agent
        >>> {"creator_id": "c1", "title": "Grammar Fixer", "description": "...",
        ...  "execution_url": "https://agent.lyzr.ai/v3/chat", "input_schema": [...]}
    """
    agent = await service.create(request)
    return AgentEnvelope(agent=_serialize(agent), message="Agent created successfully")


@router.get("/agents")
async def list_agents(service: AgentService = Depends(get_agent_service)) -> list[dict[str, Any]]:
    """List every agent, newest first."""
    agents = await service.list_all()
    logger.info("agents_listed", count=len(agents))
    return [_serialize(agent) for agent in agents]


@router.get("/agents/{agent_id}")
async def get_agent(
    agent_id: str, service: AgentService = Depends(get_agent_service)
) -> dict[str, Any]:
    """Fetch one agent; 404 when it does not exist."""
    return _serialize(await service.get(agent_id))


@router.put("/agents/{agent_id}", response_model=AgentEnvelope)
async def update_agent(
    agent_id: str,
    update: AgentUpdate,
    service: AgentService = Depends(get_agent_service),
) -> AgentEnvelope:
    agent = await service.update(agent_id, update)
    return AgentEnvelope(agent=_serialize(agent), message="Agent updated successfully")


@router.get("/agents/{agent_id}/form", response_model=AgentFormResponse)
async def get_agent_form(
    agent_id: str, service: AgentService = Depends(get_agent_service)
) -> AgentFormResponse:
    """Form field configuration for the agent's input schema."""
    agent = await service.get(agent_id)
    fields = await service.form_config(agent_id)
    return AgentFormResponse(agent_id=agent.agent_id, title=agent.title, fields=fields)


@router.get("/creator/{creator_id}/agents", response_model=AgentListResponse)
async def list_creator_agents(
    creator_id: str, service: AgentService = Depends(get_agent_service)
) -> AgentListResponse:
    agents = await service.list_by_creator(creator_id)
    logger.info("creator_agents_listed", creator_id=creator_id, count=len(agents))
    return AgentListResponse(agents=[_serialize(a) for a in agents], count=len(agents))
