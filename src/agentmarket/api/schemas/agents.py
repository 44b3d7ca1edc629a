"""Agent endpoint schemas."""

from typing import Any

from pydantic import BaseModel, Field


class AgentEnvelope(BaseModel):
    """Response for agent creation and update."""

    success: bool = True
    agent: dict[str, Any]
    message: str


class AgentListResponse(BaseModel):
    """A creator's agents."""

    success: bool = True
    agents: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0


class AgentFormResponse(BaseModel):
    """Form field configuration for rendering an agent's input form."""

    success: bool = True
    agent_id: str
    title: str
    fields: list[dict[str, Any]] = Field(default_factory=list)
