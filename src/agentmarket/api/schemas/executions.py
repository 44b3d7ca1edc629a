"""Execution endpoint schemas."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class SubmitExecutionRequest(BaseModel):
    """Request to run an agent.

    Attributes:
        agent_id: Agent to run
        user_id: Submitting user
        inputs: Values for the agent's input schema
    """

    agent_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    inputs: dict[str, Any]


class SubmitExecutionResponse(BaseModel):
    """Result of a completed execution."""

    success: bool = True
    execution_id: str
    result: Optional[dict[str, Any]] = None
    message: str = "Agent execution completed successfully"


class ExecutionFailedResponse(BaseModel):
    """Body of the 500 returned for a failed execution."""

    success: bool = False
    execution_id: str
    error: str = "Agent execution failed"
    message: str
    details: Any = None


class ExecutionListResponse(BaseModel):
    success: bool = True
    executions: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0


class ExecutionResponse(BaseModel):
    success: bool = True
    execution: dict[str, Any]
