"""Execution tracking models."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from agentmarket.agents.errors import ExecutionStateError


class ExecutionStatus(str, Enum):
    """Execution status. ``running`` is the only non-terminal state."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Execution(BaseModel):
    """One invocation attempt of an agent with concrete user inputs.

    Created ``running`` at submission time and moved to ``completed`` or
    ``failed`` exactly once; immutable afterwards.

    Attributes:
        execution_id: Unique execution identifier
        agent_id: Agent that was invoked
        user_id: User who submitted the execution
        status: Current execution status
        inputs: Inputs as submitted
        result: Normalized result, present once terminal
        error: Error message, present only when failed
        created_at: Submission time (``createdAt`` on the wire)
        completed_at: Terminal transition time (``completedAt`` on the wire)
    """

    model_config = ConfigDict(populate_by_name=True)

    execution_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    agent_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    status: ExecutionStatus = ExecutionStatus.RUNNING
    inputs: dict[str, Any] = Field(default_factory=dict)
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    @property
    def is_terminal(self) -> bool:
        """Whether the execution has left the ``running`` state."""
        return self.status != ExecutionStatus.RUNNING

    def _ensure_running(self, operation: str) -> None:
        if self.is_terminal:
            raise ExecutionStateError(self.execution_id, self.status.value, operation)

    def complete(self, result: dict[str, Any]) -> "Execution":
        """Return the completed copy of this execution.

        Raises:
            ExecutionStateError: If the execution is already terminal
        """
        self._ensure_running("complete")
        return self.model_copy(
            update={
                "status": ExecutionStatus.COMPLETED,
                "result": result,
                "completed_at": _utcnow(),
            }
        )

    def fail(self, message: str, result: Optional[dict[str, Any]] = None) -> "Execution":
        """Return the failed copy of this execution.

        Raises:
            ExecutionStateError: If the execution is already terminal
        """
        self._ensure_running("fail")
        return self.model_copy(
            update={
                "status": ExecutionStatus.FAILED,
                "error": message,
                "result": result,
                "completed_at": _utcnow(),
            }
        )


class ExecutionPayload(BaseModel):
    """Outbound webhook request built from an agent and user inputs."""

    url: str
    method: str
    headers: dict[str, str]
    body: dict[str, Any]
