"""Agent definitions and the marketplace error hierarchy."""

from agentmarket.agents.errors import (
    AgentNotFoundError,
    AgentRegistrationError,
    ExecutionNotFoundError,
    ExecutionStateError,
    InputValidationError,
    MarketplaceError,
)
from agentmarket.agents.models import (
    Agent,
    AgentCreate,
    AgentStatus,
    AgentUpdate,
    ExecutionPolicy,
    FieldDefinition,
    FieldType,
    HttpMethod,
)

__all__ = [
    "Agent",
    "AgentCreate",
    "AgentNotFoundError",
    "AgentRegistrationError",
    "AgentStatus",
    "AgentUpdate",
    "ExecutionNotFoundError",
    "ExecutionPolicy",
    "ExecutionStateError",
    "FieldDefinition",
    "FieldType",
    "HttpMethod",
    "InputValidationError",
    "MarketplaceError",
]
