"""Agent definition Pydantic models.

An agent is a creator-registered description of a third-party HTTP webhook
together with the input schema end users fill in to invoke it.
"""

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator


class FieldType(str, Enum):
    """Input field types supported by agent schemas."""

    STRING = "string"
    TEXT = "text"
    DROPDOWN = "dropdown"
    EMAIL = "email"
    URL = "url"
    NUMBER = "number"
    PASSWORD = "password"
    FILE = "file"


class HttpMethod(str, Enum):
    """HTTP methods an agent webhook may be called with."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class AgentStatus(str, Enum):
    """Agent lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class FieldDefinition(BaseModel):
    """A single input field of an agent's input schema.

    Attributes:
        name: Field key in the submitted inputs (unique within a schema)
        type: Field type, drives validation and form rendering
        required: Whether a non-empty value must be supplied
        options: Allowed values (dropdown fields only, at least one)
        label: Human-readable label shown in forms and error messages
        description: Help text
        placeholder: Form placeholder text
        test_example: Example value creators use to try the agent
        min_length: Minimum string length (string/text fields)
        max_length: Maximum string length (string/text fields)
        pattern: Regular expression the value must match
    """

    name: str = Field(..., min_length=1)
    type: FieldType
    required: bool = False
    options: Optional[list[str]] = None
    label: Optional[str] = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    test_example: Optional[Any] = None
    min_length: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("min_length", "minLength")
    )
    max_length: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("max_length", "maxLength")
    )
    pattern: Optional[str] = None

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        """Reject patterns that are not valid regular expressions."""
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid pattern '{v}': {e}") from e
        return v

    @model_validator(mode="after")
    def validate_dropdown_options(self) -> "FieldDefinition":
        """Dropdown fields must carry at least one option."""
        if self.type == FieldType.DROPDOWN and not self.options:
            raise ValueError("Dropdown fields must have at least one option")
        return self

    @property
    def display_label(self) -> str:
        """Label used in validation messages."""
        return self.label or self.name


class ExecutionPolicy(BaseModel):
    """Per-agent execution policy.

    Attributes:
        timeout_ms: Webhook request timeout in milliseconds
        fallback_template: Template id rendered locally when the webhook
            times out, instead of surfacing the timeout as an error
    """

    timeout_ms: int = Field(default=60000, ge=1000, le=600000)
    fallback_template: Optional[str] = None

    class Config:
        """Pydantic config."""

        frozen = True


def generate_agent_id() -> str:
    """Generate a short agent id such as ``agent_1a2b3c4d``."""
    return f"agent_{uuid.uuid4().hex[:8]}"


class AgentDefinition(BaseModel):
    """Creator-supplied fields shared by create requests and stored agents."""

    creator_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    execution_url: str = Field(..., min_length=1)
    http_method: HttpMethod = HttpMethod.POST
    headers: dict[str, str] = Field(default_factory=dict)
    static_fields: dict[str, Any] = Field(default_factory=dict)
    input_schema: list[FieldDefinition]
    provider: Optional[str] = None
    execution_policy: Optional[ExecutionPolicy] = None

    @field_validator("http_method", mode="before")
    @classmethod
    def normalize_http_method(cls, v: Any) -> Any:
        """Accept lower-case method names."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("input_schema")
    @classmethod
    def validate_unique_field_names(cls, v: list[FieldDefinition]) -> list[FieldDefinition]:
        """Field names must be unique within a schema."""
        seen: set[str] = set()
        for field in v:
            if field.name in seen:
                raise ValueError(f"Duplicate field name in input_schema: {field.name}")
            seen.add(field.name)
        return v


class AgentCreate(AgentDefinition):
    """Request model for registering a new agent."""


class AgentUpdate(BaseModel):
    """Partial update of an existing agent. Unset fields are left untouched."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    execution_url: Optional[str] = Field(default=None, min_length=1)
    http_method: Optional[HttpMethod] = None
    headers: Optional[dict[str, str]] = None
    static_fields: Optional[dict[str, Any]] = None
    input_schema: Optional[list[FieldDefinition]] = None
    provider: Optional[str] = None
    execution_policy: Optional[ExecutionPolicy] = None
    status: Optional[AgentStatus] = None

    @field_validator("http_method", mode="before")
    @classmethod
    def normalize_http_method(cls, v: Any) -> Any:
        """Accept lower-case method names."""
        if isinstance(v, str):
            return v.upper()
        return v


class Agent(AgentDefinition):
    """A registered agent.

    Attributes:
        agent_id: Unique agent identifier
        status: Lifecycle status (created ``active``)
        provider: Explicit provider adapter id; resolved from the
            execution URL host when absent
        execution_policy: Policy attached at registration, overrides the
            host policy table
        created_at: Registration timestamp
        updated_at: Last update timestamp
    """

    agent_id: str = Field(default_factory=generate_agent_id, min_length=1)
    status: AgentStatus = AgentStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def apply_update(self, update: AgentUpdate) -> "Agent":
        """Return a copy of this agent with the set fields of ``update`` applied."""
        changes = update.model_dump(exclude_unset=True)
        merged = {**self.model_dump(), **changes}
        return Agent.model_validate(merged)
