"""Tests for agent definition models."""

import pytest
from pydantic import ValidationError

from agentmarket.agents.models import (
    Agent,
    AgentStatus,
    AgentUpdate,
    ExecutionPolicy,
    FieldDefinition,
    FieldType,
    HttpMethod,
)


class TestFieldDefinition:
    def test_dropdown_requires_options(self) -> None:
        with pytest.raises(ValidationError, match="at least one option"):
            FieldDefinition(name="mode", type=FieldType.DROPDOWN)

    def test_invalid_pattern_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Invalid pattern"):
            FieldDefinition(name="code", type=FieldType.STRING, pattern="[unclosed")

    def test_display_label(self) -> None:
        assert FieldDefinition(name="a", type=FieldType.STRING).display_label == "a"
        assert FieldDefinition(name="a", type=FieldType.STRING, label="A").display_label == "A"


class TestAgent:
    def test_defaults(self, make_agent) -> None:
        agent = make_agent()

        assert agent.agent_id.startswith("agent_")
        assert len(agent.agent_id) == len("agent_") + 8
        assert agent.status == AgentStatus.ACTIVE
        assert agent.http_method == HttpMethod.POST
        assert agent.headers == {}
        assert agent.static_fields == {}

    def test_lowercase_method_accepted(self, make_agent) -> None:
        assert make_agent(http_method="get").http_method == HttpMethod.GET

    def test_duplicate_field_names_rejected(self, make_agent) -> None:
        schema = [
            FieldDefinition(name="text", type=FieldType.TEXT),
            FieldDefinition(name="text", type=FieldType.STRING),
        ]

        with pytest.raises(ValidationError, match="Duplicate field name"):
            make_agent(input_schema=schema)

    def test_empty_title_rejected(self, make_agent) -> None:
        with pytest.raises(ValidationError):
            make_agent(title="")

    def test_apply_update_only_touches_set_fields(self, make_agent) -> None:
        agent = make_agent(agent_id="agent_1", static_fields={"model": "x"})

        updated = agent.apply_update(AgentUpdate(title="Renamed", status=AgentStatus.INACTIVE))

        assert updated.title == "Renamed"
        assert updated.status == AgentStatus.INACTIVE
        assert updated.agent_id == "agent_1"
        assert updated.static_fields == {"model": "x"}
        assert agent.title == "Grammar Fixer"


class TestExecutionPolicy:
    def test_timeout_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ExecutionPolicy(timeout_ms=10)
        with pytest.raises(ValidationError):
            ExecutionPolicy(timeout_ms=700000)

    def test_default_timeout(self) -> None:
        assert ExecutionPolicy().timeout_ms == 60000
