"""Tests for outbound payload construction."""

from datetime import datetime, timezone

import pytest
import structlog
from structlog.testing import capture_logs

from agentmarket.agents.errors import InputValidationError
from agentmarket.execution import payload as payload_module
from agentmarket.execution.payload import (
    PayloadBuilder,
    create_execution_payload,
    find_api_key,
    format_timestamp,
    validate_static_fields,
)

FIXED_NOW = datetime(2025, 3, 14, 9, 26, 53, 589000, tzinfo=timezone.utc)


@pytest.fixture
def builder() -> PayloadBuilder:
    return PayloadBuilder(clock=lambda: FIXED_NOW)


class TestPlaceholders:
    """Tests for placeholder substitution."""

    def test_timestamp_format(self) -> None:
        assert format_timestamp(FIXED_NOW) == "2025-03-14T09:26:53.589Z"

    def test_naive_timestamp_treated_as_utc(self) -> None:
        assert format_timestamp(datetime(2025, 1, 1)) == "2025-01-01T00:00:00.000Z"

    def test_timestamp_placeholder(self, builder: PayloadBuilder) -> None:
        value = builder.process_placeholders("at {{timestamp}}", {})

        assert value == "at 2025-03-14T09:26:53.589Z"

    def test_every_occurrence_replaced(self, builder: PayloadBuilder) -> None:
        value = builder.process_placeholders("{{timestamp}}/{{timestamp}}", {})

        assert value == "2025-03-14T09:26:53.589Z/2025-03-14T09:26:53.589Z"

    @pytest.mark.parametrize("key_name", ["api_key", "apiKey", "key"])
    def test_api_key_lookup_names(self, builder: PayloadBuilder, key_name: str) -> None:
        value = builder.process_placeholders("Bearer {{API_KEY}}", {key_name: "sk-1"})

        assert value == "Bearer sk-1"

    def test_api_key_lookup_order(self) -> None:
        assert find_api_key({"key": "third", "apiKey": "second", "api_key": "first"}) == "first"
        assert find_api_key({"api_key": "", "key": "third"}) == "third"
        assert find_api_key({}) is None

    def test_unresolved_api_key_left_in_place(
        self, builder: PayloadBuilder, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        with capture_logs() as logs:
            # A fresh logger, since module loggers may be cached before capture starts
            monkeypatch.setattr(payload_module, "logger", structlog.get_logger())
            value = builder.process_placeholders("Bearer {{API_KEY}}", {})

        assert value == "Bearer {{API_KEY}}"
        [event] = [log for log in logs if log["event"] == "api_key_placeholder_unresolved"]
        assert event["log_level"] == "warning"

    def test_non_string_values_untouched(self, builder: PayloadBuilder) -> None:
        assert builder.process_placeholders(5, {}) == 5
        assert builder.process_placeholders({"a": "{{timestamp}}"}, {}) == {"a": "{{timestamp}}"}

    def test_user_id_placeholder(self) -> None:
        assert PayloadBuilder.resolve_user_id("u={{USER_ID}}", "u1") == "u=u1"
        assert PayloadBuilder.resolve_user_id("u={{USER_ID}}", None) == "u=anonymous"


class TestMergeFields:
    """Tests for body merging."""

    def test_merge_order(self, builder: PayloadBuilder) -> None:
        body = builder.merge_fields(
            {"agent_id": "a1", "session_id": "{{USER_ID}}-session"}, {"text": "hi"}, "u1"
        )

        assert body == {
            "user_id": "u1",
            "agent_id": "a1",
            "session_id": "u1-session",
            "text": "hi",
        }
        assert list(body) == ["user_id", "agent_id", "session_id", "text"]

    def test_user_input_overrides_static_field(self, builder: PayloadBuilder) -> None:
        body = builder.merge_fields({"mode": "static"}, {"mode": "user"}, "u1")

        assert body["mode"] == "user"

    def test_no_user_id_key_without_user(self, builder: PayloadBuilder) -> None:
        body = builder.merge_fields({"session": "{{USER_ID}}"}, {})

        assert body == {"session": "anonymous"}

    def test_inputs_not_placeholder_processed(self, builder: PayloadBuilder) -> None:
        body = builder.merge_fields({}, {"text": "{{timestamp}}"}, "u1")

        assert body["text"] == "{{timestamp}}"

    def test_deterministic_with_fixed_clock(self, builder: PayloadBuilder) -> None:
        static = {"ts": "{{timestamp}}", "auth": "{{API_KEY}}"}
        inputs = {"api_key": "k", "text": "t"}

        assert builder.merge_fields(static, inputs, "u1") == builder.merge_fields(
            static, inputs, "u1"
        )


class TestHeaders:
    def test_defaults_and_custom_headers(self, builder: PayloadBuilder) -> None:
        headers = builder.prepare_headers(
            {"x-api-key": "{{API_KEY}}", "X-User": "{{USER_ID}}"}, {"apiKey": "sk-9"}, "u7"
        )

        assert headers == {
            "Content-Type": "application/json",
            "User-Agent": "AI-Agent-Marketplace/1.0",
            "x-api-key": "sk-9",
            "X-User": "u7",
        }

    def test_custom_header_overrides_default(self) -> None:
        builder = PayloadBuilder(user_agent="custom/2.0")

        headers = builder.prepare_headers({"Content-Type": "text/plain"}, {})

        assert headers["Content-Type"] == "text/plain"
        assert headers["User-Agent"] == "custom/2.0"


class TestBuild:
    def test_build_payload(self, builder: PayloadBuilder, make_agent) -> None:
        agent = make_agent(
            execution_url=("https://agent-prod.studio.lyzr.ai/v3/inference/chat/"),
            headers={"x-api-key": "sk-default"},
            static_fields={"agent_id": "68a8", "session_id": "68a8-{{USER_ID}}"},
        )

        payload = builder.build(agent, {"text": "i am here"}, "u1")

        assert payload.url == "https://agent-prod.studio.lyzr.ai/v3/inference/chat/"
        assert payload.method == "POST"
        assert payload.headers["x-api-key"] == "sk-default"
        assert payload.body == {
            "user_id": "u1",
            "agent_id": "68a8",
            "session_id": "68a8-u1",
            "text": "i am here",
        }

    def test_invalid_inputs_raise_before_building(self, builder: PayloadBuilder, make_agent) -> None:
        with pytest.raises(InputValidationError):
            builder.build(make_agent(), {}, "u1")

    def test_module_level_helper(self, make_agent) -> None:
        payload = create_execution_payload(make_agent(), {"text": "x"}, "u2")

        assert payload.body["user_id"] == "u2"


def test_validate_static_fields() -> None:
    errors = validate_static_fields({"agent_id": "a", "session_id": ""}, ["agent_id", "session_id", "x"])

    assert errors == [
        "Missing required static field: session_id",
        "Missing required static field: x",
    ]
