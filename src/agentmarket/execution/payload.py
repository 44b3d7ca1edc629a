"""Outbound payload construction for agent webhooks.

Combines creator-defined static fields, placeholder substitution and user
inputs into a single request description. Supported placeholders, in static
field values and header values:

- ``{{timestamp}}``: current UTC instant in ISO-8601
- ``{{API_KEY}}``: taken from the user inputs (``api_key``, ``apiKey`` or ``key``)
- ``{{USER_ID}}``: the submitting user's id, ``anonymous`` when there is none
"""

from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

from agentmarket.agents.models import Agent
from agentmarket.execution.models import ExecutionPayload
from agentmarket.observability.logging import get_logger
from agentmarket.validation.schema import validate_input

logger = get_logger(__name__)

TIMESTAMP_PLACEHOLDER = "{{timestamp}}"
API_KEY_PLACEHOLDER = "{{API_KEY}}"
USER_ID_PLACEHOLDER = "{{USER_ID}}"

API_KEY_INPUT_NAMES = ("api_key", "apiKey", "key")
ANONYMOUS_USER_ID = "anonymous"
DEFAULT_USER_AGENT = "AI-Agent-Marketplace/1.0"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Format an instant as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def find_api_key(user_inputs: Mapping[str, Any]) -> Optional[str]:
    """Return the first non-empty API key found in the user inputs."""
    for name in API_KEY_INPUT_NAMES:
        value = user_inputs.get(name)
        if value:
            return str(value)
    return None


class PayloadBuilder:
    """Builds the outbound request for an agent execution.

    Example:
        >>> builder = PayloadBuilder()
        >>> payload = builder.build(agent, {"text": "hello"}, user_id="u1")
        >>> payload.body
        {'user_id': 'u1', 'text': 'hello'}
    """

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, clock: Clock = utc_now) -> None:
        """Initialize the builder.

        Args:
            user_agent: Default ``User-Agent`` header value
            clock: Source of the instant substituted for ``{{timestamp}}``
        """
        self._user_agent = user_agent
        self._clock = clock

    def process_placeholders(self, value: Any, user_inputs: Mapping[str, Any]) -> Any:
        """Substitute ``{{timestamp}}`` and ``{{API_KEY}}`` in a string value.

        ``{{USER_ID}}`` is left in place; it is resolved by
        :meth:`resolve_user_id` once the user id is known. Non-string values
        are returned unchanged.
        """
        if not isinstance(value, str):
            return value

        processed = value
        if TIMESTAMP_PLACEHOLDER in processed:
            processed = processed.replace(TIMESTAMP_PLACEHOLDER, format_timestamp(self._clock()))

        if API_KEY_PLACEHOLDER in processed:
            api_key = find_api_key(user_inputs)
            if api_key:
                processed = processed.replace(API_KEY_PLACEHOLDER, api_key)
            else:
                logger.warning(
                    "api_key_placeholder_unresolved",
                    looked_up=list(API_KEY_INPUT_NAMES),
                )

        return processed

    @staticmethod
    def resolve_user_id(value: Any, user_id: Optional[str]) -> Any:
        """Substitute ``{{USER_ID}}`` in a string value."""
        if isinstance(value, str) and USER_ID_PLACEHOLDER in value:
            return value.replace(USER_ID_PLACEHOLDER, user_id or ANONYMOUS_USER_ID)
        return value

    def process_fields(
        self,
        fields: Mapping[str, Any],
        user_inputs: Mapping[str, Any],
        user_id: Optional[str],
    ) -> dict[str, Any]:
        """Run both placeholder passes over every value of a mapping."""
        first_pass = {
            key: self.process_placeholders(value, user_inputs) for key, value in fields.items()
        }
        return {key: self.resolve_user_id(value, user_id) for key, value in first_pass.items()}

    def merge_fields(
        self,
        static_fields: Mapping[str, Any],
        user_inputs: Mapping[str, Any],
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """Merge static fields and user inputs into the request body.

        Order, later keys winning: ``user_id`` (when supplied), processed
        static fields, raw user inputs. A user input therefore overrides a
        creator-defined static field of the same name.
        """
        processed_static = self.process_fields(static_fields, user_inputs, user_id)

        overridden = sorted(key for key in user_inputs if key in processed_static)
        if overridden:
            logger.debug("static_field_overridden", fields=overridden)

        body: dict[str, Any] = {}
        if user_id:
            body["user_id"] = user_id
        body.update(processed_static)
        body.update(user_inputs)
        return body

    def prepare_headers(
        self,
        custom_headers: Mapping[str, str],
        user_inputs: Mapping[str, Any],
        user_id: Optional[str] = None,
    ) -> dict[str, str]:
        """Build request headers: defaults overlaid by processed custom headers."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._user_agent,
        }
        processed = self.process_fields(custom_headers, user_inputs, user_id)
        headers.update({key: str(value) for key, value in processed.items()})
        return headers

    def build(
        self,
        agent: Agent,
        user_inputs: Mapping[str, Any],
        user_id: Optional[str] = None,
    ) -> ExecutionPayload:
        """Validate inputs and build the outbound request.

        Args:
            agent: Agent being executed
            user_inputs: Inputs submitted by the user
            user_id: Submitting user's id

        Returns:
            ExecutionPayload with url, method, headers and body

        Raises:
            InputValidationError: If the inputs violate the agent's schema;
                nothing is built and no request may be sent
        """
        validate_input(agent.input_schema, user_inputs)

        return ExecutionPayload(
            url=agent.execution_url,
            method=agent.http_method.value,
            headers=self.prepare_headers(agent.headers, user_inputs, user_id),
            body=self.merge_fields(agent.static_fields, user_inputs, user_id),
        )


def validate_static_fields(
    static_fields: Mapping[str, Any], required_fields: Sequence[str]
) -> list[str]:
    """Return an error for every required static field that is missing or empty."""
    return [
        f"Missing required static field: {name}"
        for name in required_fields
        if not static_fields.get(name)
    ]


_default_builder = PayloadBuilder()


def create_execution_payload(
    agent: Agent, user_inputs: Mapping[str, Any], user_id: Optional[str] = None
) -> ExecutionPayload:
    """Build the outbound request with the default builder."""
    return _default_builder.build(agent, user_inputs, user_id)
