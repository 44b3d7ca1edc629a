"""Maps webhook responses into normalized results."""

import json
from typing import Any, Mapping, Optional

import httpx

from agentmarket.agents.models import Agent
from agentmarket.execution.policy import PolicyTable
from agentmarket.normalization.adapters import DEMO_PROVIDER, AdapterRegistry, is_truthy
from agentmarket.normalization.results import FailureResult, NormalizedResult, SuccessResult
from agentmarket.normalization.templates import TemplateRegistry
from agentmarket.observability.logging import get_logger

logger = get_logger(__name__)

GENERIC_SUMMARY = "Agent execution completed successfully"
GENERIC_OUTPUT_FIELDS = ("text_output", "response", "answer", "output")

DEFAULT_FAILURE_MESSAGE = "Agent execution failed"
DEFAULT_FAILURE_DETAILS = "No additional details available"

STATUS_MESSAGES: dict[int, str] = {
    401: "Authentication failed. Please check your API key.",
    403: "Access denied. Please check your API permissions.",
    429: "Rate limit exceeded. Please try again later.",
    500: "Agent service internal error. Please try again later.",
}


def parse_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to its text."""
    text = response.text
    try:
        return json.loads(text)
    except ValueError:
        return text


def coerce_to_object(body: Any) -> dict[str, Any]:
    """Wrap anything that is not a JSON object as ``{"text_output": body}``."""
    if isinstance(body, dict):
        return body
    return {"text_output": body}


class ResponseNormalizer:
    """Turns an HTTP response into a SuccessResult or FailureResult.

    Example:
        >>> normalizer = ResponseNormalizer()
        >>> result = normalizer.normalize(agent, httpx.Response(200, json={"answer": "42"}))
        >>> result.to_dict()["text_output"]
        '42'
    """

    def __init__(
        self,
        adapters: Optional[AdapterRegistry] = None,
        templates: Optional[TemplateRegistry] = None,
        policies: Optional[PolicyTable] = None,
    ) -> None:
        self.adapters = adapters or AdapterRegistry.with_builtin_adapters()
        self.templates = templates or TemplateRegistry.with_builtin_templates()
        self.policies = policies or PolicyTable()

    def normalize(
        self,
        agent: Agent,
        response: httpx.Response,
        user_inputs: Optional[Mapping[str, Any]] = None,
    ) -> NormalizedResult:
        """Normalize a received response.

        Args:
            agent: Agent that was called
            response: Upstream HTTP response, any status
            user_inputs: Inputs of the execution, used by local templates

        Returns:
            The normalized result
        """
        inputs = user_inputs or {}

        if not 200 <= response.status_code < 300:
            return self.failure_from_status(response)

        body = coerce_to_object(parse_body(response))
        adapter = self.adapters.resolve(agent)

        if adapter is None:
            result = self._normalize_generic(body)
        elif adapter.provider_id == DEMO_PROVIDER:
            content = self.templates.generate_for_agent(agent.agent_id, inputs, agent.title)
            result = SuccessResult(summary=content.summary, text_output=content.text_output)
        else:
            result = adapter.normalize(body)
            if result is None:
                logger.info(
                    "provider_field_missing",
                    agent_id=agent.agent_id,
                    provider=adapter.provider_id,
                    field=adapter.field,
                )
                fallback = None
                if adapter.fallback_on_missing:
                    fallback = self.local_fallback(agent, inputs, original_response=body)
                result = fallback or self._error_or_passthrough(body)

        if isinstance(result, SuccessResult):
            return result.ensure_summary()
        return result

    def _normalize_generic(self, body: dict[str, Any]) -> NormalizedResult:
        for name in GENERIC_OUTPUT_FIELDS:
            value = body.get(name)
            if is_truthy(value):
                return SuccessResult(
                    summary=GENERIC_SUMMARY, text_output=value, original_response=body
                )

        return self._error_or_passthrough(body)

    @staticmethod
    def _error_or_passthrough(body: dict[str, Any]) -> NormalizedResult:
        """A truthy ``error`` in an unmapped 2xx body marks the call failed."""
        error = body.get("error")
        if is_truthy(error):
            message = error if isinstance(error, str) else json.dumps(error)
            return FailureResult(message=message, original_response=body)
        return SuccessResult.from_raw(body)

    @staticmethod
    def failure_from_status(response: httpx.Response) -> FailureResult:
        """Build the failure for a non-2xx response."""
        status = response.status_code
        message = STATUS_MESSAGES.get(status) or response.reason_phrase or DEFAULT_FAILURE_MESSAGE
        details = parse_body(response)
        if not is_truthy(details):
            details = DEFAULT_FAILURE_DETAILS
        return FailureResult(message=message, details=details, status=status)

    def local_fallback(
        self,
        agent: Agent,
        user_inputs: Mapping[str, Any],
        original_error: Optional[str] = None,
        original_response: Any = None,
    ) -> Optional[SuccessResult]:
        """Produce output locally from the agent's fallback template.

        Returns:
            A result flagged ``fallback_used``, or None when the agent's policy
            names no fallback template
        """
        template_id = self.policies.resolve(agent).fallback_template
        if not template_id or not self.templates.has_template(template_id):
            return None

        content = self.templates.generate(
            template_id, user_inputs, agent_title=agent.title, agent_id=agent.agent_id
        )
        extra = {"original_error": original_error} if original_error else {}
        logger.info(
            "local_fallback_used",
            agent_id=agent.agent_id,
            template=template_id,
            reason=original_error or "unexpected_response_format",
        )
        return SuccessResult(
            summary=content.summary,
            text_output=content.text_output,
            original_response=original_response,
            fallback_used=True,
            extra=extra,
        )
