"""Webhook caller for agent executions.

Sends the outbound request built by :class:`PayloadBuilder` and turns
whatever comes back, including transport failures, into a normalized result.
Transport and upstream problems never raise; only invalid user inputs do,
before any request is sent.
"""

import time
from typing import Any, Mapping, Optional

import httpx

from agentmarket.agents.models import Agent
from agentmarket.execution.models import ExecutionPayload
from agentmarket.execution.payload import PayloadBuilder
from agentmarket.execution.policy import PolicyTable
from agentmarket.normalization.normalizer import ResponseNormalizer
from agentmarket.normalization.results import FailureResult, NormalizedResult
from agentmarket.observability.logging import get_logger, redact_headers
from agentmarket.observability.metrics import MetricsCollector, get_metrics_collector

logger = get_logger(__name__)

# Methods whose merged body travels as query parameters
QUERY_METHODS = frozenset({"GET", "DELETE"})

TIMEOUT_MESSAGE = "Agent execution timed out. The service may be overloaded."
NOT_FOUND_MESSAGE = "Agent service URL not found. Please verify the endpoint configuration."
UNAVAILABLE_MESSAGE = "Agent service is not available. Please check if the service is running."

# Substrings of resolver errors across platforms
_DNS_ERROR_HINTS = (
    "Name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "No address associated",
    "Temporary failure in name resolution",
)


def classify_transport_error(error: httpx.RequestError) -> tuple[str, str]:
    """Map a transport error to a metrics category and a user-facing message."""
    if isinstance(error, httpx.TimeoutException):
        return "timeout", TIMEOUT_MESSAGE
    if isinstance(error, httpx.ConnectError):
        text = str(error)
        if any(hint in text for hint in _DNS_ERROR_HINTS):
            return "dns", NOT_FOUND_MESSAGE
        return "connection", UNAVAILABLE_MESSAGE
    return "request", f"Failed to execute agent: {error}"


def _query_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


class WebhookCaller:
    """Calls agent webhooks.

    Example:
        >>> caller = WebhookCaller()
        >>> result = await caller.call(agent, {"text": "i am here"}, user_id="u1")
        >>> result.error
        False
    """

    def __init__(
        self,
        builder: Optional[PayloadBuilder] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        policies: Optional[PolicyTable] = None,
        client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        """Initialize the caller.

        Args:
            builder: Outbound payload builder
            normalizer: Response normalizer; shares ``policies`` when created here
            policies: Execution policy table (timeouts, fallback templates)
            client: Shared HTTP client; a short-lived client per call when None
            metrics: Metrics collector
        """
        self.policies = policies or (normalizer.policies if normalizer else PolicyTable())
        self.builder = builder or PayloadBuilder()
        self.normalizer = normalizer or ResponseNormalizer(policies=self.policies)
        self._client = client
        self._metrics = metrics or get_metrics_collector()

    async def call(
        self,
        agent: Agent,
        user_inputs: Mapping[str, Any],
        user_id: Optional[str] = None,
    ) -> NormalizedResult:
        """Execute an agent and return its normalized result.

        Args:
            agent: Agent to execute
            user_inputs: Inputs submitted by the user
            user_id: Submitting user's id

        Returns:
            SuccessResult or FailureResult

        Raises:
            InputValidationError: If the inputs violate the agent's schema
        """
        payload = self.builder.build(agent, user_inputs, user_id)
        policy = self.policies.resolve(agent)
        adapter = self.normalizer.adapters.resolve(agent)
        provider = adapter.provider_id if adapter else "generic"

        logger.info(
            "webhook_call_started",
            agent_id=agent.agent_id,
            url=payload.url,
            method=payload.method,
            headers=redact_headers(payload.headers),
            timeout_ms=policy.timeout_ms,
            provider=provider,
        )

        start = time.perf_counter()
        try:
            response = await self._send(payload, policy.timeout_ms / 1000)
        except httpx.RequestError as e:
            duration = time.perf_counter() - start
            self._metrics.record_webhook_call(provider, duration)
            return self._handle_transport_error(agent, user_inputs, e)

        duration = time.perf_counter() - start
        self._metrics.record_webhook_call(provider, duration)
        logger.info(
            "webhook_call_completed",
            agent_id=agent.agent_id,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        if not response.is_success:
            self._metrics.record_webhook_error("http_status")

        return self.normalizer.normalize(agent, response, user_inputs)

    async def _send(self, payload: ExecutionPayload, timeout_seconds: float) -> httpx.Response:
        kwargs: dict[str, Any] = {
            "headers": payload.headers,
            "timeout": timeout_seconds,
            "follow_redirects": True,
        }
        if payload.method in QUERY_METHODS:
            kwargs["params"] = {key: _query_value(value) for key, value in payload.body.items()}
        else:
            kwargs["json"] = payload.body

        if self._client is not None:
            return await self._client.request(payload.method, payload.url, **kwargs)

        async with httpx.AsyncClient() as client:
            return await client.request(payload.method, payload.url, **kwargs)

    def _handle_transport_error(
        self,
        agent: Agent,
        user_inputs: Mapping[str, Any],
        error: httpx.RequestError,
    ) -> NormalizedResult:
        category, message = classify_transport_error(error)
        self._metrics.record_webhook_error(category)
        logger.warning(
            "webhook_call_failed",
            agent_id=agent.agent_id,
            url=agent.execution_url,
            category=category,
            error=str(error),
        )

        if category == "timeout":
            fallback = self.normalizer.local_fallback(agent, user_inputs, original_error=message)
            if fallback is not None:
                return fallback

        return FailureResult(message=message, details=type(error).__name__)


_default_caller: Optional[WebhookCaller] = None


async def call_agent_webhook(
    agent: Agent, user_inputs: Mapping[str, Any], user_id: Optional[str] = None
) -> NormalizedResult:
    """Execute an agent with the default caller."""
    global _default_caller
    if _default_caller is None:
        _default_caller = WebhookCaller()
    return await _default_caller.call(agent, user_inputs, user_id)
