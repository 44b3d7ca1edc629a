"""Provider adapters for known agent hosting services.

Each adapter knows which field of a provider's response body carries the
primary output, which extra fields are worth surfacing, and the summary to
attach. The registry resolves an agent to an adapter by its explicit
``provider`` id first and by its webhook host second.
"""

import threading
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Any, Mapping, Optional

from agentmarket.agents.models import Agent
from agentmarket.execution.policy import best_host_match, url_host
from agentmarket.normalization.results import SuccessResult

DEMO_PROVIDER = "demo"


def is_truthy(value: Any) -> bool:
    """Truthiness as upstream JSON producers understand it.

    Empty strings, zero, false and null are absent; empty lists and objects
    are present.
    """
    if value is None or value is False or value == "":
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == value and value != 0
    return True


@dataclass(frozen=True)
class ProviderAdapter:
    """Maps a provider's response body into a SuccessResult.

    Attributes:
        provider_id: Unique provider id
        field: Body field carrying the primary output
        summary: Summary attached to a mapped result
        extras: Body fields copied alongside the output, when present
        extra_defaults: Values used for extras missing from the body
        fallback_on_missing: Use the agent's local fallback template when
            ``field`` is absent, instead of passing the body through
    """

    provider_id: str
    field: Optional[str]
    summary: str = ""
    extras: tuple[str, ...] = ()
    extra_defaults: Mapping[str, Any] = dataclass_field(default_factory=dict)
    fallback_on_missing: bool = False

    def normalize(self, body: Mapping[str, Any]) -> Optional[SuccessResult]:
        """Map a response body, or return None when the output field is absent."""
        if self.field is None or not is_truthy(body.get(self.field)):
            return None

        extra: dict[str, Any] = {}
        for name in self.extras:
            value = body.get(name, self.extra_defaults.get(name))
            if value is not None:
                extra[name] = value

        return SuccessResult(
            summary=self.summary,
            text_output=body[self.field],
            original_response=dict(body),
            extra=extra,
        )


BUILTIN_ADAPTERS: tuple[ProviderAdapter, ...] = (
    ProviderAdapter(
        "lyzr", "response", "Grammar correction completed", fallback_on_missing=True
    ),
    ProviderAdapter(
        "superagent",
        "answer",
        "RAG query processed successfully",
        extras=("sources",),
        extra_defaults={"sources": []},
    ),
    ProviderAdapter("suna", "output", "Task completed successfully", extras=("task_type",)),
    ProviderAdapter(
        "steel-browser", "data", "Browser automation completed", extras=("screenshot",)
    ),
    ProviderAdapter(
        "botsharp", "analysis", "NLP analysis completed", extras=("sentiment", "entities")
    ),
    ProviderAdapter("restai", "response", "API request completed", extras=("status",)),
    ProviderAdapter(
        "autogen", "workflow_result", "Workflow orchestration completed", extras=("agents_used",)
    ),
    ProviderAdapter(
        "crewai", "team_result", "Team collaboration completed", extras=("team_members",)
    ),
    ProviderAdapter(
        "langchain", "toolkit_result", "Toolkit execution completed", extras=("tools_used",)
    ),
    ProviderAdapter("nekro", "creative_output", "Creative content generated", extras=("style",)),
    ProviderAdapter(
        "gaia-analytics",
        "analytics_result",
        "Analytics analysis completed",
        extras=("insights", "visualizations"),
    ),
    # Demo agents are answered by local templates; the network body is ignored
    ProviderAdapter(DEMO_PROVIDER, None),
)

BUILTIN_HOSTS: dict[str, str] = {
    "httpbin.org": DEMO_PROVIDER,
    "lyzr.ai": "lyzr",
    "superagent.sh": "superagent",
    "suna.ai": "suna",
    "steel-browser.com": "steel-browser",
    "botsharp.ai": "botsharp",
    "restai.com": "restai",
    "autogen.ai": "autogen",
    "crewai.com": "crewai",
    "langchain.com": "langchain",
    "nekro.ai": "nekro",
    "gaia-analytics.com": "gaia-analytics",
}


class AdapterRegistry:
    """Registry of provider adapters and the hosts they serve.

    Example:
        >>> registry = AdapterRegistry.with_builtin_adapters()
        >>> registry.for_url("https://api.superagent.sh/v1/run").provider_id
        'superagent'
    """

    def __init__(self) -> None:
        self._adapters: dict[str, ProviderAdapter] = {}
        self._hosts: dict[str, str] = {}
        self._lock = threading.Lock()

    @classmethod
    def with_builtin_adapters(cls) -> "AdapterRegistry":
        registry = cls()
        for adapter in BUILTIN_ADAPTERS:
            registry.register(adapter)
        for host, provider_id in BUILTIN_HOSTS.items():
            registry.register_host(host, provider_id)
        return registry

    def register(self, adapter: ProviderAdapter, hosts: tuple[str, ...] = ()) -> None:
        """Register an adapter, replacing one with the same id.

        Args:
            adapter: Adapter to register
            hosts: Host patterns served by this provider
        """
        with self._lock:
            self._adapters[adapter.provider_id] = adapter
            for host in hosts:
                self._hosts[host.lower()] = adapter.provider_id

    def register_host(self, host_pattern: str, provider_id: str) -> None:
        """Route a host pattern (the host or any subdomain of it) to a provider."""
        with self._lock:
            if provider_id not in self._adapters:
                raise KeyError(f"Unknown provider: {provider_id}")
            self._hosts[host_pattern.lower()] = provider_id

    def get(self, provider_id: str) -> Optional[ProviderAdapter]:
        with self._lock:
            return self._adapters.get(provider_id)

    def list_providers(self) -> list[str]:
        with self._lock:
            return sorted(self._adapters)

    def for_url(self, url: str) -> Optional[ProviderAdapter]:
        """Return the adapter of the most specific host pattern matching the URL."""
        with self._lock:
            pattern = best_host_match(url_host(url), self._hosts)
            if pattern is None:
                return None
            return self._adapters.get(self._hosts[pattern])

    def resolve(self, agent: Agent) -> Optional[ProviderAdapter]:
        """Resolve the adapter for an agent.

        An explicit ``agent.provider`` wins; an unknown explicit id resolves to
        no adapter rather than falling through to host matching.
        """
        if agent.provider:
            return self.get(agent.provider)
        return self.for_url(agent.execution_url)
