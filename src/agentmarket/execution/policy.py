"""Execution policies keyed by webhook host.

An agent carries its own :class:`ExecutionPolicy` when one was attached at
registration. Otherwise the policy comes from a host table, where the most
specific matching pattern wins, and finally from the default policy.
"""

from typing import Iterable, Mapping, Optional
from urllib.parse import urlsplit

from agentmarket.agents.models import Agent, ExecutionPolicy

DEFAULT_TIMEOUT_MS = 60000

# Hosts known to be slow or flaky, with their local degrade-gracefully template
DEFAULT_HOST_POLICIES: dict[str, ExecutionPolicy] = {
    "lyzr.ai": ExecutionPolicy(timeout_ms=15000, fallback_template="grammar_correction"),
}


def url_host(url: str) -> str:
    """Return the lower-cased host of a URL, or the URL itself if it has none."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        host = None
    return (host or url).lower()


def host_matches(host: str, pattern: str) -> bool:
    """Check whether a host equals a pattern or is a subdomain of it."""
    pattern = pattern.lower()
    return host == pattern or host.endswith("." + pattern)


def best_host_match(host: str, patterns: Iterable[str]) -> Optional[str]:
    """Return the longest pattern matching the host, so subdomain entries beat their parents."""
    matches = [pattern for pattern in patterns if host_matches(host, pattern)]
    return max(matches, key=len, default=None)


class PolicyTable:
    """Resolves the execution policy for an agent.

    Example:
        >>> table = PolicyTable()
        >>> table.for_url("https://agent-prod.studio.lyzr.ai/v3/inference/chat/").timeout_ms
        15000
        >>> table.for_url("https://example.com/hook").timeout_ms
        60000
    """

    def __init__(
        self,
        host_policies: Optional[Mapping[str, ExecutionPolicy]] = None,
        default_policy: Optional[ExecutionPolicy] = None,
    ) -> None:
        """Initialize the table.

        Args:
            host_policies: Host pattern to policy; defaults to
                DEFAULT_HOST_POLICIES
            default_policy: Policy for hosts matching no pattern
        """
        self._host_policies = dict(
            DEFAULT_HOST_POLICIES if host_policies is None else host_policies
        )
        self._default = default_policy or ExecutionPolicy(timeout_ms=DEFAULT_TIMEOUT_MS)

    @property
    def default_policy(self) -> ExecutionPolicy:
        return self._default

    def register(self, host_pattern: str, policy: ExecutionPolicy) -> None:
        """Add or replace the policy for a host pattern."""
        self._host_policies[host_pattern.lower()] = policy

    def for_url(self, url: str) -> ExecutionPolicy:
        """Return the policy of the most specific host pattern matching the URL."""
        pattern = best_host_match(url_host(url), self._host_policies)
        if pattern is None:
            return self._default
        return self._host_policies[pattern]

    def resolve(self, agent: Agent) -> ExecutionPolicy:
        """Return the agent's own policy, or the host policy for its URL."""
        if agent.execution_policy is not None:
            return agent.execution_policy
        return self.for_url(agent.execution_url)
