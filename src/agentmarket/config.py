"""Marketplace configuration.

Settings are read from the environment, with a ``.env`` file in the working
directory loaded first when present.
"""

import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from agentmarket.agents.models import ExecutionPolicy
from agentmarket.execution.payload import DEFAULT_USER_AGENT
from agentmarket.execution.policy import (
    DEFAULT_HOST_POLICIES,
    DEFAULT_TIMEOUT_MS,
    PolicyTable,
    best_host_match,
)
from agentmarket.storage.database import DEFAULT_DATABASE_URL

APP_VERSION = "1.0.0"


class MarketplaceConfig(BaseModel):
    """Global marketplace configuration.

    Attributes:
        database_url: Async SQLAlchemy URL for the ``database`` backend
        storage: Storage backend, ``database`` or ``memory``
        log_level: Logging level name
        json_logs: Render logs as JSON instead of console output
        default_timeout_ms: Webhook timeout for hosts without a policy
        user_agent: Default ``User-Agent`` sent to webhooks
        host_timeouts: Per-host timeout overrides in milliseconds
        templates_file: Extra YAML template file loaded at startup
    """

    database_url: str = Field(default=DEFAULT_DATABASE_URL)
    storage: Literal["database", "memory"] = "database"
    log_level: str = "INFO"
    json_logs: bool = True
    default_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=1000, le=600000)
    user_agent: str = DEFAULT_USER_AGENT
    host_timeouts: dict[str, int] = Field(default_factory=dict)
    templates_file: Optional[str] = None

    @field_validator("host_timeouts")
    @classmethod
    def validate_host_timeouts(cls, value: dict[str, int]) -> dict[str, int]:
        """Host timeouts must fall within the allowed policy range."""
        for host, timeout_ms in value.items():
            if not 1000 <= timeout_ms <= 600000:
                raise ValueError(f"Timeout for {host} must be between 1000 and 600000 ms")
        return value

    class Config:
        """Pydantic config."""

        frozen = True

    def build_policy_table(self) -> PolicyTable:
        """Host policy table with the configured overrides applied.

        A host override keeps the built-in fallback template of the host or of
        the parent domain it falls under.
        """
        table = PolicyTable(default_policy=ExecutionPolicy(timeout_ms=self.default_timeout_ms))
        for host, timeout_ms in self.host_timeouts.items():
            builtin_host = best_host_match(host.lower(), DEFAULT_HOST_POLICIES)
            builtin = DEFAULT_HOST_POLICIES[builtin_host] if builtin_host else None
            table.register(
                host,
                ExecutionPolicy(
                    timeout_ms=timeout_ms,
                    fallback_template=builtin.fallback_template if builtin else None,
                ),
            )
        return table


def parse_host_timeouts(raw: str) -> dict[str, int]:
    """Parse ``host=ms,host=ms`` into a mapping.

    Raises:
        ValueError: If an entry is not ``host=<integer>``
    """
    timeouts: dict[str, int] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        host, sep, value = entry.partition("=")
        if not sep or not host.strip():
            raise ValueError(f"Invalid host timeout entry: {entry!r}")
        timeouts[host.strip().lower()] = int(value.strip())
    return timeouts


def load_config_from_env() -> MarketplaceConfig:
    """Load configuration from environment variables.

    Reads:
    - MARKETPLACE_DATABASE_URL: Async database URL
    - MARKETPLACE_STORAGE: ``database`` or ``memory``
    - LOG_LEVEL: Logging level (default INFO)
    - JSON_LOGS: JSON log output (true/false, default true)
    - MARKETPLACE_DEFAULT_TIMEOUT_MS: Default webhook timeout
    - MARKETPLACE_USER_AGENT: Default webhook User-Agent
    - MARKETPLACE_HOST_TIMEOUTS: ``host=ms`` pairs, comma separated
    - MARKETPLACE_TEMPLATES_FILE: Extra YAML template file

    Example:
        >>> os.environ["MARKETPLACE_STORAGE"] = "memory"
        >>> load_config_from_env().storage
        'memory'
    """
    load_dotenv()

    json_logs_str = os.getenv("JSON_LOGS", "true").lower()

    return MarketplaceConfig(
        database_url=os.getenv("MARKETPLACE_DATABASE_URL", DEFAULT_DATABASE_URL),
        storage=os.getenv("MARKETPLACE_STORAGE", "database").lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        json_logs=json_logs_str in ("true", "1", "yes"),
        default_timeout_ms=int(
            os.getenv("MARKETPLACE_DEFAULT_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))
        ),
        user_agent=os.getenv("MARKETPLACE_USER_AGENT", DEFAULT_USER_AGENT),
        host_timeouts=parse_host_timeouts(os.getenv("MARKETPLACE_HOST_TIMEOUTS", "")),
        templates_file=os.getenv("MARKETPLACE_TEMPLATES_FILE") or None,
    )
