"""Pytest configuration and shared fixtures for the test suite."""

from typing import Any, AsyncGenerator, Callable, Optional

import httpx
import pytest

from agentmarket.agents.models import Agent, AgentCreate, FieldDefinition, FieldType
from agentmarket.bootstrap import MarketplaceServices, build_services
from agentmarket.config import MarketplaceConfig
from agentmarket.storage.database import Database, DatabaseConfig

# Configure pytest-asyncio to use auto mode
pytest_plugins = ["pytest_asyncio"]


class FakeWebhook:
    """Programmable stand-in for agent webhooks, used as an httpx MockTransport handler.

    Records every request it receives. ``respond`` decides the reply and may
    raise an ``httpx.RequestError`` to simulate transport failures.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.respond: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={"response": "ok"}
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    def reply(self, status_code: int = 200, **kwargs: Any) -> None:
        """Answer every request with a fixed response."""
        self.respond = lambda request: httpx.Response(status_code, **kwargs)

    def fail_with(self, error_class: type, message: str = "boom") -> None:
        """Raise a transport error for every request."""

        def _raise(request: httpx.Request) -> httpx.Response:
            raise error_class(message, request=request)

        self.respond = _raise

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
async def test_db() -> AsyncGenerator[Database, None]:
    """Create an in-memory SQLite database for testing.

    Yields:
        Database instance with tables created
    """
    db = Database(DatabaseConfig(url="sqlite+aiosqlite:///:memory:", echo=False))
    await db.create_tables()

    yield db

    await db.close()


@pytest.fixture
def webhook() -> FakeWebhook:
    return FakeWebhook()


@pytest.fixture
def mock_client(webhook: FakeWebhook) -> httpx.AsyncClient:
    """HTTP client whose requests are answered by ``webhook``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(webhook))


@pytest.fixture
def services(mock_client: httpx.AsyncClient) -> MarketplaceServices:
    """In-memory service graph wired to the fake webhook."""
    config = MarketplaceConfig(storage="memory", json_logs=False)
    return build_services(config, client=mock_client)


@pytest.fixture
def grammar_schema() -> list[FieldDefinition]:
    return [
        FieldDefinition(name="text", type=FieldType.TEXT, required=True, label="Text"),
        FieldDefinition(
            name="correction_mode",
            type=FieldType.DROPDOWN,
            options=["Grammar Only", "Style Improvement"],
        ),
    ]


@pytest.fixture
def make_agent_create(
    grammar_schema: list[FieldDefinition],
) -> Callable[..., AgentCreate]:
    """Factory for agent registration requests."""

    def _make(**overrides: Any) -> AgentCreate:
        data: dict[str, Any] = {
            "creator_id": "creator-1",
            "title": "Grammar Fixer",
            "description": "Fixes grammar",
            "execution_url": "https://hooks.example.com/run",
            "http_method": "POST",
            "headers": {},
            "static_fields": {},
            "input_schema": grammar_schema,
        }
        data.update(overrides)
        return AgentCreate(**data)

    return _make


@pytest.fixture
def make_agent(grammar_schema: list[FieldDefinition]) -> Callable[..., Agent]:
    """Factory for registered agents, bypassing the service layer."""

    def _make(agent_id: Optional[str] = None, **overrides: Any) -> Agent:
        data: dict[str, Any] = {
            "creator_id": "creator-1",
            "title": "Grammar Fixer",
            "description": "Fixes grammar",
            "execution_url": "https://hooks.example.com/run",
            "input_schema": grammar_schema,
        }
        if agent_id is not None:
            data["agent_id"] = agent_id
        data.update(overrides)
        return Agent(**data)

    return _make
