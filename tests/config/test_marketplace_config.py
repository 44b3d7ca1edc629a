"""Tests for marketplace configuration."""

import pytest
from pydantic import ValidationError

from agentmarket.config import MarketplaceConfig, load_config_from_env, parse_host_timeouts


class TestParseHostTimeouts:
    def test_parses_pairs(self) -> None:
        assert parse_host_timeouts("Lyzr.ai=20000, slow.example.com=90000,") == {
            "lyzr.ai": 20000,
            "slow.example.com": 90000,
        }

    def test_empty(self) -> None:
        assert parse_host_timeouts("") == {}

    @pytest.mark.parametrize("raw", ["lyzr.ai", "=5000", "lyzr.ai=fast"])
    def test_invalid_entries(self, raw: str) -> None:
        with pytest.raises(ValueError):
            parse_host_timeouts(raw)


class TestMarketplaceConfig:
    def test_defaults(self) -> None:
        config = MarketplaceConfig()

        assert config.storage == "database"
        assert config.default_timeout_ms == 60000
        assert config.database_url.startswith("sqlite+aiosqlite")

    def test_host_timeout_range(self) -> None:
        with pytest.raises(ValidationError, match="between 1000 and 600000"):
            MarketplaceConfig(host_timeouts={"x.com": 10})

    def test_policy_table_keeps_builtin_fallback(self) -> None:
        table = MarketplaceConfig(
            default_timeout_ms=30000, host_timeouts={"lyzr.ai": 20000}
        ).build_policy_table()

        lyzr = table.for_url("https://agent-prod.studio.lyzr.ai/v3/inference/chat/")
        assert lyzr.timeout_ms == 20000
        assert lyzr.fallback_template == "grammar_correction"
        assert table.for_url("https://example.com").timeout_ms == 30000

    def test_subdomain_override_beats_builtin_host(self) -> None:
        table = MarketplaceConfig(
            host_timeouts={"agent-prod.studio.lyzr.ai": 5000}
        ).build_policy_table()

        prod = table.for_url("https://agent-prod.studio.lyzr.ai/v3/inference/chat/")
        assert prod.timeout_ms == 5000
        assert prod.fallback_template == "grammar_correction"
        assert table.for_url("https://studio.lyzr.ai/x").timeout_ms == 15000

    def test_config_is_frozen(self) -> None:
        config = MarketplaceConfig()

        with pytest.raises(ValidationError):
            config.storage = "memory"


def test_load_config_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MARKETPLACE_STORAGE", "Memory")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("JSON_LOGS", "false")
    monkeypatch.setenv("MARKETPLACE_DEFAULT_TIMEOUT_MS", "45000")
    monkeypatch.setenv("MARKETPLACE_HOST_TIMEOUTS", "slow.example.com=90000")
    monkeypatch.setenv("MARKETPLACE_USER_AGENT", "tester/1.0")

    config = load_config_from_env()

    assert config.storage == "memory"
    assert config.log_level == "DEBUG"
    assert config.json_logs is False
    assert config.default_timeout_ms == 45000
    assert config.host_timeouts == {"slow.example.com": 90000}
    assert config.user_agent == "tester/1.0"
    assert config.templates_file is None
