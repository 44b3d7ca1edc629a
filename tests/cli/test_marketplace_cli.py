"""Tests for the agentmarket command line."""

import asyncio
import json
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner
from rich.console import Console

from agentmarket.cli import agent as agent_commands
from agentmarket.cli.main import cli
from agentmarket.config import APP_VERSION
from agentmarket.normalization.templates import TemplateRegistryError

GRAMMAR_YAML = """\
creator_id: creator-1
title: Grammar Fixer
description: Fixes grammar
execution_url: https://agent-prod.studio.lyzr.ai/v3/inference/chat/
http_method: post
input_schema:
  - name: text
    type: text
    required: true
    label: Text
    test_example: i am going to the market today
"""


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def patched_services(services, monkeypatch: pytest.MonkeyPatch):
    """Route every command to the in-memory test services."""
    monkeypatch.setattr(agent_commands, "build_services", lambda config: services)
    monkeypatch.setattr(agent_commands, "console", Console(width=200))
    return services


@pytest.fixture
def registered_agent(services, make_agent_create):
    return asyncio.run(services.agent_service.create(make_agent_create()))


def test_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert APP_VERSION in result.output


def test_parse_inputs() -> None:
    assert agent_commands.parse_inputs(("text=a=b", "mode=fast")) == {
        "text": "a=b",
        "mode": "fast",
    }


class TestAgentsCommands:
    def test_register_from_yaml(self, cli_runner: CliRunner, services, tmp_path: Path) -> None:
        path = tmp_path / "grammar.yaml"
        path.write_text(GRAMMAR_YAML, encoding="utf-8")

        result = cli_runner.invoke(cli, ["agents", "register", str(path)])

        assert result.exit_code == 0, result.output
        assert "Agent registered" in result.output
        [agent] = asyncio.run(services.agent_service.list_all())
        assert agent.title == "Grammar Fixer"
        assert agent.execution_policy.fallback_template == "grammar_correction"

    def test_register_from_json(self, cli_runner: CliRunner, services, tmp_path: Path) -> None:
        path = tmp_path / "agent.json"
        path.write_text(
            json.dumps(
                {
                    "creator_id": "c1",
                    "title": "Echo",
                    "description": "Echoes",
                    "execution_url": "https://hooks.example.com/echo",
                    "input_schema": [{"name": "q", "type": "string"}],
                }
            ),
            encoding="utf-8",
        )

        result = cli_runner.invoke(cli, ["agents", "register", str(path)])

        assert result.exit_code == 0, result.output
        assert len(asyncio.run(services.agent_service.list_all())) == 1

    def test_register_invalid_definition(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("title: Missing everything\n", encoding="utf-8")

        result = cli_runner.invoke(cli, ["agents", "register", str(path)])

        assert result.exit_code != 0
        assert "Invalid agent definition" in result.output

    def test_list_table(self, cli_runner: CliRunner, registered_agent) -> None:
        result = cli_runner.invoke(cli, ["agents", "list"])

        assert result.exit_code == 0, result.output
        assert registered_agent.agent_id in result.output

    def test_list_json(self, cli_runner: CliRunner, registered_agent) -> None:
        result = cli_runner.invoke(cli, ["agents", "list", "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [a["agent_id"] for a in data] == [registered_agent.agent_id]

    def test_list_by_creator_empty(self, cli_runner: CliRunner, registered_agent) -> None:
        result = cli_runner.invoke(cli, ["agents", "list", "--creator", "nobody"])

        assert result.exit_code == 0
        assert "No agents found" in result.output

    def test_show(self, cli_runner: CliRunner, registered_agent) -> None:
        result = cli_runner.invoke(cli, ["agents", "show", registered_agent.agent_id])

        assert result.exit_code == 0, result.output
        assert "Grammar Fixer" in result.output
        assert "correction_mode" in result.output

    def test_show_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["agents", "show", "agent_missing"])

        assert result.exit_code == 1
        assert "No agent found with ID: agent_missing" in result.output


class TestRunCommand:
    def test_run_with_inputs(self, cli_runner: CliRunner, webhook, registered_agent) -> None:
        webhook.reply(200, json={"answer": "Fixed."})

        result = cli_runner.invoke(
            cli,
            ["run", "--agent", registered_agent.agent_id, "--user", "u1", "--input", "text=i am"],
        )

        assert result.exit_code == 0, result.output
        assert "Execution successful" in result.output
        assert "Fixed." in result.output
        assert json.loads(webhook.last_request.content)["text"] == "i am"

    def test_run_generates_sample_inputs(
        self, cli_runner: CliRunner, webhook, registered_agent
    ) -> None:
        result = cli_runner.invoke(cli, ["run", "--agent", registered_agent.agent_id, "--user", "u1"])

        assert result.exit_code == 0, result.output
        assert "Using sample inputs" in result.output
        assert json.loads(webhook.last_request.content)["text"] == "Sample Text"

    def test_run_failure_exits_nonzero(
        self, cli_runner: CliRunner, webhook, registered_agent
    ) -> None:
        webhook.fail_with(httpx.ConnectError, "[Errno 111] Connection refused")

        result = cli_runner.invoke(
            cli, ["run", "--agent", registered_agent.agent_id, "--user", "u1", "--input", "text=x"]
        )

        assert result.exit_code == 1
        assert "Execution failed" in result.output
        assert "Agent service is not available" in result.output

    def test_run_template_error_is_reported(
        self, cli_runner: CliRunner, services, registered_agent, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken_template(*args, **kwargs):
            raise TemplateRegistryError("Template 'generic_echo' failed to render")

        monkeypatch.setattr(services.execution_service.caller, "call", broken_template)

        result = cli_runner.invoke(
            cli, ["run", "--agent", registered_agent.agent_id, "--user", "u1", "--input", "text=x"]
        )

        assert result.exit_code == 1
        assert "Execution failed: Template 'generic_echo' failed to render" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_run_invalid_input_pair(self, cli_runner: CliRunner, registered_agent) -> None:
        result = cli_runner.invoke(
            cli, ["run", "--agent", registered_agent.agent_id, "--user", "u1", "--input", "text"]
        )

        assert result.exit_code == 2
        assert "Expected key=value" in result.output


class TestValidateCommand:
    def test_valid(self, cli_runner: CliRunner, registered_agent) -> None:
        result = cli_runner.invoke(
            cli, ["validate", "--agent", registered_agent.agent_id, "--input", "text=hello"]
        )

        assert result.exit_code == 0, result.output
        assert "Inputs are valid" in result.output

    def test_invalid(self, cli_runner: CliRunner, registered_agent) -> None:
        result = cli_runner.invoke(
            cli,
            [
                "validate",
                "--agent",
                registered_agent.agent_id,
                "--input",
                "correction_mode=Shouting",
                "--input",
                "surprise=1",
            ],
        )

        assert result.exit_code == 1
        assert "Missing required field: Text" in result.output
        assert "correction_mode must be one of" in result.output
        assert "Unexpected input field: surprise" in result.output
