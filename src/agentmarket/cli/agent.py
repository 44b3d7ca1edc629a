"""Agent management and execution CLI commands.

Commands share the storage configured through the environment
(``MARKETPLACE_STORAGE``, ``MARKETPLACE_DATABASE_URL``), so agents registered
here are visible to the HTTP API and vice versa.
"""

import asyncio
import json
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from agentmarket.agents.errors import MarketplaceError
from agentmarket.agents.models import AgentCreate
from agentmarket.bootstrap import MarketplaceServices, build_services
from agentmarket.config import load_config_from_env
from agentmarket.execution.models import ExecutionStatus
from agentmarket.normalization.templates import TemplateRegistryError
from agentmarket.observability.logging import setup_logging
from agentmarket.validation.schema import generate_sample_input, validate as validate_inputs

console = Console()


@asynccontextmanager
async def open_services() -> AsyncIterator[MarketplaceServices]:
    """Build services from the environment for one command."""
    config = load_config_from_env()
    # stdout carries command output
    setup_logging(log_level=config.log_level, json_logs=False, stream=sys.stderr)
    services = build_services(config)
    await services.startup()
    try:
        yield services
    finally:
        await services.shutdown()


def parse_inputs(pairs: tuple[str, ...]) -> dict[str, Any]:
    """Parse ``key=value`` pairs.

    Raises:
        click.BadParameter: If a pair has no ``=``
    """
    inputs: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--input")
        inputs[key] = value
    return inputs


def load_definition(path: Path) -> AgentCreate:
    """Load an agent definition from a JSON or YAML file."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    return AgentCreate.model_validate(data)


@click.group(name="agents")
def agents() -> None:
    """Manage registered agents."""
    pass


@agents.command(name="list")
@click.option("--creator", type=str, help="Only agents registered by this creator")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format (table or json)",
)
def list_agents(creator: Optional[str], output_format: str) -> None:
    """List agents, newest first.

    Examples:
        agentmarket agents list
        agentmarket agents list --creator creator-1 --format json
    """

    async def _list() -> None:
        async with open_services() as services:
            service = services.agent_service
            found = await (service.list_by_creator(creator) if creator else service.list_all())

        if output_format == "json":
            click.echo(json.dumps([a.model_dump(mode="json") for a in found], indent=2))
            return

        table = Table(title="Agents" if not creator else f"Agents by {creator}")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="green")
        table.add_column("Method", style="yellow")
        table.add_column("URL", style="blue")
        table.add_column("Fields", justify="right")
        table.add_column("Created", style="dim")
        for a in found:
            table.add_row(
                a.agent_id,
                a.title,
                a.http_method.value,
                a.execution_url,
                str(len(a.input_schema)),
                a.created_at.strftime("%Y-%m-%d %H:%M") if a.created_at else "N/A",
            )
        console.print(table)
        if not found:
            console.print("[yellow]No agents found.[/yellow]")

    asyncio.run(_list())


@agents.command(name="show")
@click.argument("agent_id", type=str)
def show_agent(agent_id: str) -> None:
    """Show an agent's configuration and input schema."""

    async def _show() -> None:
        async with open_services() as services:
            agent = await services.agent_service.get(agent_id)

        console.print(f"[blue]{agent.title}[/blue] ({agent.agent_id})")
        console.print(f"Description: {agent.description}")
        console.print(f"Endpoint: {agent.http_method.value} {agent.execution_url}")
        if agent.execution_policy:
            console.print(f"Timeout: {agent.execution_policy.timeout_ms}ms")

        table = Table(title="Input Schema")
        table.add_column("Name", style="cyan")
        table.add_column("Type", style="yellow")
        table.add_column("Required")
        table.add_column("Options", style="dim")
        for field in agent.input_schema:
            table.add_row(
                field.name,
                field.type.value,
                "yes" if field.required else "no",
                ", ".join(field.options or []),
            )
        console.print(table)

    try:
        asyncio.run(_show())
    except MarketplaceError as e:
        raise click.ClickException(e.message)


@agents.command(name="register")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def register_agent(path: Path) -> None:
    """Register an agent from a JSON or YAML definition file.

    Examples:
        agentmarket agents register grammar_agent.yaml
    """
    try:
        definition = load_definition(path)
    except (ValueError, yaml.YAMLError) as e:
        # pydantic's ValidationError is a ValueError
        raise click.ClickException(f"Invalid agent definition: {e}")

    async def _register() -> None:
        async with open_services() as services:
            agent = await services.agent_service.create(definition)
        console.print(f"[green]✓ Agent registered[/green] {agent.agent_id}")

    try:
        asyncio.run(_register())
    except MarketplaceError as e:
        raise click.ClickException(e.message)


@click.command(name="run")
@click.option("--agent", "agent_id", required=True, help="Agent ID")
@click.option("--user", "user_id", required=True, help="User ID")
@click.option("--input", "input_pairs", multiple=True, help="Input value as key=value")
def run(agent_id: str, user_id: str, input_pairs: tuple[str, ...]) -> None:
    """Execute an agent and print its normalized result.

    Without --input, sample values are generated for the required fields.

    Examples:
        agentmarket run --agent agent_cf15c39b --user u1 --input text="i am here"
    """
    inputs = parse_inputs(input_pairs)

    async def _run() -> bool:
        async with open_services() as services:
            agent = await services.agent_service.get(agent_id)
            run_inputs = inputs or generate_sample_input(agent.input_schema)
            if not inputs:
                console.print(f"[dim]Using sample inputs: {json.dumps(run_inputs)}[/dim]")

            console.print(f"[blue]Executing {agent.title}...[/blue]")
            execution = await services.execution_service.submit(agent_id, user_id, run_inputs)

        console.print(f"Execution ID: {execution.execution_id}")
        if execution.status == ExecutionStatus.COMPLETED:
            console.print("[green]✓ Execution successful[/green]")
        else:
            console.print("[red]✗ Execution failed[/red]")
            console.print(f"Error: {execution.error}")
        click.echo(json.dumps(execution.result, indent=2, ensure_ascii=False))
        return execution.status == ExecutionStatus.COMPLETED

    try:
        succeeded = asyncio.run(_run())
    except MarketplaceError as e:
        raise click.ClickException(e.message)
    except TemplateRegistryError as e:
        raise click.ClickException(f"Execution failed: {e}") from e
    if not succeeded:
        sys.exit(1)


@click.command(name="validate")
@click.option("--agent", "agent_id", required=True, help="Agent ID")
@click.option("--input", "input_pairs", multiple=True, help="Input value as key=value")
def validate(agent_id: str, input_pairs: tuple[str, ...]) -> None:
    """Check inputs against an agent's schema without calling it."""
    inputs = parse_inputs(input_pairs)

    async def _load():
        async with open_services() as services:
            return await services.agent_service.get(agent_id)

    try:
        agent = asyncio.run(_load())
    except MarketplaceError as e:
        raise click.ClickException(e.message)

    result = validate_inputs(agent.input_schema, inputs)
    for warning in result.warnings:
        console.print(f"[yellow]! {warning}[/yellow]")
    if result.is_valid:
        console.print("[green]✓ Inputs are valid[/green]")
        return
    for error in result.errors:
        console.print(f"[red]✗ {error}[/red]")
    sys.exit(1)
