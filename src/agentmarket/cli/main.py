"""Main CLI entry point for the agent marketplace."""

import click

from agentmarket.cli import agent
from agentmarket.config import APP_VERSION


@click.group()
@click.version_option(version=APP_VERSION, prog_name="agentmarket")
def cli() -> None:
    """AI Agent Marketplace - register and run third-party agents."""
    pass


cli.add_command(agent.agents)
cli.add_command(agent.run)
cli.add_command(agent.validate)


def main() -> None:
    """CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
