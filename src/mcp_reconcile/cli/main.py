"""
Main CLI interface for MCP Reconcile.

A thin Click front end over ReconcileManager: every command reads the
merged view or performs one operation and prints its outcome.
"""

import asyncio
import json
import sys
from typing import Optional

import click
from rich.console import Console

from mcp_reconcile import __version__
from mcp_reconcile.cli.helpers import (
    handle_errors,
    report,
    show_introspection,
    show_servers,
    show_skills,
    show_trash,
)
from mcp_reconcile.core.exceptions import ServerNotFoundError
from mcp_reconcile.core.manager import ReconcileManager
from mcp_reconcile.core.models import SourceId
from mcp_reconcile.introspection.client import query_server
from mcp_reconcile.utils.config import Config, ConfigManager, load_config
from mcp_reconcile.utils.logging import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)

SOURCE_CHOICE = click.Choice([s.value for s in SourceId], case_sensitive=False)


class CLIContext:
    """CLI context for passing state between commands."""

    def __init__(self, manager: Optional[ReconcileManager] = None, config: Optional[Config] = None):
        self.manager = manager
        self.config = config

    def get_manager(self) -> ReconcileManager:
        """Get the manager, loading every source on first use."""
        if self.manager is None:
            self.manager = ReconcileManager.from_config(self.config or load_config())
        return self.manager


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


@click.group()
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option(
    "--config-file", "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Read settings from this TOML file only",
)
@click.version_option(version=__version__, prog_name="MCP Reconcile")
@click.pass_context
def cli(ctx: click.Context, debug: bool, verbose: bool, config_file: Optional[str]):
    """
    Reconcile MCP server definitions across Claude Code and Gemini.

    Lists servers merged from every detected CLI tool and copies, toggles,
    deletes and restores them in each tool's own configuration file.
    """
    cli_context = ctx.ensure_object(CLIContext)

    if cli_context.config is None and cli_context.manager is None:
        files = [config_file] if config_file else None
        cli_context.config = ConfigManager().load_config(files, debug=debug, verbose=verbose)

    config = cli_context.config
    if config is not None:
        logging_settings = config.logging.model_dump(exclude={"file", "console_level"})
        console_level = config.logging.console_level
        if debug:
            console_level = "DEBUG"
        elif verbose:
            console_level = "INFO"
        setup_logging(
            console_level=console_level,
            log_file=config.get_log_file(),
            **logging_settings,
        )
        logger.debug(f"Sources configured: {[s.source.value for s in config.source_specs()]}")


def _source(value: Optional[str]) -> Optional[SourceId]:
    return SourceId(value.lower()) if value else None


@cli.command("sources")
@pass_context
@handle_errors
def sources_cmd(cli_context: CLIContext):
    """List detected CLI tools."""
    manager = cli_context.get_manager()
    for spec in manager.engine.specs:
        if manager.engine.is_available(spec.source):
            console.print(f"[green]●[/green] {spec.source.display_name} [dim]{spec.config_path}[/dim]")
        elif spec.source in manager.engine.load_errors:
            console.print(
                f"[red]✗[/red] {spec.source.display_name} "
                f"[dim]{manager.engine.load_errors[spec.source]}[/dim]"
            )
        else:
            console.print(f"[dim]○ {spec.source.display_name} (not installed)[/dim]")


@cli.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print the merged view as JSON")
@pass_context
@handle_errors
def list_cmd(cli_context: CLIContext, as_json: bool):
    """List MCP servers merged across all sources."""
    manager = cli_context.get_manager()
    servers = manager.servers()
    if as_json:
        payload = {
            name: {
                source.value: {"enabled": presence.enabled, "config": presence.config}
                for source, presence in server.sources.items()
            }
            for name, server in sorted(servers.items())
        }
        click.echo(json.dumps(payload, indent=2))
        return
    show_servers(servers, manager.sources())


@cli.command("toggle")
@click.argument("name")
@click.argument("source", type=SOURCE_CHOICE)
@pass_context
@handle_errors
def toggle_cmd(cli_context: CLIContext, name: str, source: str):
    """Flip a server between enabled and disabled in one source."""
    report(cli_context.get_manager().toggle(name, _source(source)))


@cli.command("enable")
@click.argument("name")
@click.argument("source", type=SOURCE_CHOICE)
@pass_context
@handle_errors
def enable_cmd(cli_context: CLIContext, name: str, source: str):
    """Enable a server in one source."""
    report(cli_context.get_manager().set_enabled(name, _source(source), True))


@cli.command("disable")
@click.argument("name")
@click.argument("source", type=SOURCE_CHOICE)
@pass_context
@handle_errors
def disable_cmd(cli_context: CLIContext, name: str, source: str):
    """Disable a server in one source."""
    report(cli_context.get_manager().set_enabled(name, _source(source), False))


@cli.command("add")
@click.argument("name")
@click.argument("source", type=SOURCE_CHOICE)
@pass_context
@handle_errors
def add_cmd(cli_context: CLIContext, name: str, source: str):
    """Copy a server into another source."""
    report(cli_context.get_manager().add_to_source(name, _source(source)))


@cli.command("remove")
@click.argument("name")
@click.argument("source", type=SOURCE_CHOICE)
@pass_context
@handle_errors
def remove_cmd(cli_context: CLIContext, name: str, source: str):
    """Remove a server from one source (it must remain defined elsewhere)."""
    report(cli_context.get_manager().remove_from_source(name, _source(source)))


@cli.command("delete")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@pass_context
@handle_errors
def delete_cmd(cli_context: CLIContext, name: str, yes: bool):
    """Remove a server from every source and move it to the trash."""
    if not yes:
        click.confirm(f"Move '{name}' to the trash?", abort=True)
    report(cli_context.get_manager().delete(name))


@cli.command("sync")
@click.argument("name")
@click.option("--from", "from_source", type=SOURCE_CHOICE, required=True, help="Source to copy from")
@click.option("--to", "to_source", type=SOURCE_CHOICE, required=True, help="Source to copy to")
@pass_context
@handle_errors
def sync_cmd(cli_context: CLIContext, name: str, from_source: str, to_source: str):
    """Copy one server definition from one source to another."""
    report(cli_context.get_manager().sync_to(name, _source(from_source), _source(to_source)))


@cli.command("sync-all")
@click.argument("name")
@click.option("--from", "from_source", type=SOURCE_CHOICE, help="Source to copy from")
@pass_context
@handle_errors
def sync_all_cmd(cli_context: CLIContext, name: str, from_source: Optional[str]):
    """Copy a server definition into every other source."""
    report(cli_context.get_manager().sync_all(name, _source(from_source)))


@cli.command("inspect")
@click.argument("name")
@click.option("--source", "-s", type=SOURCE_CHOICE, help="Use this source's definition")
@pass_context
@handle_errors
def inspect_cmd(cli_context: CLIContext, name: str, source: Optional[str]):
    """Start a server and list its tools, resources and prompts."""
    server = cli_context.get_manager().servers().get(name)
    if server is None:
        raise ServerNotFoundError(name)

    selected = _source(source)
    if selected is not None:
        if selected not in server.sources:
            raise ServerNotFoundError(name, selected.value)
        definition = server.sources[selected].config
    else:
        definition = server.first_config()

    with console.status(f"Querying {name}..."):
        result = asyncio.run(query_server(definition))
    show_introspection(name, result)
    if result.status == "failed":
        sys.exit(1)


@cli.group("trash")
def trash_group():
    """Inspect and restore deleted servers."""


@trash_group.command("list")
@pass_context
@handle_errors
def trash_list_cmd(cli_context: CLIContext):
    """List servers in the trash."""
    show_trash(cli_context.get_manager().trash())


@trash_group.command("restore")
@click.argument("name")
@pass_context
@handle_errors
def trash_restore_cmd(cli_context: CLIContext, name: str):
    """Restore a server into the sources it was deleted from."""
    report(cli_context.get_manager().restore(name))


@trash_group.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@pass_context
@handle_errors
def trash_clear_cmd(cli_context: CLIContext, yes: bool):
    """Permanently empty the trash."""
    if not yes:
        click.confirm("Permanently delete everything in the trash?", abort=True)
    report(cli_context.get_manager().clear_trash())


@cli.group("skills")
def skills_group():
    """Manage Claude Code plugins/skills."""


@skills_group.command("list")
@pass_context
@handle_errors
def skills_list_cmd(cli_context: CLIContext):
    """List installed skills."""
    show_skills(cli_context.get_manager().skills())


@skills_group.command("toggle")
@click.argument("key")
@pass_context
@handle_errors
def skills_toggle_cmd(cli_context: CLIContext, key: str):
    """Enable or disable a skill (name@marketplace)."""
    report(cli_context.get_manager().toggle_skill(key))


@skills_group.command("delete")
@click.argument("key")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@pass_context
@handle_errors
def skills_delete_cmd(cli_context: CLIContext, key: str, yes: bool):
    """Remove a skill from the registry."""
    if not yes:
        click.confirm(f"Remove skill '{key}'?", abort=True)
    report(cli_context.get_manager().delete_skill(key))


def main():
    """Console script entry point."""
    cli(obj=CLIContext())


if __name__ == "__main__":
    main()
