"""
Display helper functions for CLI commands.
"""

from typing import Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mcp_reconcile.core.models import AggregatedServer, Skill, SourceId, TrashEntry
from mcp_reconcile.introspection.models import (
    CapabilityDescriptor,
    Failed,
    IntrospectionResult,
    RemoteSkipped,
    Succeeded,
)

console = Console()


def _presence_cell(server: AggregatedServer, source: SourceId) -> str:
    enabled = server.enabled_in(source)
    if enabled is None:
        return "[dim]-[/dim]"
    return "[green]● enabled[/green]" if enabled else "[yellow]○ disabled[/yellow]"


def show_servers(servers: Dict[str, AggregatedServer], sources: List[SourceId]) -> None:
    if not servers:
        console.print("[yellow]No MCP servers configured[/yellow]")
        return

    table = Table(title=f"MCP Servers ({len(servers)})")
    table.add_column("Name", style="cyan")
    for source in sources:
        table.add_column(source.display_name)
    table.add_column("Command / URL", style="dim")

    for name in sorted(servers):
        server = servers[name]
        config = server.first_config()
        if not isinstance(config, dict):
            config = {}
        target = config.get("url") or " ".join(
            [str(config.get("command", ""))] + [str(a) for a in config.get("args", [])]
        )
        table.add_row(name, *(_presence_cell(server, s) for s in sources), target.strip())

    console.print(table)


def show_skills(skills: Dict[str, Skill]) -> None:
    if not skills:
        console.print("[yellow]No skills installed[/yellow]")
        return

    table = Table(title=f"Skills ({len(skills)})")
    table.add_column("Key", style="cyan")
    table.add_column("Version")
    table.add_column("Scope")
    table.add_column("Status")
    for key in sorted(skills):
        skill = skills[key]
        status = "[yellow]disabled[/yellow]" if skill.disabled else "[green]enabled[/green]"
        table.add_row(key, skill.version or "-", skill.scope or "-", status)
    console.print(table)


def show_trash(trash: Dict[str, TrashEntry]) -> None:
    if not trash:
        console.print("[dim]Trash is empty[/dim]")
        return

    table = Table(title=f"Trash ({len(trash)})")
    table.add_column("Name", style="cyan")
    table.add_column("Deleted at")
    table.add_column("From")
    for name in sorted(trash):
        entry = trash[name]
        table.add_row(name, entry.deleted_at, ", ".join(entry.from_sources))
    console.print(table)


def _capability_lines(title: str, items: List[CapabilityDescriptor]) -> List[str]:
    lines = [f"[bold cyan]{title} ({len(items)}):[/bold cyan]"]
    for item in items:
        description = f": {item.description}" if item.description else ""
        lines.append(f"  • [bold green]{item.name}[/bold green]{description}")
    return lines


def show_introspection(name: str, result: IntrospectionResult) -> None:
    if isinstance(result, Succeeded):
        lines = (
            _capability_lines("Tools", result.tools)
            + _capability_lines("Resources", result.resources)
            + _capability_lines("Prompts", result.prompts)
        )
        console.print(Panel("\n".join(lines), title=name, border_style="green"))
    elif isinstance(result, RemoteSkipped):
        console.print(f"[blue]{name} is a remote server; live introspection is not performed[/blue]")
    elif isinstance(result, Failed):
        console.print(f"[red]✗ {name}: {result.reason}[/red]")
    else:
        console.print(f"[dim]{name}: pending[/dim]")
