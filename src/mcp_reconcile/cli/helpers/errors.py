"""
Error handling utilities for CLI commands.
"""

import functools
import sys

from rich.console import Console

from mcp_reconcile.core.exceptions import MCPReconcileError
from mcp_reconcile.core.models import OperationResult

console = Console(stderr=True)


def handle_errors(func):
    """Decorator to handle common CLI errors."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            sys.exit(1)
        except MCPReconcileError as e:
            console.print(f"[red]Error: {e.message}[/red]")
            sys.exit(1)
        except OSError as e:
            console.print(f"[red]Error: {e}[/red]")
            console.print("[dim]Use --debug for more details[/dim]")
            sys.exit(1)

    return wrapper


def report(result: OperationResult) -> None:
    """Print an operation outcome and exit non-zero on failure."""
    if not result.success:
        console.print(f"[red]✗ {result.message}[/red]")
        sys.exit(1)
    for warning in result.warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")
    console.print(f"[green]✓[/green] {result.message}", highlight=False)
