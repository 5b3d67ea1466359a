from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from openclaw_tescmd.models import NodeStatus, RequiresWakeConfirmation


class RichOutput:
    """Rich-based terminal output helpers for *openclaw-tescmd*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Node status
    # ------------------------------------------------------------------

    def node_status(self, status: NodeStatus) -> None:
        """Print a table summarising node connectivity."""
        table = Table(title="openclaw-tescmd status")
        table.add_column("Field", style="bold")
        table.add_column("Value")

        style = "green" if status.connected else "yellow"
        label = "connected" if status.connected else "not connected"
        table.add_row("Platform", status.platform)
        table.add_row("Node", f"[{style}]{label}[/{style}]")
        if status.node_id:
            table.add_row("Node ID", status.node_id)
        table.add_row(
            "CLI fallback",
            "[green]available[/green]" if status.fallback_available else "[dim]unavailable[/dim]",
        )
        self._con.print(table)

    # ------------------------------------------------------------------
    # Command results
    # ------------------------------------------------------------------

    def command_value(self, method: str, value: Any, *, fallback: bool = False) -> None:
        """Print a command's result value, dict fields as a table."""
        source = " [dim](via tescmd fallback)[/dim]" if fallback else ""
        if isinstance(value, dict):
            table = Table(title=f"{method}{source}")
            table.add_column("Field", style="bold")
            table.add_column("Value")
            for key, item in value.items():
                if key == "fallback":
                    continue
                text = json.dumps(item) if isinstance(item, (dict, list)) else str(item)
                table.add_row(str(key), text)
            self._con.print(table)
        elif value is None:
            self.command_result(True, f"{method}{source}")
        else:
            self._con.print(f"[bold]{method}[/bold]{source}: {value}")

    def wake_required(self, outcome: RequiresWakeConfirmation) -> None:
        """Print the wake-confirmation prompt."""
        self._con.print(
            Panel(
                f"[yellow]{outcome.message}[/yellow]",
                title=f"Wake required ({outcome.current_state})",
                expand=False,
            )
        )
        self._con.print("")
        self._con.print("Next steps:")
        method = outcome.command.method
        self._con.print(f"  [cyan]openclaw-tescmd invoke {method} --wake[/cyan]  (billable)")
        self._con.print("  Or wake from the Tesla app (free), then retry.")

    def command_result(self, success: bool, message: str = "") -> None:
        """Print a coloured OK / FAILED indicator."""
        text = "[green]OK[/green]" if success else "[red]FAILED[/red]"
        if message:
            text += f"  {message}"
        self._con.print(text)

    def error(self, message: str) -> None:
        self._con.print(f"[bold red]Error:[/bold red] {message}")

    def info(self, message: str) -> None:
        self._con.print(message)
