"""Shared CLI output formatters.

Everything goes to stderr except explicit command results: while serving,
stdout belongs to the protocol stream.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from toolhost.registry.models import Tool

console = Console()
err_console = Console(stderr=True)


def print_tools_table(tools: list[Tool]) -> None:
    """Pretty-print registered tools with their handler status."""
    table = Table(title="Registered Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Handler")
    table.add_column("Kind")
    table.add_column("Timeout", justify="right")
    table.add_column("Description")

    for tool in tools:
        if tool.has_handler:
            status = tool.handler_path or "(in-process)"
        elif tool.handler_path:
            status = f"[red]{tool.handler_path} (not loaded)[/red]"
        else:
            status = "[yellow]-[/yellow]"
        table.add_row(
            tool.name,
            status,
            tool.handler_kind.value if tool.handler_kind else "-",
            f"{tool.timeout:g}s",
            _truncate(tool.description),
        )

    console.print(table)


def print_call_result(response: dict[str, Any], *, as_json: bool = False) -> None:
    """Print a ``tools/call`` response."""
    if as_json:
        console.print_json(data=response)
        return

    error = response.get("error")
    if error:
        console.print(f"[red]Error {error['code']}:[/red] {escape(error['message'])}")
        return

    for item in response.get("result", {}).get("content", []):
        if item.get("type") == "text":
            console.print(item.get("text", ""), markup=False, highlight=False)
        else:
            console.print_json(data=item)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
