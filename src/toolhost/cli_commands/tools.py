"""``toolhost tools`` — inspect and call tools from a descriptor."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from rich.markup import escape

from toolhost.cli_commands._output import console, err_console, print_call_result, print_tools_table

if TYPE_CHECKING:
    from toolhost.server import ToolServer

_CONFIG_ARG = click.argument("config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))


def _build_server(config_path: Path, *, verbose: bool) -> ToolServer:
    from toolhost.config import load_config
    from toolhost.errors import ConfigError
    from toolhost.server import ToolServer

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        err_console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        sys.exit(1)
    level = logging.DEBUG if verbose else logging.WARNING
    return ToolServer.from_config(config, log_level=level)


@click.group()
def tools() -> None:
    """Inspect and call tools."""


@tools.command("list")
@_CONFIG_ARG
@click.option("--json", "as_json", is_flag=True, help="Print the tools/list payload as JSON.")
@click.option("-v", "--verbose", is_flag=True, help="Show handler loading logs.")
def list_tools(config_path: Path, as_json: bool, verbose: bool) -> None:
    """List the tools described in CONFIG_PATH."""
    server = _build_server(config_path, verbose=verbose)
    try:
        if not len(server.registry):
            console.print("[yellow]No tools registered.[/yellow]")
            return
        if as_json:
            console.print_json(data={"tools": server.registry.listing()})
        else:
            print_tools_table(server.registry.tools())
    finally:
        server.close()


@tools.command("call")
@_CONFIG_ARG
@click.argument("name")
@click.option("--args", "raw_args", default="{}", help="Tool arguments as a JSON object.")
@click.option("--json", "as_json", is_flag=True, help="Print the full JSON-RPC response.")
@click.option("-v", "--verbose", is_flag=True, help="Show handler logs.")
def call_tool(config_path: Path, name: str, raw_args: str, as_json: bool, verbose: bool) -> None:
    """Call tool NAME from CONFIG_PATH once and print its result."""
    try:
        arguments: Any = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        err_console.print(f"[red]Invalid --args JSON:[/red] {escape(str(exc))}")
        sys.exit(2)

    server = _build_server(config_path, verbose=verbose)
    request = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }
    try:
        response = asyncio.run(server.handle_request(request)) or {}
    finally:
        server.close()

    print_call_result(response, as_json=as_json)
    if "error" in response:
        sys.exit(1)
