"""``toolhost serve`` — run a tool server on stdio."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
from rich.markup import escape

from toolhost.cli_commands._output import err_console


@click.command()
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--base-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory relative handler paths must resolve within.",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for server.log.",
)
@click.option(
    "--script-runtime",
    default=None,
    help="Command used for handlers that are not .sh/.py/.go (default: node).",
)
@click.option("--trace", is_flag=True, help="Export OpenTelemetry spans to stderr.")
@click.option("--otlp-endpoint", default=None, help="Export OpenTelemetry spans via OTLP/gRPC.")
def serve(
    config_path: Path,
    base_dir: Path | None,
    log_dir: Path | None,
    script_runtime: str | None,
    trace: bool,
    otlp_endpoint: str | None,
) -> None:
    """Serve the tools described in CONFIG_PATH over stdin/stdout."""
    from toolhost.config import load_config
    from toolhost.errors import ConfigError, ServerStartupError
    from toolhost.runtime.handlers import RuntimeCommands
    from toolhost.server import ToolServer

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        err_console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        sys.exit(1)

    if base_dir is not None:
        config.base_dir = str(base_dir.resolve())
    if log_dir is not None:
        config.log_dir = str(log_dir.resolve())

    if trace or otlp_endpoint:
        from toolhost.utils.telemetry import configure_telemetry

        configure_telemetry(
            service_name=config.name,
            service_version=config.version,
            export_to_console=trace,
            otlp_endpoint=otlp_endpoint,
        )

    runtimes = RuntimeCommands()
    if script_runtime:
        runtimes.script = script_runtime.split()

    server = ToolServer.from_config(config, runtimes=runtimes)
    try:
        asyncio.run(server.serve_stdio())
    except ServerStartupError as exc:
        err_console.print(f"[red]Startup error:[/red] {escape(str(exc))}")
        sys.exit(1)
    except KeyboardInterrupt:
        pass
    finally:
        server.close()
