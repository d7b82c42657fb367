"""OpenTelemetry tracing for the tool server.

Every JSON-RPC message is wrapped in a ``toolhost.rpc`` span and every tool
invocation in a nested ``toolhost.tools.call`` span.  Modules only ever call
:func:`get_tracer`; while no SDK is configured the API hands back no-op
tracers, so instrumentation costs nothing by default.

Real export is opt-in through :func:`configure_telemetry`, which needs the
``otel`` extra (``pip install toolhost[otel]``).  The console exporter writes
to stderr: stdout carries the protocol stream.
"""

from __future__ import annotations

import sys
from typing import Any

from opentelemetry import trace

# Span attribute keys
ATTR_SERVER_NAME = "toolhost.server.name"
ATTR_RPC_METHOD = "toolhost.rpc.method"
ATTR_TOOL_NAME = "toolhost.tool.name"
ATTR_HANDLER_KIND = "toolhost.tool.handler_kind"
ATTR_TOOL_TIMEOUT = "toolhost.tool.timeout"
ATTR_ERROR_CODE = "toolhost.rpc.error_code"

_INSTRUMENTATION_NAME = "toolhost"

_SDK_HINT = "Install it with: pip install toolhost[otel]"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Tracer for *name*, a no-op until :func:`configure_telemetry` runs."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "toolhost",
    service_version: str | None = None,
    export_to_console: bool = True,
    otlp_endpoint: str | None = None,
) -> None:
    """Install a global tracer provider for this process.

    Args:
        service_name: ``service.name`` resource attribute, usually the
            server name from the tools descriptor.
        service_version: Optional ``service.version`` resource attribute.
        export_to_console: Print finished spans as JSON on stderr.
        otlp_endpoint: Also ship spans over OTLP/gRPC to this endpoint.

    Raises:
        ImportError: ``opentelemetry-sdk`` (or, when *otlp_endpoint* is
            set, ``opentelemetry-exporter-otlp``) is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports,reportUnknownVariableType]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports,reportUnknownVariableType]
        from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports,reportUnknownVariableType]
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        msg = f"opentelemetry-sdk is required for configure_telemetry(). {_SDK_HINT}"
        raise ImportError(msg) from exc

    attributes: dict[str, Any] = {"service.name": service_name}
    if service_version:
        attributes["service.version"] = service_version
    provider = TracerProvider(resource=Resource.create(attributes))  # pyright: ignore[reportUnknownVariableType,reportUnknownMemberType]

    processors: list[Any] = []
    if export_to_console:
        processors.append(SimpleSpanProcessor(ConsoleSpanExporter(out=sys.stderr)))
    if otlp_endpoint:
        processors.append(BatchSpanProcessor(_otlp_exporter(otlp_endpoint)))

    for processor in processors:
        provider.add_span_processor(processor)  # pyright: ignore[reportUnknownMemberType]
    trace.set_tracer_provider(provider)  # pyright: ignore[reportUnknownArgumentType]


def _otlp_exporter(endpoint: str) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter  # pyright: ignore[reportMissingImports,reportUnknownVariableType]
    except ImportError as exc:
        msg = f"opentelemetry-exporter-otlp is required for OTLP export. {_SDK_HINT}"
        raise ImportError(msg) from exc
    return OTLPSpanExporter(endpoint=endpoint)
