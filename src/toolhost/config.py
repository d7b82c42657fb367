"""Tools descriptor loading for ``toolhost serve``.

A descriptor is YAML or JSON (JSON is read by the same YAML parser).  It is
either a bare list of tools or a mapping::

    name: issue-tools
    version: 1.2.0
    base_dir: handlers      # relative to this file
    log_dir: /tmp/toolhost
    tools:
      - name: create-issue
        description: Open an issue
        inputSchema:
          type: object
          properties: {title: {type: string}}
          required: [title]
        handler: create_issue.py
        timeout: 30
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from toolhost.errors import ConfigError
from toolhost.registry.models import Tool
from toolhost.runtime.models import DEFAULT_TIMEOUT


class ToolConfig(BaseModel):
    """One tool entry from the descriptor."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )
    handler: str | None = None
    timeout: float | None = Field(default=None, ge=0)

    def to_tool(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
            handler_path=self.handler,
            timeout=self.timeout or DEFAULT_TIMEOUT,
        )


class ServerConfig(BaseModel):
    """Top-level descriptor."""

    name: str = "toolhost"
    version: str = "0.1.0"
    base_dir: str | None = None
    log_dir: str | None = None
    tools: list[ToolConfig] = []


def parse_config(data: Any) -> ServerConfig:
    """Validate already-parsed descriptor data.

    Raises:
        ConfigError: On schema validation failures.
    """
    if isinstance(data, list):
        data = {"tools": data}
    if not isinstance(data, dict):
        raise ConfigError("Tools descriptor must be a list of tools or a mapping")
    try:
        return ServerConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def load_config(path: Path) -> ServerConfig:
    """Read and validate a descriptor file.

    Environment variables (``$VAR`` / ``${VAR}``) are expanded before
    parsing.  A relative ``base_dir`` or ``log_dir`` is resolved against the
    file's directory; a missing ``base_dir`` defaults to that directory.

    Raises:
        ConfigError: On read errors, parse errors, or validation failures.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    try:
        data: Any = yaml.safe_load(os.path.expandvars(raw))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Parse error in {path}: {exc}") from exc

    config = parse_config(data)
    root = path.resolve().parent
    config.base_dir = str(root / config.base_dir) if config.base_dir else str(root)
    if config.log_dir:
        config.log_dir = str(root / config.log_dir)
    return config
