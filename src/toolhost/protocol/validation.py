"""Argument validation against a tool's ``inputSchema``.

Only the ``required`` list is enforced.  Every missing field is collected so
the caller gets a single message that names all of them, with guidance and
an example call.
"""

from __future__ import annotations

import json
from typing import Any

_PLACEHOLDERS: dict[str, Any] = {
    "string": "...",
    "integer": 1,
    "number": 1,
    "boolean": True,
    "array": [],
    "object": {},
}


def find_missing_required(args: dict[str, Any], schema: dict[str, Any] | None) -> list[str]:
    """Return the required fields that are absent, ``null``, or blank strings."""
    if not schema:
        return []
    required = schema.get("required") or []
    missing: list[str] = []
    for field in required:
        if not isinstance(field, str):
            continue
        value = args.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


def _example_value(name: str, prop: dict[str, Any]) -> Any:
    if "enum" in prop and prop["enum"]:
        return prop["enum"][0]
    if "default" in prop:
        return prop["default"]
    kind = prop.get("type", "string")
    if isinstance(kind, list):
        kind = next((k for k in kind if k != "null"), "string")
    placeholder = _PLACEHOLDERS.get(kind, "...")
    if placeholder == "...":
        return f"<{name}>"
    return placeholder


def build_example(schema: dict[str, Any] | None) -> dict[str, Any]:
    """An example arguments object covering the schema's required fields."""
    if not schema:
        return {}
    properties: dict[str, Any] = schema.get("properties") or {}
    example: dict[str, Any] = {}
    for field in schema.get("required") or []:
        if isinstance(field, str):
            example[field] = _example_value(field, properties.get(field) or {})
    return example


def describe_missing(missing: list[str], tool_name: str, schema: dict[str, Any] | None) -> str:
    """Compose one human-actionable message for all *missing* fields."""
    names = ", ".join(f"'{field}'" for field in missing)
    noun = "field" if len(missing) == 1 else "fields"
    lines = [f"Invalid arguments for tool '{tool_name}': missing or empty required {noun} {names}."]

    properties: dict[str, Any] = (schema or {}).get("properties") or {}
    for field in missing:
        prop = properties.get(field) or {}
        detail = prop.get("description") or f"expected {prop.get('type', 'a value')}"
        lines.append(f"Required parameter '{field}': {detail}")

    example = {"name": tool_name, "arguments": build_example(schema)}
    lines.append(f"Example: {json.dumps(example)}")
    return "\n".join(lines)
