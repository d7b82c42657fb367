"""ToolRegistry — normalized-name tool map with fuzzy suggestions.

Usage::

    registry = ToolRegistry()
    registry.register(Tool(name="Create-Issue", description="..."))

    registry.lookup("create_issue")      # -> Tool
    registry.suggest("creat_issue")      # -> [("create_issue", 1)]
"""

from __future__ import annotations

import logging
from typing import Any

from toolhost.registry.models import Tool, normalize_tool_name


def levenshtein_distance(a: str, b: str) -> int:
    """Character-level edit distance between *a* and *b*."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], current[j - 1], previous[j]) + 1)
        previous = current
    return previous[-1]


class ToolRegistry:
    """Maps normalized tool names to :class:`Tool` objects.

    Registration is last-write-wins: a tool whose normalized name collides
    with an existing one replaces it, and the replacement is logged as a
    warning.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        self._logger = logger or logging.getLogger(__name__)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_tool_name(name) in self._tools

    def register(self, tool: Tool) -> Tool:
        """Store *tool* under its normalized name."""
        previous = self._tools.get(tool.name)
        if previous is not None:
            self._logger.warning(
                "Tool %s (declared as %r) replaces earlier registration declared as %r",
                tool.name,
                tool.display_name,
                previous.display_name,
            )
        self._tools[tool.name] = tool
        self._logger.debug("Registered tool: %s", tool.name)
        return tool

    def lookup(self, name: str) -> Tool | None:
        """Return the tool registered under *name* (normalized), or ``None``."""
        return self._tools.get(normalize_tool_name(name))

    def names(self) -> list[str]:
        return list(self._tools)

    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    def listing(self) -> list[dict[str, Any]]:
        """All tools in ``tools/list`` wire shape."""
        return [tool.to_listing().to_wire() for tool in self._tools.values()]

    def suggest(self, name: str, max_suggestions: int = 3) -> list[tuple[str, int]]:
        """Return up to *max_suggestions* ``(name, distance)`` pairs, closest first.

        Only names within ``len(query) // 2 + 3`` edits of the normalized
        query are considered similar enough to mention.
        """
        query = normalize_tool_name(name)
        max_distance = len(query) // 2 + 3
        scored = sorted(
            ((candidate, levenshtein_distance(query, candidate)) for candidate in self._tools),
            key=lambda pair: pair[1],
        )
        return [pair for pair in scored if pair[1] <= max_distance][:max_suggestions]
