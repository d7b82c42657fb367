"""Tool registry — normalized names, lookup, and fuzzy suggestions."""

from toolhost.registry.models import Handler, Tool, normalize_tool_name
from toolhost.registry.registry import ToolRegistry, levenshtein_distance

__all__ = [
    "Handler",
    "Tool",
    "ToolRegistry",
    "levenshtein_distance",
    "normalize_tool_name",
]
