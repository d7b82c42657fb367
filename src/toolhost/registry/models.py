"""Tool model stored in the registry."""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from toolhost.protocol.models import ToolListing
from toolhost.runtime.models import DEFAULT_TIMEOUT, HandlerKind

Handler = Callable[[dict[str, Any]], Any]


def normalize_tool_name(name: str) -> str:
    """Fold a tool name for lookup: hyphens become underscores, then lowercase."""
    return name.replace("-", "_").lower()


class Tool(BaseModel):
    """A named, schema-described capability exposed by the server.

    ``name`` is always stored normalized; ``display_name`` keeps the
    spelling the tool was declared with.  ``handler_path`` is the path as
    written in configuration, before resolution against the base directory.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    name: str
    display_name: str = ""
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )
    handler: Handler | None = Field(default=None, exclude=True)
    handler_path: str | None = None
    handler_kind: HandlerKind | None = None
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    def model_post_init(self, __context: Any) -> None:
        if not self.display_name:
            self.display_name = self.name
        self.name = normalize_tool_name(self.name)

    @property
    def has_handler(self) -> bool:
        return self.handler is not None

    def to_listing(self) -> ToolListing:
        """Project to the ``tools/list`` shape, dropping handler internals."""
        return ToolListing(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )
