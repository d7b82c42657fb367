"""Root of the toolhost error hierarchy."""


class ToolhostError(Exception):
    """Base error for everything raised by toolhost."""


class ConfigError(ToolhostError):
    """A tools descriptor file could not be read or failed validation."""


class ServerStartupError(ToolhostError):
    """The server refused to start (e.g. no tools registered)."""
