"""epicme — journaling MCP server with reactive capabilities and wrapped videos."""

__version__ = "0.1.0"
