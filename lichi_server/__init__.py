"""MCP server for the lichi.com clothing catalog with a persisted local cart."""

__version__ = "0.1.0"
