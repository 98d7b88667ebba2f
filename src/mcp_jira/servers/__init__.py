"""FastMCP server wiring for Jira tools."""

from .main import main_mcp

__all__ = ["main_mcp"]
