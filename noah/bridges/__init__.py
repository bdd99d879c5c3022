"""Bridges to external MCP servers."""

from noah.bridges.stdio import MCPStdioBridge, MCPToolError

__all__ = ["MCPStdioBridge", "MCPToolError"]
