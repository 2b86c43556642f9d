"""Protocol-facing types for exposing workflows as callable tools."""

from mcp_core.types import Annotations, TextContent, Tool, ToolResult

__all__ = ["Annotations", "TextContent", "Tool", "ToolResult"]
