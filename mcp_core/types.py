"""
Types used by the tool-calling surface.

Workflows are exposed to protocol clients as tools: discovery returns Tool
objects carrying a JSON input schema, invocation returns a ToolResult whose
content is a list of text blocks.
"""

from typing import Dict, Any, List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field


class Annotations(BaseModel):
    """Annotations for content."""

    audience: Optional[List[Literal["user", "assistant"]]] = None
    priority: Optional[float] = None

    model_config = ConfigDict(extra="allow")


class TextContent(BaseModel):
    """Text content block of a tool result."""

    type: Literal["text"] = "text"
    text: str
    """The text content of the block."""
    annotations: Optional[Annotations] = None

    model_config = ConfigDict(extra="allow")


class Tool(BaseModel):
    """Definition for a tool the client can call."""

    name: str
    """The name of the tool."""
    description: Optional[str] = None
    """A human-readable description of the tool."""
    inputSchema: Dict[str, Any]
    """A JSON Schema object defining the expected parameters for the tool."""

    model_config = ConfigDict(extra="allow")


class ToolResult(BaseModel):
    """Result of a tool call."""

    content: List[TextContent] = Field(default_factory=list)
    isError: bool = False

    model_config = ConfigDict(extra="allow")

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        """Build an error result with a single text block."""
        return cls(content=[TextContent(text=message)], isError=True)

    @property
    def text(self) -> str:
        """All text blocks joined by newlines."""
        return "\n".join(block.text for block in self.content)
