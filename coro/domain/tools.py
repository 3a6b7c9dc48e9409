from typing import Any

from pydantic import BaseModel, Field


class ToolDefinition(BaseModel):
    """Tool schema handed to the model (JSON schema parameters)."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    parameters: Any = Field(default_factory=dict)
    metadata: dict[str, Any] | None = None


class ToolResult(BaseModel):
    """Result of a tool execution"""

    tool_call_id: str
    success: bool
    content: str  # Result for LLM
    data: dict[str, Any] | None = None  # Structured output
    metadata: dict[str, Any] | None = None

    @classmethod
    def ok(cls, tool_call_id: str, content: str, data: dict | None = None) -> "ToolResult":
        return cls(tool_call_id=tool_call_id, success=True, content=content, data=data)

    @classmethod
    def error(cls, tool_call_id: str, content: str) -> "ToolResult":
        return cls(tool_call_id=tool_call_id, success=False, content=content)


__all__ = ["ToolCall", "ToolDefinition", "ToolResult"]
