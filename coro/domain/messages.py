"""
Conversation message model.

A message's content is either plain text or an ordered list of content
blocks. Tool-use and tool-result blocks are paired by id.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Standard LLM message roles"""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


# ============================================================================
# Content blocks
# ============================================================================


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageBlock(BaseModel):
    type: Literal["image"] = "image"
    data: str  # base64 encoded
    mime_type: str


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Any = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    is_error: bool | None = None
    content: str


ContentBlock = Annotated[
    Union[TextBlock, ImageBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


# ============================================================================
# Message
# ============================================================================


class Message(BaseModel):
    """A single message in an LLM conversation."""

    role: MessageRole
    content: str | list[ContentBlock]
    metadata: dict[str, Any] | None = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content)

    @classmethod
    def tool(cls, content: str) -> "Message":
        return cls(role=MessageRole.TOOL, content=content)

    @classmethod
    def tool_result(
        cls, tool_use_id: str, content: str, is_error: bool | None = None
    ) -> "Message":
        """Tool-role message carrying a single result block."""
        return cls(
            role=MessageRole.TOOL,
            content=[
                ToolResultBlock(tool_use_id=tool_use_id, is_error=is_error, content=content)
            ],
        )

    @property
    def blocks(self) -> list:
        """Content blocks, empty for plain text content."""
        if isinstance(self.content, str):
            return []
        return self.content

    def get_text(self) -> str | None:
        """Text content; text blocks are joined with newlines."""
        if isinstance(self.content, str):
            return self.content
        parts = [b.text for b in self.content if isinstance(b, TextBlock)]
        if not parts:
            return None
        return "\n".join(parts)

    def has_tool_use(self) -> bool:
        return any(isinstance(b, ToolUseBlock) for b in self.blocks)

    def get_tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.blocks if isinstance(b, ToolUseBlock)]

    def get_tool_results(self) -> list[ToolResultBlock]:
        return [b for b in self.blocks if isinstance(b, ToolResultBlock)]


def pending_tool_use_ids(history: list[Message]) -> list[str]:
    """
    Tool-use ids of the trailing assistant message that have no Tool-role
    result yet, in the order the model issued them.

    Only Tool-role messages may follow that assistant message; anything else
    means the conversation already moved on and nothing is pending.
    """
    for index in range(len(history) - 1, -1, -1):
        message = history[index]
        if message.role == MessageRole.TOOL:
            continue
        if message.role != MessageRole.ASSISTANT:
            return []
        resolved = {
            block.tool_use_id
            for later in history[index + 1 :]
            if later.role == MessageRole.TOOL
            for block in later.get_tool_results()
        }
        return [t.id for t in message.get_tool_uses() if t.id not in resolved]
    return []


__all__ = [
    "ContentBlock",
    "ImageBlock",
    "Message",
    "MessageRole",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    "pending_tool_use_ids",
]
