"""
Model abstraction layer - Pure LLM Interface

Responsibilities:
- Encapsulate different LLM provider APIs
- Provide a unified request/response shape
- Map provider failures onto coro transport errors

Does NOT handle:
- Step loop logic
- Event wrapping
- Retries at the engine level
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from coro.domain import Message, ToolDefinition


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"
    OTHER = "other"


class Usage(BaseModel):
    """Token usage of a single model call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatOptions(BaseModel):
    """Per-request sampling options. Unset fields use provider defaults."""

    max_tokens: int | None = Field(default=None, ge=1)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    stop: list[str] | None = None


class LLMResponse(BaseModel):
    """Normalized model response."""

    message: Message
    usage: Usage | None = None
    model: str
    finish_reason: FinishReason | None = None
    metadata: dict[str, Any] | None = Field(
        default=None, description="Provider specific extras (e.g. raw stop reason)"
    )


class LLMClient(ABC):
    """
    Model capability consumed by the agent engine.

    Implementations raise coro.exceptions.LLMError subclasses on failure.
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
        options: ChatOptions | None = None,
    ) -> LLMResponse:
        """
        Send one request and return the complete response.

        Args:
            messages: Conversation, oldest first. A leading System message is
                used as the system prompt.
            tools: Tool definitions offered to the model
            options: Sampling options

        Returns:
            LLMResponse: assistant message plus usage and finish reason
        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @property
    def supports_streaming(self) -> bool:
        return False


__all__ = ["ChatOptions", "FinishReason", "LLMClient", "LLMResponse", "Usage"]
