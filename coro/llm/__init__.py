"""
LLM providers module.

This module contains the model capability and its implementations:
- LLMClient: Abstract base class
- AnthropicClient: Anthropic Messages API
- OpenAIClient: OpenAI and OpenAI-compatible endpoints
"""

from .anthropic import AnthropicClient
from .base import ChatOptions, FinishReason, LLMClient, LLMResponse, Usage
from .openai import OpenAIClient

__all__ = [
    "LLMClient",
    "LLMResponse",
    "ChatOptions",
    "FinishReason",
    "Usage",
    "AnthropicClient",
    "OpenAIClient",
]
