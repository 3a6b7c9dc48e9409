"""
Anthropic client implementation - Pure LLM Interface
"""

import os
from typing import Any

import httpx

try:
    from anthropic import (
        APIConnectionError,
        APIError,
        APIStatusError,
        AsyncAnthropic,
        AuthenticationError,
    )
except ImportError:
    raise ImportError("Please install anthropic package: pip install anthropic")

from coro.config.schema import ResolvedLLMConfig
from coro.domain import (
    ImageBlock,
    Message,
    MessageRole,
    TextBlock,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
)
from coro.exceptions import (
    LLMAPIError,
    LLMAuthenticationError,
    LLMInvalidRequestError,
    LLMNetworkError,
    LLMUnsupportedError,
)
from coro.llm.base import ChatOptions, FinishReason, LLMClient, LLMResponse, Usage
from coro.utils.logging import get_logger
from coro.utils.retry import retry_async

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.5

# Retryable exceptions for Anthropic (APITimeoutError is a subclass)
ANTHROPIC_RETRYABLE = (APIConnectionError,)

_STOP_REASONS = {
    "end_turn": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
    "tool_use": FinishReason.TOOL_CALLS,
}


class AnthropicClient(LLMClient):
    """
    Anthropic Messages API client.

    Non-streaming: every call returns the complete assistant message.
    """

    def __init__(self, config: ResolvedLLMConfig, client: AsyncAnthropic | None = None):
        api_key = self.resolve_api_key(config)
        if not api_key:
            raise LLMAuthenticationError("No API key found for Anthropic")

        from coro.config import settings

        self._model = config.model
        self._params = config.params
        self._base_url = config.base_url or settings.anthropic_base_url or DEFAULT_BASE_URL

        if client is None:
            client = AsyncAnthropic(
                api_key=api_key,
                base_url=self._base_url,
                default_headers=config.headers or None,
                timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
            )
        self._client = client

        logger.info("anthropic_client_initialized", model=self._model, base_url=self._base_url)

    @staticmethod
    def resolve_api_key(config: ResolvedLLMConfig) -> str | None:
        """Resolve API Key: argument > settings > env"""
        from coro.config import settings

        if config.api_key and config.api_key.get_secret_value():
            return config.api_key.get_secret_value()
        if settings.anthropic_api_key:
            return settings.anthropic_api_key.get_secret_value()
        return os.getenv("ANTHROPIC_API_KEY")

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def chat_completion(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
        options: ChatOptions | None = None,
    ) -> LLMResponse:
        request = self.build_request(messages, tools, options)

        logger.info(
            "llm_request",
            model=self._model,
            messages_count=len(request["messages"]),
            tools_count=len(request.get("tools", [])),
            max_tokens=request["max_tokens"],
        )

        try:
            response = await self._create(request)
        except AuthenticationError as e:
            raise LLMAuthenticationError(str(e)) from e
        except APIStatusError as e:
            raise LLMAPIError(e.status_code, e.message) from e
        except APIConnectionError as e:
            raise LLMNetworkError(str(e)) from e
        except APIError as e:
            raise LLMNetworkError(f"Failed to parse response: {e}") from e

        return self.convert_response(response)

    @retry_async(exceptions=ANTHROPIC_RETRYABLE)
    async def _create(self, request: dict[str, Any]) -> Any:
        return await self._client.messages.create(**request)

    # ------------------------------------------------------------------
    # Request / response mapping
    # ------------------------------------------------------------------

    def build_request(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
        options: ChatOptions | None = None,
    ) -> dict[str, Any]:
        options = options or ChatOptions()

        system_prompt = None
        converted: list[dict[str, Any]] = []
        for message in messages:
            if message.role == MessageRole.SYSTEM:
                system_prompt = message.get_text()
                continue
            role = "assistant" if message.role == MessageRole.ASSISTANT else "user"
            if role == "assistant" and _has_image(message):
                raise LLMUnsupportedError("Anthropic does not accept images in assistant messages")
            blocks = self._convert_content(message)
            if not blocks:
                continue
            # Consecutive same-role turns (e.g. several tool results) are merged
            if converted and converted[-1]["role"] == role:
                converted[-1]["content"].extend(blocks)
            else:
                converted.append({"role": role, "content": blocks})

        if not converted:
            raise LLMInvalidRequestError("Request has no user or assistant messages")

        max_tokens = options.max_tokens or self._params.max_tokens or DEFAULT_MAX_TOKENS
        temperature = options.temperature
        if temperature is None:
            temperature = (
                self._params.temperature
                if self._params.temperature is not None
                else DEFAULT_TEMPERATURE
            )

        request: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": converted,
        }
        if system_prompt:
            request["system"] = system_prompt

        top_p = options.top_p if options.top_p is not None else self._params.top_p
        if top_p is not None:
            request["top_p"] = top_p

        stop = options.stop or self._params.stop
        if stop:
            request["stop_sequences"] = stop

        if tools:
            request["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.parameters,
                }
                for tool in tools
            ]

        return request

    @staticmethod
    def _convert_content(message: Message) -> list[dict[str, Any]]:
        if isinstance(message.content, str):
            return [{"type": "text", "text": message.content}] if message.content else []

        blocks = []
        for block in message.content:
            if isinstance(block, TextBlock):
                blocks.append({"type": "text", "text": block.text})
            elif isinstance(block, ImageBlock):
                blocks.append(
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": block.mime_type,
                            "data": block.data,
                        },
                    }
                )
            elif isinstance(block, ToolUseBlock):
                blocks.append(
                    {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
                )
            elif isinstance(block, ToolResultBlock):
                result = {
                    "type": "tool_result",
                    "tool_use_id": block.tool_use_id,
                    "content": block.content,
                }
                if block.is_error is not None:
                    result["is_error"] = block.is_error
                blocks.append(result)
        return blocks

    def convert_response(self, response: Any) -> LLMResponse:
        blocks = []
        for block in response.content:
            if block.type == "text":
                blocks.append(TextBlock(text=block.text))
            elif block.type == "tool_use":
                blocks.append(ToolUseBlock(id=block.id, name=block.name, input=block.input))

        if len(blocks) == 1 and isinstance(blocks[0], TextBlock):
            message = Message.assistant(blocks[0].text)
        elif blocks:
            message = Message(role=MessageRole.ASSISTANT, content=blocks)
        else:
            message = Message.assistant("")

        usage = None
        if response.usage is not None:
            usage = Usage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            )

        stop_reason = response.stop_reason
        finish_reason = None
        metadata = None
        if stop_reason is not None:
            finish_reason = _STOP_REASONS.get(stop_reason, FinishReason.OTHER)
            if finish_reason == FinishReason.OTHER:
                metadata = {"stop_reason": stop_reason}

        return LLMResponse(
            message=message,
            usage=usage,
            model=response.model,
            finish_reason=finish_reason,
            metadata=metadata,
        )


def _has_image(message: Message) -> bool:
    return not isinstance(message.content, str) and any(
        isinstance(block, ImageBlock) for block in message.content
    )


__all__ = ["AnthropicClient"]
