"""
OpenAI client implementation - Pure LLM Interface

Used for OpenAI and every OpenAI-compatible endpoint (including Azure
deployments reached through their OpenAI-compatible base URL).
"""

import json
import os
from typing import Any

import httpx

try:
    from openai import (
        APIConnectionError,
        APIError,
        APIStatusError,
        AsyncOpenAI,
        AuthenticationError,
    )
except ImportError:
    raise ImportError("Please install openai package: pip install openai")

from coro.config.schema import Protocol, ResolvedLLMConfig
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

# Retryable exceptions for OpenAI (APITimeoutError is a subclass)
OPENAI_RETRYABLE = (APIConnectionError,)

_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
    "content_filter": FinishReason.CONTENT_FILTER,
}


class OpenAIClient(LLMClient):
    """
    OpenAI chat completions client.

    Supports GPT models and all OpenAI API compatible endpoints.
    """

    def __init__(self, config: ResolvedLLMConfig, client: AsyncOpenAI | None = None):
        from coro.config import settings

        api_key = self.resolve_api_key(config)
        if not api_key:
            raise LLMAuthenticationError("No API key found for OpenAI")

        self._model = config.model
        self._params = config.params
        self._provider = (
            "azure_openai" if config.protocol == Protocol.AZURE_OPENAI else "openai"
        )

        # Resolve Base URL
        base_url = config.base_url or settings.openai_base_url or os.getenv("OPENAI_BASE_URL")

        if client is None:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                default_headers=config.headers or None,
                timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
            )
        self._client = client

        logger.info("openai_client_initialized", model=self._model, provider=self._provider)

    @staticmethod
    def resolve_api_key(config: ResolvedLLMConfig) -> str | None:
        """Resolve API Key: argument > settings > env"""
        from coro.config import settings

        if config.api_key and config.api_key.get_secret_value():
            return config.api_key.get_secret_value()
        if settings.openai_api_key:
            return settings.openai_api_key.get_secret_value()
        return os.getenv("OPENAI_API_KEY")

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def provider_name(self) -> str:
        return self._provider

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

    @retry_async(exceptions=OPENAI_RETRYABLE)
    async def _create(self, request: dict[str, Any]) -> Any:
        return await self._client.chat.completions.create(**request)

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

        converted: list[dict[str, Any]] = []
        for message in messages:
            converted.extend(self._convert_message(message))
        if not converted:
            raise LLMInvalidRequestError("Request has no messages")

        request: dict[str, Any] = {"model": self._model, "messages": converted}

        max_tokens = options.max_tokens or self._params.max_tokens
        if max_tokens:
            request["max_tokens"] = max_tokens
        temperature = (
            options.temperature if options.temperature is not None else self._params.temperature
        )
        if temperature is not None:
            request["temperature"] = temperature
        top_p = options.top_p if options.top_p is not None else self._params.top_p
        if top_p is not None:
            request["top_p"] = top_p
        stop = options.stop or self._params.stop
        if stop:
            request["stop"] = stop

        if tools:
            request["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in tools
            ]

        return request

    @staticmethod
    def _convert_message(message: Message) -> list[dict[str, Any]]:
        """Convert one message; a Tool-role message yields one entry per result."""
        role = message.role.value

        if isinstance(message.content, str):
            return [{"role": role, "content": message.content}]

        if message.role == MessageRole.TOOL:
            results = [
                {"role": "tool", "tool_call_id": block.tool_use_id, "content": block.content}
                for block in message.get_tool_results()
            ]
            text = message.get_text()
            if not results and text is not None:
                results.append({"role": "user", "content": text})
            return results

        if message.role == MessageRole.ASSISTANT:
            if any(isinstance(block, ImageBlock) for block in message.content):
                raise LLMUnsupportedError("Images are only supported in user messages")
            entry: dict[str, Any] = {"role": "assistant", "content": message.get_text()}
            tool_uses = message.get_tool_uses()
            if tool_uses:
                entry["tool_calls"] = [
                    {
                        "id": block.id,
                        "type": "function",
                        "function": {"name": block.name, "arguments": _encode_arguments(block)},
                    }
                    for block in tool_uses
                ]
            return [entry]

        parts = []
        for block in message.content:
            if isinstance(block, TextBlock):
                parts.append({"type": "text", "text": block.text})
            elif isinstance(block, ImageBlock):
                parts.append(
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{block.mime_type};base64,{block.data}"},
                    }
                )
            elif isinstance(block, ToolResultBlock):
                parts.append({"type": "text", "text": block.content})
        return [{"role": role, "content": parts}]

    def convert_response(self, response: Any) -> LLMResponse:
        choice = response.choices[0]
        raw = choice.message

        blocks: list = []
        if raw.content:
            blocks.append(TextBlock(text=raw.content))
        for tool_call in raw.tool_calls or []:
            arguments = tool_call.function.arguments or "{}"
            try:
                parsed = json.loads(arguments)
            except json.JSONDecodeError:
                logger.error("failed_to_decode_tool_arguments", arguments=arguments)
                parsed = {}
            blocks.append(
                ToolUseBlock(id=tool_call.id, name=tool_call.function.name, input=parsed)
            )

        if len(blocks) == 1 and isinstance(blocks[0], TextBlock):
            message = Message.assistant(blocks[0].text)
        elif blocks:
            message = Message(role=MessageRole.ASSISTANT, content=blocks)
        else:
            message = Message.assistant("")

        usage = None
        if response.usage is not None:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        finish_reason = None
        metadata = None
        if choice.finish_reason is not None:
            finish_reason = _FINISH_REASONS.get(choice.finish_reason, FinishReason.OTHER)
            if finish_reason == FinishReason.OTHER:
                metadata = {"finish_reason": choice.finish_reason}

        return LLMResponse(
            message=message,
            usage=usage,
            model=response.model,
            finish_reason=finish_reason,
            metadata=metadata,
        )


def _encode_arguments(block: ToolUseBlock) -> str:
    try:
        return json.dumps(block.input, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise LLMInvalidRequestError(f"Tool input for {block.name} is not JSON serializable: {e}") from e


__all__ = ["OpenAIClient"]
