"""
Tests for AnthropicClient
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from coro.config import ModelParams, Protocol, ResolvedLLMConfig, settings
from coro.domain import ImageBlock, Message, MessageRole, TextBlock, ToolDefinition
from coro.exceptions import (
    LLMAPIError,
    LLMAuthenticationError,
    LLMInvalidRequestError,
    LLMNetworkError,
    LLMUnsupportedError,
)
from coro.llm import AnthropicClient
from coro.llm.base import ChatOptions, FinishReason

from fakes import tool_reply


def _config(**kwargs) -> ResolvedLLMConfig:
    kwargs.setdefault("api_key", "sk-ant-test")
    return ResolvedLLMConfig(protocol=Protocol.ANTHROPIC, model="claude-test", **kwargs)


def _response(content, stop_reason="end_turn", usage=(10, 5)):
    return SimpleNamespace(
        content=content,
        usage=SimpleNamespace(input_tokens=usage[0], output_tokens=usage[1]) if usage else None,
        stop_reason=stop_reason,
        model="claude-test",
    )


def _http_response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))


@pytest.fixture
def sdk_client():
    client = MagicMock()
    client.messages.create = AsyncMock()
    return client


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(settings, "anthropic_api_key", None)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    with pytest.raises(LLMAuthenticationError):
        AnthropicClient(_config(api_key=None))


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setattr(settings, "anthropic_api_key", None)
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")

    assert AnthropicClient.resolve_api_key(_config(api_key=None)) == "sk-env"
    assert AnthropicClient.resolve_api_key(_config()) == "sk-ant-test"


def test_build_request(sdk_client):
    client = AnthropicClient(_config(), client=sdk_client)
    assistant = tool_reply(("t1", "bash", {"command": "ls"}), text="Listing files").message
    messages = [
        Message.system("Be careful"),
        Message.user("List the files"),
        assistant,
        Message.tool_result("t1", "a.py", is_error=False),
        Message.tool_result("t2", "b.py"),
    ]
    tools = [ToolDefinition(name="bash", description="Run a command")]

    request = client.build_request(messages, tools, ChatOptions(stop=["END"]))

    assert client.provider_name == "anthropic"
    assert client.model_name == "claude-test"
    assert request["system"] == "Be careful"
    assert request["max_tokens"] == 4096
    assert request["temperature"] == 0.5
    assert request["stop_sequences"] == ["END"]
    assert [m["role"] for m in request["messages"]] == ["user", "assistant", "user"]
    assert request["messages"][1]["content"] == [
        {"type": "text", "text": "Listing files"},
        {"type": "tool_use", "id": "t1", "name": "bash", "input": {"command": "ls"}},
    ]
    # Consecutive tool results share one user turn
    results = request["messages"][2]["content"]
    assert results[0] == {"type": "tool_result", "tool_use_id": "t1", "content": "a.py", "is_error": False}
    assert results[1] == {"type": "tool_result", "tool_use_id": "t2", "content": "b.py"}
    assert request["tools"] == [
        {
            "name": "bash",
            "description": "Run a command",
            "input_schema": {"type": "object", "properties": {}},
        }
    ]


def test_build_request_uses_model_params(sdk_client):
    params = ModelParams(max_tokens=1024, temperature=0.0, top_p=0.9)
    client = AnthropicClient(_config(params=params), client=sdk_client)
    image = Message(
        role=MessageRole.USER,
        content=[TextBlock(text="What is this?"), ImageBlock(data="AAAA", mime_type="image/png")],
    )

    request = client.build_request([image])

    assert request["max_tokens"] == 1024
    assert request["temperature"] == 0.0
    assert request["top_p"] == 0.9
    assert "system" not in request
    assert request["messages"][0]["content"][1] == {
        "type": "image",
        "source": {"type": "base64", "media_type": "image/png", "data": "AAAA"},
    }


def test_convert_text_response(sdk_client):
    client = AnthropicClient(_config(), client=sdk_client)

    response = client.convert_response(_response([SimpleNamespace(type="text", text="Hello")]))

    assert response.message == Message.assistant("Hello")
    assert response.finish_reason == FinishReason.STOP
    assert response.usage.total_tokens == 15
    assert response.metadata is None


def test_convert_tool_use_response(sdk_client):
    client = AnthropicClient(_config(), client=sdk_client)
    raw = _response(
        [
            SimpleNamespace(type="text", text="Running it"),
            SimpleNamespace(type="tool_use", id="tu_1", name="bash", input={"command": "ls"}),
        ],
        stop_reason="tool_use",
    )

    response = client.convert_response(raw)

    uses = response.message.get_tool_uses()
    assert response.finish_reason == FinishReason.TOOL_CALLS
    assert response.message.get_text() == "Running it"
    assert [(u.id, u.name, u.input) for u in uses] == [("tu_1", "bash", {"command": "ls"})]


def test_convert_unknown_stop_reason(sdk_client):
    client = AnthropicClient(_config(), client=sdk_client)

    response = client.convert_response(_response([], stop_reason="refusal", usage=None))

    assert response.finish_reason == FinishReason.OTHER
    assert response.metadata == {"stop_reason": "refusal"}
    assert response.usage is None
    assert response.message == Message.assistant("")


@pytest.mark.asyncio
async def test_chat_completion_calls_sdk(sdk_client):
    sdk_client.messages.create.return_value = _response([SimpleNamespace(type="text", text="Hi")])
    client = AnthropicClient(_config(), client=sdk_client)

    response = await client.chat_completion([Message.system("sys"), Message.user("Hello")])

    kwargs = sdk_client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-test"
    assert kwargs["system"] == "sys"
    assert response.message.get_text() == "Hi"


@pytest.mark.asyncio
async def test_authentication_error_mapping(sdk_client):
    sdk_client.messages.create.side_effect = anthropic.AuthenticationError(
        "invalid x-api-key", response=_http_response(401), body=None
    )
    client = AnthropicClient(_config(), client=sdk_client)

    with pytest.raises(LLMAuthenticationError):
        await client.chat_completion([Message.user("Hello")])


@pytest.mark.asyncio
async def test_status_error_mapping(sdk_client):
    sdk_client.messages.create.side_effect = anthropic.BadRequestError(
        "prompt is too long", response=_http_response(400), body=None
    )
    client = AnthropicClient(_config(), client=sdk_client)

    with pytest.raises(LLMAPIError) as exc_info:
        await client.chat_completion([Message.user("Hello")])

    assert exc_info.value.status == 400
    assert "prompt is too long" in exc_info.value.message
    # Status errors are not retried
    assert sdk_client.messages.create.await_count == 1


@pytest.mark.asyncio
async def test_malformed_response_mapping(sdk_client):
    sdk_client.messages.create.side_effect = anthropic.APIResponseValidationError(
        response=_http_response(200), body=None
    )
    client = AnthropicClient(_config(), client=sdk_client)

    with pytest.raises(LLMNetworkError, match="Failed to parse response"):
        await client.chat_completion([Message.user("Hello")])


def test_sdk_client_uses_configured_timeout():
    client = AnthropicClient(_config(timeout=30.0, connect_timeout=5.0))

    assert client._client.timeout == httpx.Timeout(30.0, connect=5.0)


@pytest.mark.asyncio
async def test_request_without_turns_is_rejected(sdk_client):
    client = AnthropicClient(_config(), client=sdk_client)

    with pytest.raises(LLMInvalidRequestError):
        await client.chat_completion([Message.system("Be careful")])
    sdk_client.messages.create.assert_not_awaited()


def test_image_in_assistant_message_is_unsupported(sdk_client):
    client = AnthropicClient(_config(), client=sdk_client)
    assistant = Message(
        role=MessageRole.ASSISTANT,
        content=[ImageBlock(data="AAAA", mime_type="image/png")],
    )

    with pytest.raises(LLMUnsupportedError):
        client.build_request([Message.user("draw"), assistant])
