"""
Tests for OpenAIClient
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from coro.config import ModelParams, Protocol, ResolvedLLMConfig, settings
from coro.domain import ImageBlock, Message, MessageRole, TextBlock, ToolDefinition, ToolUseBlock
from coro.exceptions import LLMAPIError, LLMAuthenticationError, LLMInvalidRequestError, LLMUnsupportedError
from coro.llm import OpenAIClient
from coro.llm.base import FinishReason

from fakes import tool_reply


def _config(protocol: Protocol = Protocol.OPENAI_COMPAT, **kwargs) -> ResolvedLLMConfig:
    kwargs.setdefault("api_key", "sk-test")
    return ResolvedLLMConfig(protocol=protocol, model="gpt-test", **kwargs)


def _tool_call(call_id: str, name: str, arguments: str):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def _response(content=None, tool_calls=None, finish_reason="stop"):
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                message=SimpleNamespace(content=content, tool_calls=tool_calls),
                finish_reason=finish_reason,
            )
        ],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3, total_tokens=15),
        model="gpt-test",
    )


@pytest.fixture
def sdk_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(LLMAuthenticationError):
        OpenAIClient(_config(api_key=None))


def test_provider_name(sdk_client):
    assert OpenAIClient(_config(), client=sdk_client).provider_name == "openai"
    azure = OpenAIClient(_config(Protocol.AZURE_OPENAI), client=sdk_client)
    assert azure.provider_name == "azure_openai"


def test_build_request(sdk_client):
    client = OpenAIClient(_config(params=ModelParams(max_tokens=256, temperature=0.2)), client=sdk_client)
    assistant = tool_reply(("call_1", "bash", {"command": "ls"})).message
    messages = [
        Message.system("Be careful"),
        Message.user("List files"),
        assistant,
        Message.tool_result("call_1", "a.py"),
    ]

    request = client.build_request(messages, [ToolDefinition(name="bash", description="Run")])

    assert request["model"] == "gpt-test"
    assert request["max_tokens"] == 256
    assert request["temperature"] == 0.2
    assert request["messages"][0] == {"role": "system", "content": "Be careful"}
    assistant_entry = request["messages"][2]
    assert assistant_entry["content"] is None
    assert assistant_entry["tool_calls"][0]["id"] == "call_1"
    assert json.loads(assistant_entry["tool_calls"][0]["function"]["arguments"]) == {"command": "ls"}
    assert request["messages"][3] == {"role": "tool", "tool_call_id": "call_1", "content": "a.py"}
    assert request["tools"][0]["type"] == "function"
    assert request["tools"][0]["function"]["name"] == "bash"


def test_image_content(sdk_client):
    client = OpenAIClient(_config(), client=sdk_client)
    message = Message(
        role=MessageRole.USER,
        content=[TextBlock(text="What is this?"), ImageBlock(data="AAAA", mime_type="image/png")],
    )

    entry = client.build_request([message])["messages"][0]

    assert entry["content"][1] == {
        "type": "image_url",
        "image_url": {"url": "data:image/png;base64,AAAA"},
    }


def test_convert_tool_call_response(sdk_client):
    client = OpenAIClient(_config(), client=sdk_client)
    raw = _response(
        tool_calls=[
            _tool_call("call_1", "bash", '{"command": "ls"}'),
            _tool_call("call_2", "bash", "{not json"),
        ],
        finish_reason="tool_calls",
    )

    response = client.convert_response(raw)

    uses = response.message.get_tool_uses()
    assert response.finish_reason == FinishReason.TOOL_CALLS
    assert uses[0].input == {"command": "ls"}
    assert uses[1].input == {}
    assert response.usage.total_tokens == 15


def test_convert_text_response(sdk_client):
    client = OpenAIClient(_config(), client=sdk_client)

    response = client.convert_response(_response(content="Done", finish_reason="weird"))

    assert response.message == Message.assistant("Done")
    assert response.finish_reason == FinishReason.OTHER
    assert response.metadata == {"finish_reason": "weird"}


@pytest.mark.asyncio
async def test_status_error_mapping(sdk_client):
    http_response = httpx.Response(
        429, request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    )
    sdk_client.chat.completions.create.side_effect = openai.RateLimitError(
        "rate limited", response=http_response, body=None
    )
    client = OpenAIClient(_config(), client=sdk_client)

    with pytest.raises(LLMAPIError) as exc_info:
        await client.chat_completion([Message.user("Hello")])

    assert exc_info.value.status == 429


def test_sdk_client_uses_configured_timeout():
    client = OpenAIClient(_config(timeout=45.0))

    assert client._client.timeout == httpx.Timeout(45.0, connect=10.0)


def test_empty_request_is_rejected(sdk_client):
    client = OpenAIClient(_config(), client=sdk_client)

    with pytest.raises(LLMInvalidRequestError):
        client.build_request([])


def test_unserializable_tool_input_is_rejected(sdk_client):
    client = OpenAIClient(_config(), client=sdk_client)
    assistant = Message(
        role=MessageRole.ASSISTANT,
        content=[ToolUseBlock(id="t1", name="bash", input={"paths": {"a", "b"}})],
    )

    with pytest.raises(LLMInvalidRequestError, match="bash"):
        client.build_request([Message.user("go"), assistant])


def test_image_in_assistant_message_is_unsupported(sdk_client):
    client = OpenAIClient(_config(), client=sdk_client)
    assistant = Message(
        role=MessageRole.ASSISTANT,
        content=[ImageBlock(data="AAAA", mime_type="image/png")],
    )

    with pytest.raises(LLMUnsupportedError):
        client.build_request([Message.user("draw"), assistant])
