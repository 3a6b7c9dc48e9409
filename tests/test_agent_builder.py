"""
Tests for AgentBuilder and AgentCore.from_llm_config
"""

import pytest
from pydantic import ValidationError

from coro.agent import AgentBuilder, AgentCore
from coro.config import ModelParams, OutputMode, Protocol, ResolvedLLMConfig, settings
from coro.output import LoggingOutput, NullOutput
from coro.runtime import AbortController
from coro.tools import ToolRegistry

from fakes import EchoTool


@pytest.fixture(autouse=True)
def offline_token_counting(monkeypatch):
    # Avoid fetching the tiktoken encoding in these tests
    monkeypatch.setattr(settings, "token_encoding", None)


def _llm_config(**kwargs) -> ResolvedLLMConfig:
    return ResolvedLLMConfig(protocol=Protocol.ANTHROPIC, model="claude-test", api_key="sk-test", **kwargs)


def test_builder_applies_settings():
    controller = AbortController()

    agent = (
        AgentBuilder(_llm_config())
        .with_max_steps(5)
        .with_tools(["task_done"])
        .with_output_mode(OutputMode.DEBUG)
        .with_system_prompt("Be brief.")
        .with_cancellation(controller)
        .build()
    )

    assert isinstance(agent, AgentCore)
    assert agent.config.max_steps == 5
    assert agent.config.output_mode == OutputMode.DEBUG
    assert agent.get_configured_system_prompt() == "Be brief."
    assert agent.tool_executor.list_tools() == ["task_done"]
    assert agent.llm_client.provider_name == "anthropic"
    assert agent.abort_controller is controller
    assert isinstance(agent.output, NullOutput)
    assert agent.agent_type == "coro_agent"
    assert agent.conversation_manager.calculator.encoding is None


def test_builder_with_output_and_registry():
    registry = ToolRegistry()
    registry.register_class("echo", EchoTool)
    output = LoggingOutput()

    agent = (
        AgentBuilder(_llm_config())
        .with_tools(["echo", "unknown_tool"])
        .build_with_output_and_registry(output, registry)
    )

    assert agent.output is output
    assert agent.tool_executor.list_tools() == ["echo"]


def test_builder_rejects_invalid_max_steps():
    with pytest.raises(ValidationError):
        AgentBuilder(_llm_config()).with_max_steps(0).build()


def test_context_budget_from_model_params():
    with_params = AgentBuilder(_llm_config(params=ModelParams(max_tokens=64_000))).build()
    without_params = AgentBuilder(_llm_config()).build()

    assert with_params.conversation_manager.max_tokens == 64_000
    assert without_params.conversation_manager.max_tokens == settings.default_max_context_tokens
