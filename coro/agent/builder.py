"""
Fluent construction of AgentCore instances.

Example:
    agent = (
        AgentBuilder(llm_config)
        .with_max_steps(50)
        .with_tools(["sequentialthinking", "task_done"])
        .build_with_output(LoggingOutput())
    )
"""

from coro.agent.core import AgentCore
from coro.config import AgentConfig, OutputMode, ResolvedLLMConfig
from coro.output import AgentOutput, NullOutput
from coro.runtime.control import AbortController
from coro.tools import ToolRegistry


class AgentBuilder:
    """Builder for AgentCore. Each with_* call returns the builder."""

    def __init__(self, llm_config: ResolvedLLMConfig):
        self.llm_config = llm_config
        self.agent_config = AgentConfig()
        self.abort_controller: AbortController | None = None

    def with_agent_config(self, config: AgentConfig) -> "AgentBuilder":
        self.agent_config = config
        return self

    def with_max_steps(self, max_steps: int) -> "AgentBuilder":
        self.agent_config = self.agent_config.model_copy(update={"max_steps": max_steps})
        return self

    def with_tools(self, tools: list[str]) -> "AgentBuilder":
        self.agent_config = self.agent_config.model_copy(update={"tools": list(tools)})
        return self

    def with_output_mode(self, mode: OutputMode) -> "AgentBuilder":
        self.agent_config = self.agent_config.model_copy(update={"output_mode": mode})
        return self

    def with_system_prompt(self, prompt: str | None) -> "AgentBuilder":
        self.agent_config = self.agent_config.model_copy(update={"system_prompt": prompt})
        return self

    def with_cancellation(self, controller: AbortController) -> "AgentBuilder":
        self.abort_controller = controller
        return self

    def build_with_output(self, output: AgentOutput) -> AgentCore:
        return self.build_with_output_and_registry(output, None)

    def build_with_output_and_registry(
        self, output: AgentOutput, registry: ToolRegistry | None
    ) -> AgentCore:
        """
        Build the agent.

        Raises:
            UnsupportedProviderError: No client for the configured protocol
            MissingCredentialError: No API key could be resolved
        """
        # Validate max_steps and friends that model_copy(update=...) skips
        config = AgentConfig.model_validate(self.agent_config.model_dump())
        return AgentCore.from_llm_config(
            config,
            self.llm_config,
            output=output,
            tool_registry=registry,
            abort_controller=self.abort_controller,
        )

    def build(self) -> AgentCore:
        return self.build_with_output(NullOutput())


__all__ = ["AgentBuilder"]
