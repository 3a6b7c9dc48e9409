"""
Configuration schema definitions.

This module contains the configuration surface consumed by the engine:
- AgentConfig: Agent loop configuration (produced externally, consumed as-is)
- ResolvedLLMConfig: Model client selection and parameters
"""

from enum import Enum

from pydantic import BaseModel, Field, SecretStr


# ============================================================================
# Agent Configuration
# ============================================================================


class OutputMode(str, Enum):
    """Output mode for the agent."""

    DEBUG = "debug"  # Detailed logging and verbose output
    NORMAL = "normal"  # Clean, user-friendly output


DEFAULT_TOOLS = [
    "bash",
    "str_replace_based_edit_tool",
    "sequentialthinking",
    "task_done",
]


class AgentConfig(BaseModel):
    """
    Configuration for an agent.
    """

    max_steps: int = Field(default=200, ge=1, description="Maximum number of execution steps")
    enable_extended_view: bool = Field(
        default=True, description="Enable the extended (step summary) view in outputs"
    )
    tools: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TOOLS),
        description="Names of the tools available to this agent",
    )
    output_mode: OutputMode = Field(default=OutputMode.NORMAL)
    system_prompt: str | None = Field(
        default=None,
        description="Custom system prompt. If None, the default prompt is used",
    )


# ============================================================================
# LLM Configuration
# ============================================================================


class Protocol(str, Enum):
    """Wire protocol of a model endpoint."""

    OPENAI_COMPAT = "openai_compat"
    ANTHROPIC = "anthropic"
    GOOGLE_AI = "google_ai"
    AZURE_OPENAI = "azure_openai"
    CUSTOM = "custom"


class ModelParams(BaseModel):
    """Sampling parameters passed through to the model client."""

    max_tokens: int | None = Field(default=None, ge=1)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    stop: list[str] | None = None


class ResolvedLLMConfig(BaseModel):
    """
    Fully resolved model configuration.

    The api_key is opaque: it is handed to the provider SDK unchanged.
    """

    protocol: Protocol
    base_url: str | None = None
    api_key: SecretStr | None = Field(default=None, exclude=True)
    model: str
    params: ModelParams = Field(default_factory=ModelParams)
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(default=600.0, gt=0, description="Request timeout in seconds")
    connect_timeout: float = Field(default=10.0, gt=0)


__all__ = [
    "AgentConfig",
    "DEFAULT_TOOLS",
    "ModelParams",
    "OutputMode",
    "Protocol",
    "ResolvedLLMConfig",
]
