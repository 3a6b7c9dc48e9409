"""
Configuration for coro.

- Global settings from environment variables
- Agent and model configuration schemas
- Model provider registry
"""

# Settings
from coro.config.settings import CoroSettings, settings

# Schema
from coro.config.schema import (
    DEFAULT_TOOLS,
    AgentConfig,
    ModelParams,
    OutputMode,
    Protocol,
    ResolvedLLMConfig,
)

# Exceptions
from coro.config.exceptions import (
    ConfigError,
    MissingCredentialError,
    UnsupportedProviderError,
)

__all__ = [
    "CoroSettings",
    "settings",
    "AgentConfig",
    "DEFAULT_TOOLS",
    "ModelParams",
    "OutputMode",
    "Protocol",
    "ResolvedLLMConfig",
    "ConfigError",
    "MissingCredentialError",
    "UnsupportedProviderError",
]
