"""
Global settings from environment variables.
"""

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoroSettings(BaseSettings):
    """
    Global configuration loaded from environment variables.

    Environment variables should be prefixed with CORO_
    Example: CORO_DEBUG=true, CORO_TRAJECTORY_DIR=/tmp/trajectories
    """

    model_config = SettingsConfigDict(
        env_prefix="CORO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # Core settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Trajectory files written by TrajectoryRecorder.with_auto_filename()
    trajectory_dir: str = "trajectories"

    # Token budget used when the model params carry no max_tokens
    default_max_context_tokens: int = 8192

    # tiktoken encoding for history token estimates; empty uses chars / 4
    token_encoding: str | None = "cl100k_base"

    # Model Provider Settings
    # OpenAI (and OpenAI compatible endpoints)
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None

    # Anthropic
    anthropic_api_key: SecretStr | None = None
    anthropic_base_url: str | None = None


# Global settings instance (singleton)
settings = CoroSettings()


__all__ = ["CoroSettings", "settings"]
