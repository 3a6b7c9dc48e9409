"""Configuration (setup) exceptions."""

from coro.exceptions import CoroError


class ConfigError(CoroError):
    """Base exception for configuration errors."""

    pass


class UnsupportedProviderError(ConfigError):
    """The selected model protocol has no client implementation."""

    def __init__(self, protocol: str):
        self.protocol = protocol
        super().__init__(f"Unsupported model provider: {protocol}")


class MissingCredentialError(ConfigError):
    """No API key could be resolved for a provider."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"No API key found for {provider}")


__all__ = ["ConfigError", "UnsupportedProviderError", "MissingCredentialError"]
