from typing import TYPE_CHECKING, Callable

from coro.config.exceptions import MissingCredentialError, UnsupportedProviderError
from coro.config.schema import Protocol, ResolvedLLMConfig
from coro.utils.logging import get_logger

if TYPE_CHECKING:
    from coro.llm import LLMClient

logger = get_logger(__name__)


ModelProviderFactory = Callable[[ResolvedLLMConfig], "LLMClient"]


class ModelProviderRegistry:
    """
    Model provider registry.

    Responsibilities:
    - Map a wire protocol to a client factory
    - Reject protocols without a client (UnsupportedProviderError)
    - Reject configurations without a resolvable key (MissingCredentialError)
    """

    def __init__(self):
        self._providers: dict[str, ModelProviderFactory] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        from coro.llm import AnthropicClient, OpenAIClient

        self.register(Protocol.OPENAI_COMPAT, OpenAIClient)
        self.register(Protocol.AZURE_OPENAI, OpenAIClient)
        self.register(Protocol.ANTHROPIC, AnthropicClient)

        logger.debug("registered_default_model_providers", providers=self.list_providers())

    def register(self, protocol: Protocol | str, factory: ModelProviderFactory) -> None:
        key = Protocol(protocol).value
        self._providers[key] = factory
        logger.debug("registered_model_provider", protocol=key)

    def get(self, protocol: Protocol | str) -> ModelProviderFactory | None:
        return self._providers.get(Protocol(protocol).value)

    def has(self, protocol: Protocol | str) -> bool:
        return Protocol(protocol).value in self._providers

    def list_providers(self) -> list[str]:
        return list(self._providers.keys())

    def create_client(self, config: ResolvedLLMConfig) -> "LLMClient":
        """
        Create a model client for a resolved configuration.

        Raises:
            UnsupportedProviderError: No client for the protocol
            MissingCredentialError: No API key could be resolved
        """
        factory = self.get(config.protocol)
        if factory is None:
            raise UnsupportedProviderError(config.protocol.value)

        resolve = getattr(factory, "resolve_api_key", None)
        if resolve is not None and not resolve(config):
            raise MissingCredentialError(config.protocol.value)

        logger.info("creating_model_client", protocol=config.protocol.value, model=config.model)
        return factory(config)


_model_provider_registry: ModelProviderRegistry | None = None


def get_model_provider_registry() -> ModelProviderRegistry:
    """Global ModelProviderRegistry instance."""
    global _model_provider_registry

    if _model_provider_registry is None:
        _model_provider_registry = ModelProviderRegistry()

    return _model_provider_registry


def create_llm_client(config: ResolvedLLMConfig) -> "LLMClient":
    return get_model_provider_registry().create_client(config)


__all__ = [
    "ModelProviderRegistry",
    "create_llm_client",
    "get_model_provider_registry",
]
