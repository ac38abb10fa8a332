"""Completion provider factory with decorator-based registration."""

from inqdoc.core.config import LLMConfig
from inqdoc.core.exceptions import ConfigurationError


class LLMFactory:
    """Decorator-based auto-registration factory.

    To add a new provider:
    1. Create a provider class in llm/
    2. Apply @LLMFactory.register("new_name") decorator
    3. Add new_name to LLM_PROVIDER_ORDER in .env

    Providers are constructed from ``LLMConfig`` and expose
    ``has_credentials(config)`` so the gateway can skip unconfigured ones.
    """

    _registry: dict[str, type] = {}

    @classmethod
    def register(cls, name: str):
        """Decorator to register a provider class."""

        def decorator(provider_cls: type) -> type:
            cls._registry[name] = provider_cls
            return provider_cls

        return decorator

    @classmethod
    def get_provider_class(cls, name: str) -> type:
        provider_cls = cls._registry.get(name)
        if provider_cls is None:
            available = ", ".join(cls._registry.keys()) or "none registered"
            raise ConfigurationError(f"Unknown LLM provider: '{name}'. Available: {available}")
        return provider_cls

    @classmethod
    def create(cls, name: str, config: LLMConfig):
        """Create a provider instance from configuration."""
        return cls.get_provider_class(name)(config)

    @classmethod
    def available_providers(cls) -> list[str]:
        """List all registered providers."""
        return list(cls._registry.keys())
