"""Completion gateway: ordered provider chain with failover."""

from __future__ import annotations

import time
from collections.abc import Sequence

from inqdoc.core.config import LLMConfig
from inqdoc.core.logging import get_logger
from inqdoc.core.protocols import CompletionProvider
from inqdoc.llm.factory import LLMFactory

logger = get_logger(__name__)

EXTRACTION_SYSTEM_PROMPT = (
    "You extract readable text from raw document content. "
    "Return only the extracted text, with no commentary."
)


class CompletionGateway:
    """Tries each provider in order until one returns non-empty text.

    A provider that raises or returns an empty result counts as failed and
    the next one is tried. When all fail the gateway returns None.
    """

    def __init__(self, providers: Sequence[CompletionProvider]):
        self.providers = list(providers)

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self.providers]

    async def get_completion(self, prompt: str) -> str | None:
        """Return a completion for ``prompt``, or None if every provider failed."""
        return await self._complete(prompt, system_prompt=None, purpose="completion")

    async def get_extraction_fallback(self, prompt: str) -> str | None:
        """Run a raw-text extraction prompt through the provider chain."""
        return await self._complete(prompt, system_prompt=EXTRACTION_SYSTEM_PROMPT, purpose="extraction")

    async def _complete(self, prompt: str, system_prompt: str | None, purpose: str) -> str | None:
        if not self.providers:
            logger.error("no_llm_providers_available", purpose=purpose)
            return None

        for provider in self.providers:
            start = time.perf_counter()
            try:
                result = await provider.complete(prompt, system_prompt=system_prompt)
            except Exception as e:
                logger.warning(
                    "llm_provider_failed",
                    provider=provider.name,
                    purpose=purpose,
                    error=str(e),
                )
                continue

            if result and result.strip():
                logger.info(
                    "llm_completion_succeeded",
                    provider=provider.name,
                    purpose=purpose,
                    duration_ms=round((time.perf_counter() - start) * 1000),
                )
                return result

            logger.warning("llm_provider_empty_result", provider=provider.name, purpose=purpose)

        logger.error("all_llm_providers_failed", purpose=purpose, providers=self.provider_names)
        return None


def create_completion_gateway(config: LLMConfig) -> CompletionGateway:
    """Build the provider chain from ``config.provider_order``.

    Providers without an API key are skipped.

    Raises:
        ConfigurationError: If the order names an unknown provider
    """
    providers: list[CompletionProvider] = []
    for name in config.provider_order:
        provider_cls = LLMFactory.get_provider_class(name)
        if not provider_cls.has_credentials(config):
            logger.info("llm_provider_skipped", provider=name, reason="no_api_key")
            continue
        providers.append(provider_cls(config))

    if providers:
        logger.info("llm_providers_initialized", providers=[p.name for p in providers])
    else:
        logger.error("no_llm_providers_initialized", configured=config.provider_order)

    return CompletionGateway(providers)


async def get_completion(prompt: str) -> str | None:
    """Completion using the application's shared gateway."""
    from inqdoc.core.di_container import container

    return await container.completion_gateway().get_completion(prompt)
