"""Tests for the completion gateway."""

import pytest

from inqdoc.core.config import LLMConfig
from inqdoc.core.exceptions import ConfigurationError, LLMError
from inqdoc.llm import CompletionGateway, create_completion_gateway
from inqdoc.llm.gateway import EXTRACTION_SYSTEM_PROMPT


class FakeProvider:
    """Provider returning a canned result or raising."""

    def __init__(self, name: str, result: str | None = None, error: Exception | None = None):
        self.name = name
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str | None]] = []

    async def complete(self, prompt: str, system_prompt: str | None = None) -> str:
        self.calls.append((prompt, system_prompt))
        if self.error:
            raise self.error
        return self.result


class TestCompletionGateway:
    """Test cases for CompletionGateway."""

    @pytest.mark.asyncio
    async def test_first_provider_wins(self):
        first = FakeProvider("openrouter", result="first answer")
        second = FakeProvider("gemini", result="second answer")
        gateway = CompletionGateway([first, second])

        assert await gateway.get_completion("prompt") == "first answer"
        assert second.calls == []

    @pytest.mark.asyncio
    async def test_failover_on_error(self):
        """Test that a raising provider is skipped."""
        failing = FakeProvider("openrouter", error=LLMError("down", provider="openrouter"))
        working = FakeProvider("gemini", result="fallback answer")
        gateway = CompletionGateway([failing, working])

        assert await gateway.get_completion("prompt") == "fallback answer"
        assert failing.calls == [("prompt", None)]

    @pytest.mark.asyncio
    async def test_failover_on_empty_result(self):
        empty = FakeProvider("openrouter", result="   ")
        working = FakeProvider("groq", result="answer")
        gateway = CompletionGateway([empty, working])

        assert await gateway.get_completion("prompt") == "answer"

    @pytest.mark.asyncio
    async def test_all_failed_returns_none(self):
        gateway = CompletionGateway(
            [
                FakeProvider("openrouter", error=RuntimeError("boom")),
                FakeProvider("gemini", result=""),
                FakeProvider("groq", result=None),
            ]
        )

        assert await gateway.get_completion("prompt") is None

    @pytest.mark.asyncio
    async def test_no_providers_returns_none(self):
        assert await CompletionGateway([]).get_completion("prompt") is None

    @pytest.mark.asyncio
    async def test_extraction_uses_system_prompt(self):
        provider = FakeProvider("openrouter", result="extracted text")
        gateway = CompletionGateway([provider])

        assert await gateway.get_extraction_fallback("raw bytes") == "extracted text"
        assert provider.calls == [("raw bytes", EXTRACTION_SYSTEM_PROMPT)]


class TestCreateCompletionGateway:
    """Test cases for building the gateway from configuration."""

    def test_providers_without_keys_skipped(self):
        config = LLMConfig(
            provider_order=["openrouter", "gemini", "groq"],
            openrouter_api_key="or-key",
            gemini_api_key=None,
            groq_api_key="groq-key",
        )

        gateway = create_completion_gateway(config)

        assert gateway.provider_names == ["openrouter", "groq"]

    def test_order_preserved(self):
        config = LLMConfig(
            provider_order=["groq", "openrouter"],
            openrouter_api_key="or-key",
            groq_api_key="groq-key",
        )

        assert create_completion_gateway(config).provider_names == ["groq", "openrouter"]

    def test_openai_is_opt_in(self):
        config = LLMConfig(
            openai_api_key="oa-key",
            openrouter_api_key="or-key",
            gemini_api_key=None,
            groq_api_key=None,
        )

        assert create_completion_gateway(config).provider_names == ["openrouter"]

        config.provider_order = ["openai", "openrouter"]
        assert create_completion_gateway(config).provider_names == ["openai", "openrouter"]

    def test_unknown_provider_raises(self):
        config = LLMConfig(provider_order=["openrouter", "mystery"], openrouter_api_key="k")

        with pytest.raises(ConfigurationError):
            create_completion_gateway(config)

    @pytest.mark.asyncio
    async def test_no_configured_providers(self):
        config = LLMConfig(
            provider_order=["gemini"],
            gemini_api_key=None,
        )

        gateway = create_completion_gateway(config)

        assert gateway.provider_names == []
        assert await gateway.get_completion("prompt") is None
