"""Completion providers for OpenAI-compatible chat endpoints."""

from langchain_openai import ChatOpenAI

from inqdoc.core.config import LLMConfig
from inqdoc.core.exceptions import LLMError
from inqdoc.llm.factory import LLMFactory


@LLMFactory.register("openai")
class OpenAICompatibleProvider:
    """Chat completion over an OpenAI-compatible API using langchain-openai.

    Subclasses name the vendor, its base URL and the ``LLMConfig`` fields
    holding the API key and model.
    """

    name = "openai"
    base_url: str | None = None
    api_key_field = "openai_api_key"
    model_field = "openai_model"

    def __init__(self, config: LLMConfig):
        self.config = config
        self.model = getattr(config, self.model_field)
        client_kwargs = {
            "model": self.model,
            "api_key": getattr(config, self.api_key_field),
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
            "timeout": config.request_timeout,
            # The gateway handles failover
            "max_retries": 0,
        }
        if self.base_url:
            client_kwargs["base_url"] = self.base_url
        self.client = ChatOpenAI(**client_kwargs)

    @classmethod
    def has_credentials(cls, config: LLMConfig) -> bool:
        return bool(getattr(config, cls.api_key_field, None))

    async def complete(self, prompt: str, system_prompt: str | None = None) -> str:
        """Return the completion text for ``prompt``.

        Raises:
            LLMError: If the API call fails
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.ainvoke(messages)
        except Exception as e:
            raise LLMError(f"{self.name} completion failed: {e}", provider=self.name) from e

        content = response.content
        if isinstance(content, list):
            # Some vendors return content blocks
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block) for block in content
            )
        return content


@LLMFactory.register("openrouter")
class OpenRouterProvider(OpenAICompatibleProvider):
    """OpenRouter model gateway."""

    name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"
    api_key_field = "openrouter_api_key"
    model_field = "openrouter_model"


@LLMFactory.register("gemini")
class GeminiProvider(OpenAICompatibleProvider):
    """Google Gemini through its OpenAI-compatible endpoint."""

    name = "gemini"
    base_url = "https://generativelanguage.googleapis.com/v1beta/openai/"
    api_key_field = "gemini_api_key"
    model_field = "gemini_model"


@LLMFactory.register("groq")
class GroqProvider(OpenAICompatibleProvider):
    """Groq inference API."""

    name = "groq"
    base_url = "https://api.groq.com/openai/v1"
    api_key_field = "groq_api_key"
    model_field = "groq_model"
