"""LLM abstraction layer - providers, factory and completion gateway."""

# Import providers first to trigger registration via decorators
from inqdoc.llm import openai_provider
from inqdoc.llm.factory import LLMFactory
from inqdoc.llm.gateway import CompletionGateway, create_completion_gateway, get_completion

__all__ = [
    "CompletionGateway",
    "LLMFactory",
    "create_completion_gateway",
    "get_completion",
    "openai_provider",
]
