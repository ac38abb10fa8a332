"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


class LLMConfig(BaseSettings):
    """Completion provider chain configuration."""

    # Providers are tried in this order until one returns a completion
    provider_order: list[str] = Field(
        default_factory=lambda: ["openrouter", "gemini", "groq"]
    )
    temperature: float = 0.3
    max_tokens: int = 4096
    request_timeout: float = 60.0

    openrouter_api_key: str | None = None
    openrouter_model: str = "nvidia/llama-3.1-nemotron-ultra-253b-v1:free"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    groq_api_key: str | None = None
    groq_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"

    # Prompt budgeting
    token_encoding_model: str = "gpt-4o"
    max_context_tokens: int = 120000

    model_config = SettingsConfigDict(env_prefix="LLM_")


class RAGConfig(BaseSettings):
    """Chunking, embedding and retrieval configuration."""

    embedding_provider: str = "openai"  # 'openai' or 'pinecone'
    embedding_model: str = "text-embedding-3-small"
    embedding_api_key: str | None = None

    vector_store: str = "pinecone"
    pinecone_api_key: str | None = None
    pinecone_index_name: str = "inqdoc"
    pinecone_namespace: str | None = None

    chunker: str = "sliding_window"
    max_chunk_size: int = 1000
    target_chunk_size: int = 500
    min_chunk_size: int = 100
    chunk_overlap: int = 200

    top_k: int = 10
    keyword_weight: float = 0.3
    semantic_weight: float = 0.7
    include_neighbour_context: bool = True

    model_config = SettingsConfigDict(env_prefix="RAG_")


class ExtractionConfig(BaseSettings):
    """Content extraction configuration."""

    cache_ttl_seconds: float = 300.0
    cache_max_entries: int = 1000
    min_extracted_chars: int = 10
    fallback_max_chars: int = 15000

    model_config = SettingsConfigDict(env_prefix="EXTRACTION_")


class StorageConfig(BaseSettings):
    """Document byte store configuration."""

    backend: str = "s3"  # 's3' or 'local'
    bucket_name: str | None = None
    region: str | None = None
    local_root: str = "./uploads"

    model_config = SettingsConfigDict(env_prefix="STORAGE_")


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    app_name: str = "InQDoc"
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = False
    log_file: str | None = None

    llm: LLMConfig = Field(default_factory=LLMConfig)
    rag: RAGConfig = Field(default_factory=RAGConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    model_config = SettingsConfigDict(env_file=str(_env_file), env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return AppConfig()
