"""Tests for embedding generators."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from inqdoc.core.exceptions import ConfigurationError
from inqdoc.documents import embeddings
from inqdoc.documents.embeddings import (
    BaseEmbeddingGenerator,
    EmbeddingGenerator,
    PineconeInferenceEmbedding,
    create_embedding_generator,
)


class ScriptedEmbedding(BaseEmbeddingGenerator):
    """Raises the queued errors, then returns fixed vectors."""

    model = "scripted"

    def __init__(self, errors=()):
        self.errors = list(errors)
        self.attempts = 0

    async def generate(self, texts):
        async def call():
            self.attempts += 1
            if self.errors:
                raise self.errors.pop(0)
            return [[1.0, 2.0] for _ in texts]

        return await self._with_retry(call, "scripted_embedding")


class FakeEmbeddingsAPI:
    """Stands in for ``AsyncOpenAI().embeddings``."""

    def __init__(self):
        self.batches: list[list[str]] = []

    async def create(self, model, input):
        self.batches.append(list(input))
        return SimpleNamespace(data=[SimpleNamespace(embedding=[float(len(t))]) for t in input])


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    monkeypatch.setattr(embeddings, "RETRY_DELAY", 0)


class TestBaseEmbeddingGenerator:
    """Test cases for retry and null-on-failure behaviour."""

    @pytest.mark.asyncio
    async def test_generate_embedding(self):
        assert await ScriptedEmbedding().generate_embedding("hello") == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_blank_text_returns_none(self):
        generator = ScriptedEmbedding()

        assert await generator.generate_embedding("   ") is None
        assert generator.attempts == 0

    @pytest.mark.asyncio
    async def test_retries_rate_limits(self):
        generator = ScriptedEmbedding(errors=[RuntimeError("429 Too Many Requests")])

        assert await generator.generate_embedding("hello") == [1.0, 2.0]
        assert generator.attempts == 2

    @pytest.mark.asyncio
    async def test_non_retryable_error_returns_none(self):
        generator = ScriptedEmbedding(errors=[ValueError("invalid model")])

        assert await generator.generate_embedding("hello") is None
        assert generator.attempts == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        generator = ScriptedEmbedding(errors=[RuntimeError("timeout")] * embeddings.MAX_RETRIES)

        with pytest.raises(RuntimeError):
            await generator.generate(["hello"])
        assert generator.attempts == embeddings.MAX_RETRIES


class TestEmbeddingGenerator:
    """Test cases for the OpenAI embedding generator."""

    @pytest.mark.asyncio
    async def test_batches_requests(self):
        generator = EmbeddingGenerator(api_key="test-key")
        api = FakeEmbeddingsAPI()
        generator._async_client = SimpleNamespace(embeddings=api)

        vectors = await generator.generate([f"text {i}" for i in range(250)])

        assert len(vectors) == 250
        assert [len(batch) for batch in api.batches] == [100, 100, 50]

    @pytest.mark.asyncio
    async def test_empty_strings_replaced(self):
        generator = EmbeddingGenerator(api_key="test-key")
        api = FakeEmbeddingsAPI()
        generator._async_client = SimpleNamespace(embeddings=api)

        await generator.generate(["", "text"])

        assert api.batches == [[" ", "text"]]


class TestPineconeInferenceEmbedding:
    """Test cases for Pinecone Inference embeddings."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.inference.embed.side_effect = lambda model, inputs, parameters: SimpleNamespace(
            data=[SimpleNamespace(values=[0.1, 0.2]) for _ in inputs]
        )
        return client

    @pytest.mark.asyncio
    async def test_passage_batches(self, client):
        generator = PineconeInferenceEmbedding(api_key="pc-key")
        generator._pinecone_client = client

        vectors = await generator.generate([f"t{i}" for i in range(100)])

        assert len(vectors) == 100
        sizes = [len(c.kwargs["inputs"]) for c in client.inference.embed.call_args_list]
        assert sizes == [96, 4]
        assert client.inference.embed.call_args.kwargs["parameters"]["input_type"] == "passage"

    @pytest.mark.asyncio
    async def test_query_input_type(self, client):
        generator = PineconeInferenceEmbedding(api_key="pc-key")
        generator._pinecone_client = client

        assert await generator.generate_embedding("question") == [0.1, 0.2]
        assert client.inference.embed.call_args.kwargs["parameters"]["input_type"] == "query"


class TestCreateEmbeddingGenerator:
    """Test cases for the embedding generator factory."""

    def test_openai(self):
        generator = create_embedding_generator("openai", api_key="key")
        assert isinstance(generator, EmbeddingGenerator)
        assert generator.model == "text-embedding-3-small"

    def test_pinecone_default_model(self):
        generator = create_embedding_generator("pinecone", api_key="key")
        assert isinstance(generator, PineconeInferenceEmbedding)
        assert generator.model == "multilingual-e5-large"

    def test_pinecone_requires_key(self):
        with pytest.raises(ConfigurationError):
            create_embedding_generator("pinecone", api_key=None)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            create_embedding_generator("cohere")
