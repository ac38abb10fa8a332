"""Tests for chunking strategies and the chunker registry."""

import random

import pytest

from inqdoc.core.exceptions import NoImplementationError
from inqdoc.documents.chunking import (
    ChunkerRegistry,
    ChunkingOptions,
    SemanticChunker,
    SemanticChunkingOptions,
    SlidingWindowChunker,
    create_chunker_registry,
)
from inqdoc.documents.chunking.base import find_section_for_position, split_paragraphs
from inqdoc.documents.chunking.semantic import split_sentences
from inqdoc.documents.models import DocumentMetadata, DocumentSection
from inqdoc.documents.structure import analyze_document_structure


def _random_document(seed: int) -> str:
    rng = random.Random(seed)
    words = ["alpha", "beta", "gamma", "delta", "epsilon", "zeta", "theta", "kappa"]
    paragraphs = []
    for _ in range(rng.randint(1, 8)):
        # Mix short paragraphs with ones far longer than a window
        length = rng.choice([5, 40, 300, 600])
        sentence_words = [rng.choice(words) for _ in range(length)]
        paragraphs.append(" ".join(sentence_words).capitalize() + ".")
    return rng.choice(["\n\n", "\n  \n", "\n\n\n"]).join(paragraphs)


class TestSlidingWindowChunker:
    """Test cases for the sliding window strategy."""

    @pytest.mark.asyncio
    async def test_overlap_window_positions(self):
        """Test that the second window starts max - overlap into the text."""
        chunker = SlidingWindowChunker(ChunkingOptions(max_chunk_size=1000, chunk_overlap=200))
        text = "x" * 2500

        result = await chunker.create_chunks("doc", text)

        assert result.chunks[0].start_position == 0
        assert result.chunks[0].end_position == 1000
        assert result.chunks[1].start_position == 800
        assert result.chunks[-1].end_position == 2500

    @pytest.mark.asyncio
    async def test_short_tail_is_folded_into_previous_chunk(self):
        """Test that a tail under a third of a window is not emitted alone."""
        chunker = SlidingWindowChunker(ChunkingOptions(max_chunk_size=1000, chunk_overlap=200))
        text = "y" * 1900

        result = await chunker.create_chunks("doc", text)

        assert result.chunk_count == 2
        assert result.chunks[-1].start_position == 800
        assert result.chunks[-1].end_position == 1900
        assert result.chunks[-1].content == text[800:1900]

    @pytest.mark.asyncio
    async def test_default_overlap_is_200(self):
        """Test the strategy-specific overlap default."""
        chunker = SlidingWindowChunker()
        assert chunker.options.chunk_overlap == 200
        assert chunker.options.max_chunk_size == 1000

    @pytest.mark.asyncio
    async def test_paragraphs_become_separate_chunks(self):
        """Test that short paragraphs map one-to-one to chunks with exact spans."""
        text = "Para one.\n\nPara two.\n\n\nPara three."
        chunker = SlidingWindowChunker()

        result = await chunker.create_chunks("doc", text)

        assert [c.content for c in result.chunks] == ["Para one.", "Para two.", "Para three."]
        for chunk in result.chunks:
            assert text[chunk.start_position : chunk.end_position] == chunk.content

    @pytest.mark.asyncio
    async def test_whole_text_when_paragraphs_not_respected(self):
        """Test that the whole text is one paragraph when the flag is off."""
        text = "First.\n\nSecond."
        chunker = SlidingWindowChunker(respect_paragraph_boundaries=False)

        result = await chunker.create_chunks("doc", text)

        assert result.chunk_count == 1
        assert result.chunks[0].content == text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(12))
    async def test_chunks_cover_all_non_blank_text(self, seed):
        """Test that no non-whitespace character falls outside every chunk."""
        text = _random_document(seed)
        chunker = SlidingWindowChunker(ChunkingOptions(max_chunk_size=500, chunk_overlap=100))

        result = await chunker.create_chunks("doc", text)

        covered = [False] * len(text)
        for chunk in result.chunks:
            assert text[chunk.start_position : chunk.end_position] == chunk.content
            for i in range(chunk.start_position, chunk.end_position):
                covered[i] = True

        missing = [i for i, ch in enumerate(text) if not ch.isspace() and not covered[i]]
        assert missing == []

    @pytest.mark.asyncio
    async def test_chunk_gets_deepest_section(self):
        """Test section assignment from analysed structure."""
        text = "# Intro\n\nHello world.\n\n## Details\n\nMore text here."
        structure = analyze_document_structure(text)
        chunker = SlidingWindowChunker()

        result = await chunker.create_chunks("doc", text, sections=structure.sections)

        by_content = {c.content: c for c in result.chunks}
        assert by_content["Hello world."].section.title == "Intro"
        assert by_content["More text here."].section.title == "Details"
        assert by_content["More text here."].section.level == 2
        assert by_content["More text here."].metadata["section_title"] == "Details"

    @pytest.mark.asyncio
    async def test_document_metadata_copied_to_chunks(self):
        """Test that document title and author land in chunk metadata."""
        metadata = DocumentMetadata(title="Handbook", author="Ops", created_date="2024-01-01")
        chunker = SlidingWindowChunker()

        result = await chunker.create_chunks("doc", "Some content here.", metadata)

        chunk_metadata = result.chunks[0].metadata
        assert chunk_metadata["document_title"] == "Handbook"
        assert chunk_metadata["document_author"] == "Ops"
        assert chunk_metadata["document_created_date"] == "2024-01-01"
        assert chunk_metadata["start_position"] == 0


class TestSemanticChunker:
    """Test cases for the semantic strategy."""

    @pytest.mark.asyncio
    async def test_chunks_do_not_cross_section_boundary(self):
        """Test that a new section closes the in-progress chunk."""
        intro = ("Intro words here. " * 3)[:48]
        details = "\n\n".join(f"Details paragraph {i} has a few words." for i in range(8))
        text = intro + "\n\n" + details
        sections = [
            DocumentSection(title="Intro", level=1, start_position=0, end_position=50),
            DocumentSection(title="Details", level=1, start_position=50, end_position=500),
        ]
        chunker = SemanticChunker(SemanticChunkingOptions(new_chunk_on_section_boundary=True))

        result = await chunker.create_chunks("doc", text, sections=sections)

        assert result.chunk_count >= 2
        for chunk in result.chunks:
            assert not (chunk.start_position < 50 < chunk.end_position)
        assert result.chunks[0].section.title == "Intro"
        assert result.chunks[1].start_position == 50
        assert result.chunks[1].section.title == "Details"

    @pytest.mark.asyncio
    async def test_section_starting_mid_paragraph_is_not_straddled(self):
        """Test a boundary with no blank line before it."""
        intro = ("Intro words. " * 4)[:49] + "\n"
        details = ("Details words here. " * 25)[:450]
        text = intro + details
        sections = [
            DocumentSection(title="Intro", level=1, start_position=0, end_position=50),
            DocumentSection(title="Details", level=1, start_position=50, end_position=500),
        ]
        chunker = SemanticChunker(SemanticChunkingOptions(new_chunk_on_section_boundary=True))

        result = await chunker.create_chunks("doc", text, sections=sections)

        assert len(text) == 500
        assert result.chunk_count == 2
        for chunk in result.chunks:
            assert not (chunk.start_position < 50 < chunk.end_position)
        assert result.chunks[0].section.title == "Intro"
        assert result.chunks[1].start_position == 50
        assert result.chunks[1].section.title == "Details"
        assert result.chunks[1].content == "## Details\n\n" + details

    @pytest.mark.asyncio
    async def test_heading_counts_towards_max_size(self):
        """Test that heading plus paragraph never exceeds max_chunk_size."""
        text = "a" * 100
        sections = [DocumentSection(title="Intro", level=1, start_position=0, end_position=100)]
        chunker = SemanticChunker(
            SemanticChunkingOptions(max_chunk_size=100, target_chunk_size=80, min_chunk_size=10)
        )

        result = await chunker.create_chunks("doc", text, sections=sections)

        assert result.chunk_count == 2
        assert all(len(c.content) <= 100 for c in result.chunks)
        assert result.chunks[0].content == "## Intro\n\n" + "a" * 90
        assert result.chunks[1].start_position == 90

    @pytest.mark.asyncio
    async def test_section_heading_prepended(self):
        """Test the default heading format on the first chunk of a section."""
        text = "Intro paragraph text."
        sections = [DocumentSection(title="Intro", level=1, start_position=0, end_position=len(text))]
        chunker = SemanticChunker()

        result = await chunker.create_chunks("doc", text, sections=sections)

        assert result.chunks[0].content == "## Intro\n\nIntro paragraph text."
        assert result.chunks[0].metadata["section_position"] == 0

    @pytest.mark.asyncio
    async def test_headings_can_be_disabled(self):
        """Test include_section_headings=False."""
        text = "Intro paragraph text."
        sections = [DocumentSection(title="Intro", level=1, start_position=0, end_position=len(text))]
        chunker = SemanticChunker(SemanticChunkingOptions(include_section_headings=False))

        result = await chunker.create_chunks("doc", text, sections=sections)

        assert result.chunks[0].content == text

    @pytest.mark.asyncio
    async def test_small_paragraphs_are_packed(self):
        """Test that paragraphs are merged up to the size limits."""
        text = "\n\n".join(f"Short paragraph {i}." for i in range(10))
        chunker = SemanticChunker()

        result = await chunker.create_chunks("doc", text)

        assert result.chunk_count == 1
        assert "Short paragraph 0." in result.chunks[0].content
        assert "Short paragraph 9." in result.chunks[0].content
        assert result.chunks[0].start_position == 0
        assert result.chunks[0].end_position == len(text)

    @pytest.mark.asyncio
    async def test_overflow_starts_new_chunk_with_paragraph(self):
        """Test that the paragraph that overflows opens the next chunk."""
        first = "a" * 60
        second = "b" * 60
        text = f"{first}\n\n{second}"
        chunker = SemanticChunker(
            SemanticChunkingOptions(max_chunk_size=100, target_chunk_size=80, min_chunk_size=10)
        )

        result = await chunker.create_chunks("doc", text)

        assert [c.content for c in result.chunks] == [first, second]
        assert result.chunks[1].start_position == 62

    @pytest.mark.asyncio
    async def test_sentence_break_after_target(self):
        """Test splitting a paragraph at a sentence boundary past the target size."""
        first = "Opening paragraph with enough words in it ok."  # 45 chars
        sentences = [
            "Alpha beta gamma delta epsilon.",
            " Zeta eta theta iota kappa lambda.",
            " Mu nu xi omicron pi rho sigma.",
        ]
        second = "".join(sentences)
        text = f"{first}\n\n{second}"
        chunker = SemanticChunker(
            SemanticChunkingOptions(max_chunk_size=1000, target_chunk_size=90, min_chunk_size=20)
        )

        result = await chunker.create_chunks("doc", text)

        assert result.chunk_count == 2
        assert result.chunks[0].content == f"{first}\n\n{sentences[0]}"
        assert result.chunks[1].content.startswith("Zeta")
        assert text[result.chunks[1].start_position :].startswith("Zeta")
        assert result.chunks[0].end_position <= result.chunks[1].start_position

    @pytest.mark.asyncio
    async def test_no_sentence_break_when_disabled(self):
        """Test that prefer_complete_sentences=False keeps paragraphs whole."""
        first = "Opening paragraph with enough words in it ok."
        second = "Alpha beta gamma delta epsilon. Zeta eta theta iota kappa lambda."
        text = f"{first}\n\n{second}"
        chunker = SemanticChunker(
            SemanticChunkingOptions(
                max_chunk_size=1000,
                target_chunk_size=90,
                min_chunk_size=20,
                prefer_complete_sentences=False,
            )
        )

        result = await chunker.create_chunks("doc", text)

        assert result.chunk_count == 1

    @pytest.mark.asyncio
    async def test_oversized_paragraph_is_split(self):
        """Test that no chunk exceeds max size for a huge paragraph."""
        text = "".join(f"Sentence number {i} is here. " for i in range(120))
        chunker = SemanticChunker()

        result = await chunker.create_chunks("doc", text)

        assert result.chunk_count > 1
        assert all(len(c.content) <= 1000 for c in result.chunks)
        starts = [c.start_position for c in result.chunks]
        assert starts == sorted(starts)

    @pytest.mark.asyncio
    async def test_base_options_converted(self):
        """Test that plain ChunkingOptions drive the semantic switches."""
        chunker = SemanticChunker(ChunkingOptions(respect_section_boundaries=False))

        assert isinstance(chunker.options, SemanticChunkingOptions)
        assert chunker.options.new_chunk_on_section_boundary is False
        assert chunker.options.include_section_headings is True


class TestSharedContract:
    """Properties every strategy must satisfy."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chunker_cls", [SlidingWindowChunker, SemanticChunker])
    @pytest.mark.parametrize("text", ["", "   ", "\n\n \n"])
    async def test_empty_input(self, chunker_cls, text):
        """Test that blank text yields an empty result without error."""
        result = await chunker_cls().create_chunks("doc", text)

        assert result.chunks == []
        assert result.total_characters == 0
        assert result.chunk_count == 0
        assert result.average_chunk_size == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chunker_cls", [SlidingWindowChunker, SemanticChunker])
    @pytest.mark.parametrize("seed", range(5))
    async def test_index_contiguity_and_ids(self, chunker_cls, seed):
        """Test chunk indexes are 0..n-1 and ids derive from them."""
        text = _random_document(seed)

        result = await chunker_cls().create_chunks("report-7", text)

        for i, chunk in enumerate(result.chunks):
            assert chunk.index == i
            assert chunk.id == f"report-7_chunk_{i}"
            assert chunk.document_id == "report-7"
        starts = [c.start_position for c in result.chunks]
        assert starts == sorted(starts)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chunker_cls", [SlidingWindowChunker, SemanticChunker])
    async def test_average_chunk_size(self, chunker_cls):
        """Test average = total characters / chunk count."""
        text = _random_document(3)

        result = await chunker_cls().create_chunks("doc", text)

        assert result.total_characters == len(text)
        assert result.chunk_count == len(result.chunks)
        assert result.average_chunk_size == len(text) / result.chunk_count

    def test_overlap_must_be_smaller_than_max(self):
        """Test option validation."""
        with pytest.raises(ValueError):
            ChunkingOptions(max_chunk_size=100, chunk_overlap=100)


class TestHelpers:
    """Test cases for chunking helpers."""

    def test_split_paragraphs_keeps_offsets(self):
        text = "one\n\ntwo\n \n\nthree"
        paragraphs = split_paragraphs(text)

        assert [p for p, _ in paragraphs] == ["one", "two", "three"]
        for paragraph, offset in paragraphs:
            assert text[offset : offset + len(paragraph)] == paragraph

    def test_split_sentences(self):
        sentences = split_sentences("Hello there. General Kenobi! you are bold.")

        assert sentences == ["Hello there.", " General Kenobi! you are bold."]

    def test_split_sentences_breaks_after_abbreviations(self):
        """The heuristic treats "Mr." as a sentence end."""
        assert split_sentences("Mr. Smith went home.") == ["Mr.", " Smith went home."]

    def test_split_sentences_round_trips(self):
        text = "One. Two! Three? Four...  Five.  "
        assert "".join(split_sentences(text)) == text

    def test_find_section_uses_half_open_interval(self):
        sections = [
            DocumentSection(title="A", level=1, start_position=0, end_position=50),
            DocumentSection(title="B", level=1, start_position=50, end_position=100),
        ]

        assert find_section_for_position(sections, 49).title == "A"
        assert find_section_for_position(sections, 50).title == "B"
        assert find_section_for_position(sections, 100) is None
        assert find_section_for_position(None, 10) is None


class TestChunkerRegistry:
    """Test cases for the chunker registry."""

    def test_default_registry(self):
        """Test the built-in strategies and default."""
        registry = create_chunker_registry()

        assert registry.get_chunker_names() == ["sliding_window", "semantic"]
        assert isinstance(registry.get_chunker(), SlidingWindowChunker)
        assert isinstance(registry.get_chunker("semantic"), SemanticChunker)

    def test_default_can_be_chosen(self):
        registry = create_chunker_registry(default="semantic")
        assert isinstance(registry.get_chunker(), SemanticChunker)

    def test_unknown_name_raises(self):
        registry = create_chunker_registry()
        with pytest.raises(NoImplementationError) as exc_info:
            registry.get_chunker("paragraphs")
        assert exc_info.value.name == "paragraphs"
        assert exc_info.value.registry == "chunker"

    def test_empty_registry_raises(self):
        with pytest.raises(NoImplementationError):
            ChunkerRegistry().get_chunker()

    def test_first_registered_becomes_default(self):
        registry = ChunkerRegistry()
        semantic = SemanticChunker()
        registry.register("semantic", semantic)
        registry.register("sliding", SlidingWindowChunker())

        assert registry.get_chunker() is semantic

    def test_set_as_default(self):
        registry = ChunkerRegistry()
        registry.register("semantic", SemanticChunker())
        sliding = SlidingWindowChunker()
        registry.register("sliding", sliding, set_as_default=True)

        assert registry.get_chunker() is sliding

    def test_set_default_unknown_raises(self):
        with pytest.raises(NoImplementationError):
            ChunkerRegistry().set_default_chunker("missing")
