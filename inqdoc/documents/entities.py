"""Pattern-based entity, key phrase and topic extraction.

The patterns are deliberately simple: titled person names, a few date forms,
capitalised names ending in a company suffix, and runs of capitalised words
as key phrases. Topics come from top-level sections when there are any, and
otherwise from the most frequent key phrases.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from inqdoc.core.logging import get_logger
from inqdoc.documents.models import DocumentMetadata, DocumentSection

logger = get_logger(__name__)

COMPANY_SUFFIX = r"(?:Inc\.?|LLC|Corp\.?|Corporation|Company|Co\.?|Ltd\.?)"

PERSON_PATTERN = re.compile(
    r"\b(?:Mr\.|Mrs\.|Ms\.|Dr\.|Prof\.)\s([A-Z][a-z]+(?:\s[A-Z][a-z]+)?)\b"
)
DATE_PATTERN = re.compile(
    r"\b(?:\d{1,2}/\d{1,2}/\d{2,4}|\d{1,2}-\d{1,2}-\d{2,4}"
    r"|(?:January|February|March|April|May|June|July|August|September|October|November|December)"
    r"\s+\d{1,2}(?:st|nd|rd|th)?,\s+\d{4})\b"
)
# Words within a phrase are joined by spaces or tabs, never line breaks
ORGANIZATION_PATTERN = re.compile(
    rf"\b[A-Z][a-z]*(?:[ \t][A-Z][a-z]*)+[ \t]+{COMPANY_SUFFIX}(?=\W|$)"
)
COMPANY_SUFFIX_TAIL = re.compile(rf"\s+{COMPANY_SUFFIX}$", re.IGNORECASE)
KEY_PHRASE_PATTERN = re.compile(
    rf"\b[A-Z][a-z]+(?:[ \t][A-Z][a-z]+){{1,5}}\b(?![ \t]+{COMPANY_SUFFIX})"
)

SECTION_TOPIC_MAX_LEVEL = 2
MAX_PHRASE_TOPICS = 3


class EntityType(StrEnum):
    """Kinds of entity the extractor reports."""

    PERSON = "PERSON"
    ORGANIZATION = "ORGANIZATION"
    DATE = "DATE"
    KEY_PHRASE = "KEY_PHRASE"


class ConfidenceLevel(StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass
class NamedEntity:
    """An entity occurrence with its ``[start, end)`` span in the text."""

    text: str
    type: EntityType
    confidence: ConfidenceLevel
    start_position: int
    end_position: int
    normalized: str | None = None
    relevance: float | None = None


@dataclass
class DocumentTopic:
    name: str
    confidence: float
    relevance: float


@dataclass
class EntityExtractionResult:
    """Entities, key phrases and topics found in one document."""

    entities: list[NamedEntity] = field(default_factory=list)
    key_phrases: list[NamedEntity] = field(default_factory=list)
    topics: list[DocumentTopic] = field(default_factory=list)
    entity_frequency: dict[EntityType, int] = field(
        default_factory=lambda: dict.fromkeys(EntityType, 0)
    )

    def keywords(self, limit: int = 10) -> list[str]:
        """Topic names followed by distinct key phrases, most frequent first."""
        keywords = [topic.name for topic in self.topics]
        phrase_counts = Counter(phrase.text for phrase in self.key_phrases)
        keywords.extend(phrase for phrase, _ in phrase_counts.most_common())
        return list(dict.fromkeys(keywords))[:limit]


def _entity(
    match: re.Match[str],
    entity_type: EntityType,
    confidence: ConfidenceLevel,
    normalized: str | None = None,
) -> NamedEntity:
    return NamedEntity(
        text=match.group(0),
        type=entity_type,
        confidence=confidence,
        start_position=match.start(),
        end_position=match.end(),
        normalized=normalized,
    )


def extract_entities(
    text: str,
    metadata: DocumentMetadata | None = None,
    sections: Sequence[DocumentSection] | None = None,
) -> EntityExtractionResult:
    """Extract entities, key phrases and topics from document text.

    Args:
        text: Full document text
        metadata: Document metadata; a known title is never reported as a key phrase
        sections: Document sections, used as topics when any are level 1 or 2

    Returns:
        Extraction result with per-type frequencies
    """
    result = EntityExtractionResult()

    for match in PERSON_PATTERN.finditer(text):
        result.entities.append(
            _entity(match, EntityType.PERSON, ConfidenceLevel.MEDIUM, normalized=match.group(1))
        )
    for match in DATE_PATTERN.finditer(text):
        result.entities.append(_entity(match, EntityType.DATE, ConfidenceLevel.HIGH))
    for match in ORGANIZATION_PATTERN.finditer(text):
        normalized = COMPANY_SUFFIX_TAIL.sub("", match.group(0))
        result.entities.append(
            _entity(match, EntityType.ORGANIZATION, ConfidenceLevel.MEDIUM, normalized=normalized)
        )

    entity_spans = [(e.start_position, e.end_position) for e in result.entities]
    title = metadata.title if metadata else None
    for match in KEY_PHRASE_PATTERN.finditer(text):
        start, end = match.span()
        if match.group(0) == title or any(s < end and start < e for s, e in entity_spans):
            continue
        phrase = _entity(match, EntityType.KEY_PHRASE, ConfidenceLevel.LOW)
        phrase.relevance = 0.5
        result.key_phrases.append(phrase)

    for entity in result.entities:
        result.entity_frequency[entity.type] += 1
    result.entity_frequency[EntityType.KEY_PHRASE] = len(result.key_phrases)

    seen: set[str] = set()
    for section in sections or ():
        if section.level <= SECTION_TOPIC_MAX_LEVEL and section.title and section.title not in seen:
            seen.add(section.title)
            result.topics.append(DocumentTopic(name=section.title, confidence=0.8, relevance=0.9))

    if not result.topics and result.key_phrases:
        counts = Counter(phrase.text for phrase in result.key_phrases)
        for name, count in counts.most_common(MAX_PHRASE_TOPICS):
            result.topics.append(
                DocumentTopic(name=name, confidence=min(0.5 + count * 0.1, 0.9), relevance=0.7)
            )

    logger.debug(
        "entities_extracted",
        entity_count=len(result.entities),
        key_phrase_count=len(result.key_phrases),
        topic_count=len(result.topics),
    )
    return result


def find_entity_mentions(text: str, entity: NamedEntity) -> list[int]:
    """Start positions of every case-insensitive whole-word mention of ``entity``."""
    pattern = re.compile(rf"\b{re.escape(entity.text)}\b", re.IGNORECASE)
    return [match.start() for match in pattern.finditer(text)]


def get_entity_context(text: str, entity: NamedEntity, context_window: int = 100) -> str:
    """Text around an entity, ``context_window`` characters either side."""
    start = max(0, entity.start_position - context_window)
    end = min(len(text), entity.end_position + context_window)
    return text[start:end]
