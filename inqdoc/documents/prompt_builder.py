"""Token-budgeted prompt assembly for question answering."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence

from inqdoc.core.logging import get_logger
from inqdoc.utils.token_counter import count_tokens

logger = get_logger(__name__)

CONTEXT_PLACEHOLDER = "{context}"
QUESTION_PLACEHOLDER = "{question}"
PLACEHOLDER_PATTERN = re.compile(r"\{context\}|\{question\}")
CHUNK_SEPARATOR = "\n\n---\n\n"
CONTEXT_OMITTED = "[Context omitted due to token limits]"
NO_CONTEXT = "[No relevant context found or fits within token limits]"
DEFAULT_MAX_TOKENS = 120000

DEFAULT_PROMPT_TEMPLATE = (
    "Based on the following context, please answer the question. "
    'If the answer is not present in the context, say "I cannot find the answer '
    'in the provided documents."\n\n'
    "Context:\n{context}\n\n"
    "Question: {question}\n\n"
    "Answer:"
)


def _fill(template: str, context: str, question: str) -> str:
    # Single pass: substituted text may itself contain placeholders or braces
    values = {CONTEXT_PLACEHOLDER: context, QUESTION_PLACEHOLDER: question}
    return PLACEHOLDER_PATTERN.sub(lambda match: values[match.group(0)], template)


def build_prompt_with_context_limit(
    ranked_chunks: Sequence[str],
    question: str,
    template: str = DEFAULT_PROMPT_TEMPLATE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    token_counter: Callable[[str], int] = count_tokens,
) -> str:
    """Fill ``template`` with as many leading chunks as the token budget allows.

    Chunks are taken in the given order and inclusion stops at the first one
    that would overflow; later, smaller chunks are not tried. The question is
    never truncated.

    Args:
        ranked_chunks: Chunk texts, most relevant first
        question: The user's question
        template: Prompt with ``{context}`` and ``{question}`` placeholders
        max_tokens: Token ceiling for the whole prompt
        token_counter: Tokenizer used for all budget arithmetic

    Returns:
        The filled prompt
    """
    question_tokens = token_counter(question)
    template_tokens = token_counter(_fill(template, "", ""))
    separator_tokens = token_counter(CHUNK_SEPARATOR)

    available = max_tokens - question_tokens - template_tokens
    if available <= 0:
        logger.warning(
            "prompt_context_omitted",
            available_tokens=available,
            question_tokens=question_tokens,
            template_tokens=template_tokens,
            max_tokens=max_tokens,
        )
        return _fill(template, CONTEXT_OMITTED, question)

    used = 0
    included: list[str] = []
    for chunk in ranked_chunks:
        cost = token_counter(chunk) + (separator_tokens if included else 0)
        if used + cost > available:
            logger.debug(
                "prompt_token_limit_reached",
                available_tokens=available,
                used_tokens=used,
                included=len(included),
            )
            break
        used += cost
        included.append(chunk)

    if included:
        context = CHUNK_SEPARATOR.join(included)
    elif token_counter(NO_CONTEXT) <= available:
        context = NO_CONTEXT
    else:
        context = ""
    prompt = _fill(template, context, question)

    total_tokens = token_counter(prompt)
    if total_tokens > max_tokens:
        # Tokenizers need not be additive across joins
        logger.warning(
            "prompt_exceeds_token_limit",
            total_tokens=total_tokens,
            max_tokens=max_tokens,
        )

    logger.info(
        "prompt_built",
        included_chunks=len(included),
        total_chunks=len(ranked_chunks),
        context_tokens=used,
        max_tokens=max_tokens,
    )
    return prompt
