"""Token counting utility using tiktoken."""

from __future__ import annotations

import math
from functools import lru_cache

import tiktoken

from inqdoc.core.logging import get_logger

logger = get_logger(__name__)

# Reference model whose tokenizer is used for prompt budgeting
DEFAULT_ENCODING_MODEL = "gpt-4o"
# Characters per token when no tokenizer is available
CHARS_PER_TOKEN = 4


def get_encoding_for_model(model: str) -> tiktoken.Encoding:
    """Get the appropriate tokenizer encoding for a model.

    Args:
        model: Model name (e.g., "gpt-4o")

    Returns:
        tiktoken Encoding instance
    """
    try:
        return tiktoken.encoding_for_model(model.lower())
    except KeyError:
        # Unknown models are approximated with the GPT-4o encoding
        return tiktoken.get_encoding("o200k_base")


@lru_cache(maxsize=8)
def _get_encoding(model: str = DEFAULT_ENCODING_MODEL) -> tiktoken.Encoding | None:
    """Load the encoding once; None if tiktoken cannot provide it."""
    try:
        return get_encoding_for_model(model)
    except Exception as e:
        logger.warning("tokenizer_init_failed", model=model, error=str(e))
        return None


def estimate_tokens(text: str) -> int:
    """Rough token estimate from character length."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def count_tokens(text: str, model: str = DEFAULT_ENCODING_MODEL) -> int:
    """Count tokens in ``text`` with the model's tokenizer.

    Falls back to ``ceil(len(text) / 4)`` when the tokenizer is unavailable
    or fails on the input.

    Args:
        text: Text to count
        model: Model name for tokenizer selection

    Returns:
        Token count
    """
    if not text:
        return 0

    encoding = _get_encoding(model)
    if encoding is None:
        logger.warning("token_count_estimated", reason="tokenizer_unavailable", chars=len(text))
        return estimate_tokens(text)

    try:
        return len(encoding.encode(text, disallowed_special=()))
    except Exception as e:
        logger.warning("token_count_estimated", reason="encode_failed", error=str(e))
        return estimate_tokens(text)
