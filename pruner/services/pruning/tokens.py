# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Token estimation utilities.

Uses tiktoken's ``o200k_base`` encoding. If the encoding cannot be loaded at
runtime (no cached BPE file and no network), falls back to a chars/4
heuristic.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import tiktoken

CHARS_PER_TOKEN_FALLBACK = 4
ENCODING_NAME = "o200k_base"

logger = logging.getLogger(__name__)

_encoding: Optional[tiktoken.Encoding] = None
_encoding_failed = False


def _get_encoding() -> Optional[tiktoken.Encoding]:
    global _encoding, _encoding_failed
    if _encoding is None and not _encoding_failed:
        try:
            _encoding = tiktoken.get_encoding(ENCODING_NAME)
        except Exception as e:
            _encoding_failed = True
            logger.info(
                "tiktoken encoding unavailable (%s), using chars/%d heuristic",
                e,
                CHARS_PER_TOKEN_FALLBACK,
            )
    return _encoding


def estimate_tokens(text: str) -> int:
    """Estimate token count for a piece of text.

    Args:
        text (str): Text to tokenize.

    Returns:
        int: Token count from tiktoken, or ``len(text) // 4`` when the
            encoding is unavailable. Empty text is 0 tokens.
    """
    if not text:
        return 0
    encoding = _get_encoding()
    if encoding is not None:
        return len(encoding.encode(text, disallowed_special=()))
    return max(1, len(text) // CHARS_PER_TOKEN_FALLBACK)


def stringify_payload(value: Any) -> str:
    """Text form of a tool input/output for token counting."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def format_token_count(tokens: int) -> str:
    """Human-readable token count (``"1.2K tokens"``, ``"850 tokens"``).

    Args:
        tokens (int): Raw token count.

    Returns:
        str: Count with a ``K`` suffix at or above 1000.
    """
    if tokens >= 1000:
        value = f"{tokens / 1000:.1f}".replace(".0", "")
        return f"{value}K tokens"
    return f"{tokens} tokens"
