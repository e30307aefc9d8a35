# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Schemas for the host transcript."""
from .transcript import (
    MessageInfo,
    ModelRef,
    Part,
    TextPart,
    ToolPart,
    ToolState,
    ToolStatus,
    TranscriptMessage,
    parse_part,
    parse_transcript,
)

__all__ = [
    "MessageInfo",
    "ModelRef",
    "Part",
    "TextPart",
    "ToolPart",
    "ToolState",
    "ToolStatus",
    "TranscriptMessage",
    "parse_part",
    "parse_transcript",
]
