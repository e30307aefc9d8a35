# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Position index for wire formats that carry no tool call id.

Gemini ``functionResponse`` parts only have a function name. The n-th
response for a given name (counted in document order, starting at 0) is the
n-th call of that tool in the transcript, so the index maps
``"{name}:{n}"`` to the transcript's call id.
"""

import logging
from typing import Dict, Optional, Sequence

from pruner.schemas.transcript import ToolPart, TranscriptMessage

logger = logging.getLogger(__name__)


def position_key(tool_name: str, occurrence: int) -> str:
    return f"{tool_name.lower()}:{occurrence}"


class PositionIndex:
    """``toolName:occurrence`` to call id map for one session."""

    def __init__(self) -> None:
        self._by_position: Dict[str, str] = {}
        self._counts: Dict[str, int] = {}
        self.stale = False

    def __len__(self) -> int:
        return len(self._by_position)

    def rebuild(self, messages: Sequence[TranscriptMessage], skip_before: float = 0) -> None:
        """Recount every tool part of the transcript in order.

        Args:
            messages (Sequence[TranscriptMessage]): Transcript in order.
            skip_before (float): Messages created earlier (compacted away)
                are not visible to the provider and are not counted.
        """
        self._by_position.clear()
        self._counts.clear()
        for msg in messages:
            if skip_before and msg.info.time.created < skip_before:
                continue
            for part in msg.parts:
                if isinstance(part, ToolPart) and part.call_id:
                    self.add(part.tool, part.call_id)
        self.stale = False

    def add(self, tool_name: str, call_id: str) -> str:
        """Record the next occurrence of ``tool_name``."""
        name = tool_name.lower()
        occurrence = self._counts.get(name, 0)
        self._counts[name] = occurrence + 1
        key = position_key(name, occurrence)
        self._by_position[key] = call_id.lower()
        return key

    def lookup(self, tool_name: str, occurrence: int) -> Optional[str]:
        call_id = self._by_position.get(position_key(tool_name, occurrence))
        if call_id is None:
            logger.debug(
                "No call id for %s occurrence %d; marking position index stale",
                tool_name,
                occurrence,
            )
            self.stale = True
        return call_id

    def clear(self) -> None:
        self._by_position.clear()
        self._counts.clear()
        self.stale = False
