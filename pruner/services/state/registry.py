# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Per-session tool call registry.

Rebuilt by replaying the host transcript. Each tool part seen for the first
time becomes a :class:`ToolCallRecord`; later syncs only advance its status.
The registry is bounded and evicts oldest entries first.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

from pruner.schemas.transcript import ToolPart, ToolStatus, TranscriptMessage
from pruner.services.pruning.tokens import estimate_tokens, stringify_payload

logger = logging.getLogger(__name__)

BATCH_TOOL = "batch"
DEFAULT_MAX_RECORDS = 500


@dataclass
class ToolCallRecord:
    """A single tool invocation as seen in the transcript.

    Attributes:
        call_id (str): Lower-cased tool call identifier.
        tool (str): Tool name.
        parameters (Any): Tool input payload.
        status (ToolStatus): Current lifecycle status.
        error (Optional[str]): Error text when ``status`` is ``error``.
        turn (int): Number of turns (``step-start`` parts) seen before the call.
        message_id (str): Transcript message carrying the call.
        output_tokens (int): Estimated tokens of the output (or error) once
            the call has finished.
        children (List[str]): Calls issued by this call when it is a batch.
    """

    call_id: str
    tool: str
    parameters: Any = None
    status: ToolStatus = ToolStatus.PENDING
    error: Optional[str] = None
    turn: int = 0
    message_id: str = ""
    output_tokens: int = 0
    children: List[str] = field(default_factory=list)

    @property
    def is_finished(self) -> bool:
        return self.status in (ToolStatus.COMPLETED, ToolStatus.ERROR)


def _output_tokens(part: ToolPart) -> int:
    if part.state.status == ToolStatus.COMPLETED:
        return estimate_tokens(stringify_payload(part.state.output))
    if part.state.status == ToolStatus.ERROR:
        return estimate_tokens(stringify_payload(part.state.error))
    return 0


class ToolRegistry:
    """Bounded, insertion-ordered map of call id to :class:`ToolCallRecord`.

    Lookups are case-insensitive. Insertion order is transcript order, which
    the deduplicator relies on for "keep the most recent".
    """

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS) -> None:
        self.max_records = max_records
        self._records: "OrderedDict[str, ToolCallRecord]" = OrderedDict()
        self._ever_seen: set = set()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, call_id: object) -> bool:
        return isinstance(call_id, str) and call_id.lower() in self._records

    def __iter__(self) -> Iterator[ToolCallRecord]:
        return iter(list(self._records.values()))

    def get(self, call_id: str) -> Optional[ToolCallRecord]:
        return self._records.get(call_id.lower())

    def ids(self) -> List[str]:
        """All known call ids in transcript order."""
        return list(self._records.keys())

    def has_seen(self, call_id: str) -> bool:
        """Whether the id was ever registered, including evicted ones."""
        return call_id.lower() in self._ever_seen

    def sync(
        self,
        messages: Sequence[TranscriptMessage],
        skip_before: float = 0,
    ) -> List[ToolCallRecord]:
        """Replay the transcript into the registry.

        Unknown tool parts are inserted; known ones only have their status,
        error and output size refreshed. Messages created before
        ``skip_before`` (the last compaction) are ignored.

        Args:
            messages (Sequence[TranscriptMessage]): Transcript in order.
            skip_before (float): Creation timestamp cutoff.

        Returns:
            List[ToolCallRecord]: Records inserted by this call.
        """
        inserted: List[ToolCallRecord] = []
        turn = 0

        for msg in messages:
            if skip_before and msg.info.time.created < skip_before:
                continue

            batch: Optional[ToolCallRecord] = None
            for part in msg.parts:
                if part.type == "step-start":
                    turn += 1
                    continue
                if not isinstance(part, ToolPart) or not part.call_id:
                    continue

                try:
                    record = self._upsert(part, msg.info.id, turn, inserted)
                except (TypeError, ValueError, AttributeError) as e:
                    logger.debug("Skipping tool part %s: %s", part.call_id, e)
                    continue
                if record is None:
                    continue

                if record.tool == BATCH_TOOL:
                    batch = record
                elif batch is not None and record.call_id not in batch.children:
                    batch.children.append(record.call_id)

        self._evict()
        if inserted:
            logger.debug(
                "Registry sync: %d new, %d total (turn %d)",
                len(inserted),
                len(self._records),
                turn,
            )
        return inserted

    def _upsert(
        self,
        part: ToolPart,
        message_id: str,
        turn: int,
        inserted: List[ToolCallRecord],
    ) -> Optional[ToolCallRecord]:
        call_id = part.normalized_id
        record = self._records.get(call_id)

        if record is None:
            # Evicted ids stay out; re-adding them would reorder the registry.
            if call_id in self._ever_seen:
                return None
            record = ToolCallRecord(
                call_id=call_id,
                tool=part.tool,
                parameters=part.state.input if part.state.input is not None else {},
                status=part.state.status,
                error=part.state.error if part.state.status == ToolStatus.ERROR else None,
                turn=turn,
                message_id=message_id,
                output_tokens=_output_tokens(part),
            )
            self._records[call_id] = record
            self._ever_seen.add(call_id)
            inserted.append(record)
            return record

        if record.status != part.state.status:
            record.status = part.state.status
            record.error = part.state.error if part.state.status == ToolStatus.ERROR else None
            record.output_tokens = _output_tokens(part)
            if part.state.input is not None:
                record.parameters = part.state.input
        return record

    def _evict(self) -> None:
        overflow = len(self._records) - self.max_records
        if overflow <= 0:
            return
        for _ in range(overflow):
            self._records.popitem(last=False)
        logger.debug("Registry evicted %d oldest records", overflow)

    def expand_batches(self, call_ids: Sequence[str]) -> List[str]:
        """Add the recorded children of any batch call, keeping order.

        Args:
            call_ids (Sequence[str]): Ids selected for pruning.

        Returns:
            List[str]: Input ids followed by any batch children not already
                present.
        """
        result: List[str] = []
        seen: set = set()
        for call_id in call_ids:
            key = call_id.lower()
            if key not in seen:
                seen.add(key)
                result.append(key)
            record = self._records.get(key)
            if record is None:
                continue
            for child in record.children:
                if child not in seen:
                    seen.add(child)
                    result.append(child)
        return result

    def metadata(self, call_ids: Sequence[str]) -> Dict[str, ToolCallRecord]:
        """Records for the given ids, skipping unknown ones."""
        found: Dict[str, ToolCallRecord] = {}
        for call_id in call_ids:
            record = self._records.get(call_id.lower())
            if record is not None:
                found[record.call_id] = record
        return found

    def clear(self) -> None:
        """Drop all records (compaction or session reset)."""
        self._records.clear()
