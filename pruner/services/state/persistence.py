# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Per-session pruning state on disk.

One JSON file per session, ``{STORAGE_DIR}/{session_id}.json``::

    {
      "sessionName": "...",
      "prunedToolIds": ["call_1", ...],
      "prunedMessageIds": ["msg_1", ...],
      "stats": {"tokensPrunedThisTurn": 0, "totalTokensPruned": 1234, "totalToolsPruned": 7},
      "lastUpdated": "2026-01-01T00:00:00+00:00"
    }

Writes are fire-and-forget for the caller but serialized per session: each
save is chained after the previous one for the same session so an older
snapshot can never overwrite a newer one.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pruner.services.errors import PersistenceError

logger = logging.getLogger(__name__)


class PersistedStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tokens_pruned_this_turn: int = Field(default=0, alias="tokensPrunedThisTurn")
    total_tokens_pruned: int = Field(default=0, alias="totalTokensPruned")
    total_tools_pruned: int = Field(default=0, alias="totalToolsPruned")


class PersistedSessionState(BaseModel):
    """Session snapshot as stored on disk.

    Attributes:
        session_name (Optional[str]): Host session title, informational.
        pruned_tool_ids (List[str]): Pruned tool call ids.
        pruned_message_ids (List[str]): Pruned transcript message ids.
        stats (PersistedStats): Token counters.
        last_updated (str): ISO-8601 timestamp of the write.
    """

    model_config = ConfigDict(populate_by_name=True)

    session_name: Optional[str] = Field(default=None, alias="sessionName")
    pruned_tool_ids: List[str] = Field(alias="prunedToolIds")
    pruned_message_ids: List[str] = Field(default_factory=list, alias="prunedMessageIds")
    stats: PersistedStats
    last_updated: str = Field(default="", alias="lastUpdated")


class AggregatedStats(BaseModel):
    """Lifetime totals across every stored session."""

    total_tokens: int = 0
    total_tools: int = 0
    total_messages: int = 0
    session_count: int = 0


class SessionStore:
    """JSON file store for :class:`PersistedSessionState`."""

    def __init__(self, storage_dir: str | Path) -> None:
        self.storage_dir = Path(storage_dir)
        self._pending: Dict[str, asyncio.Task] = {}

    def path_for(self, session_id: str) -> Path:
        return self.storage_dir / f"{session_id}.json"

    # ------------------------------------------------------------------
    # Sync helpers (run in a worker thread)
    # ------------------------------------------------------------------

    def _write(self, session_id: str, state: PersistedSessionState) -> None:
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            path = self.path_for(session_id)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(
                json.dumps(state.model_dump(by_alias=True), indent=2),
                encoding="utf-8",
            )
            tmp.replace(path)
        except OSError as e:
            raise PersistenceError(f"Failed to write state for {session_id}: {e}") from e

    def _read(self, session_id: str) -> Optional[PersistedSessionState]:
        path = self.path_for(session_id)
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Failed to read session state %s: %s", session_id, e)
            return None
        try:
            return PersistedSessionState.model_validate(raw)
        except ValidationError:
            logger.warning("Invalid session state file, ignoring: %s", session_id)
            return None

    # ------------------------------------------------------------------
    # Async API
    # ------------------------------------------------------------------

    async def save(self, session_id: str, state: PersistedSessionState) -> None:
        """Write a snapshot now.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        if not state.last_updated:
            state = state.model_copy(
                update={"last_updated": datetime.now(timezone.utc).isoformat()}
            )
        await asyncio.to_thread(self._write, session_id, state)
        logger.info(
            "Saved session state %s (%d tools, ~%d tokens total)",
            session_id,
            len(state.pruned_tool_ids),
            state.stats.total_tokens_pruned,
        )

    async def load(self, session_id: str) -> Optional[PersistedSessionState]:
        """Read a snapshot; a missing or invalid file yields ``None``."""
        state = await asyncio.to_thread(self._read, session_id)
        if state is not None:
            logger.info("Loaded session state %s from disk", session_id)
        return state

    def schedule_save(self, session_id: str, state: PersistedSessionState) -> asyncio.Task:
        """Queue a background write for ``session_id``.

        The write runs after any earlier pending write for the same session.
        Failures are logged, never raised to the caller.

        Args:
            session_id (str): Session to write.
            state (PersistedSessionState): Snapshot taken by the caller.

        Returns:
            asyncio.Task: The queued write, for callers that want to await it.
        """
        previous = self._pending.get(session_id)
        stamped = state.model_copy(
            update={"last_updated": datetime.now(timezone.utc).isoformat()}
        )

        async def _run() -> None:
            if previous is not None and not previous.done():
                await asyncio.wait({previous})
            try:
                await self.save(session_id, stamped)
            except Exception as e:
                logger.error("Failed to persist state for %s: %s", session_id, e)

        task = asyncio.create_task(_run())
        self._pending[session_id] = task
        task.add_done_callback(lambda t: self._forget(session_id, t))
        return task

    def _forget(self, session_id: str, task: asyncio.Task) -> None:
        if self._pending.get(session_id) is task:
            del self._pending[session_id]

    async def drain(self) -> None:
        """Wait for every queued write to finish."""
        while self._pending:
            await asyncio.wait(set(self._pending.values()))

    async def load_all_stats(self) -> AggregatedStats:
        """Aggregate lifetime totals over every stored session."""
        return await asyncio.to_thread(self._aggregate)

    def _aggregate(self) -> AggregatedStats:
        result = AggregatedStats()
        if not self.storage_dir.exists():
            return result

        for path in sorted(self.storage_dir.glob("*.json")):
            try:
                state = PersistedSessionState.model_validate(
                    json.loads(path.read_text(encoding="utf-8"))
                )
            except (OSError, ValueError, ValidationError):
                logger.debug("Skipping unreadable state file %s", path.name)
                continue
            result.total_tokens += state.stats.total_tokens_pruned
            result.total_tools += len(state.pruned_tool_ids)
            result.total_messages += len(state.pruned_message_ids)
            result.session_count += 1

        logger.debug("Loaded all-time stats: %s", result.model_dump())
        return result
