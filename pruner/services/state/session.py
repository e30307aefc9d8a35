# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Session lifecycle.

Every per-session structure lives in one :class:`SessionState`, owned by a
:class:`SessionManager` that is passed explicitly to every entry point.
A session is created on first use, restored from disk exactly once, reset
when the host compacts its transcript, and disposed on request.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from pruner.config import PRUNE_TOOL_NAMES
from pruner.models import ModelInfo
from pruner.schemas.transcript import TranscriptMessage
from pruner.services.errors import HostError
from pruner.services.formats.base import AdapterContext
from pruner.services.formats.position_index import PositionIndex
from pruner.services.host import HostClient
from pruner.services.interception.guidance import GuidanceState
from pruner.services.pruning.settings import PruningSettings
from pruner.services.state.id_mapping import IdMapping
from pruner.services.state.persistence import (
    PersistedSessionState,
    PersistedStats,
    SessionStore,
)
from pruner.services.state.prune_set import PruneSet, SessionStats
from pruner.services.state.registry import ToolCallRecord, ToolRegistry

logger = logging.getLogger(__name__)


def find_last_compaction(messages: Sequence[TranscriptMessage]) -> float:
    """Creation time of the latest host compaction summary, or 0."""
    for msg in reversed(messages):
        if msg.info.is_compaction_summary:
            return msg.info.time.created
    return 0


def count_turns(messages: Sequence[TranscriptMessage], skip_before: float = 0) -> int:
    """Number of ``step-start`` parts in messages not compacted away."""
    turns = 0
    for msg in messages:
        if skip_before and msg.info.time.created < skip_before:
            continue
        turns += sum(1 for p in msg.parts if p.type == "step-start")
    return turns


def _last_user_message(messages: Sequence[TranscriptMessage]) -> Optional[TranscriptMessage]:
    for msg in reversed(messages):
        if msg.info.role == "user":
            return msg
    return None


@dataclass
class SessionState:
    """Everything the pruner tracks for one session.

    Attributes:
        session_id (str): Host session id.
        registry (ToolRegistry): Tool calls seen in the transcript.
        prune_set (PruneSet): Pruned ids (persisted).
        stats (SessionStats): Token counters (persisted).
        id_mapping (IdMapping): Numeric ids shown to the acting model.
        position_index (PositionIndex): Gemini position correlation.
        guidance (GuidanceState): Cooldown phase and nudge counter.
        current_turn (int): Turns in the visible transcript.
        last_compaction (float): Creation time of the latest compaction.
        is_subagent (bool): Session has a parent and is never processed.
        model (Optional[ModelInfo]): Model currently driving the session.
    """

    session_id: str
    registry: ToolRegistry
    prune_set: PruneSet = field(default_factory=PruneSet)
    stats: SessionStats = field(default_factory=SessionStats)
    id_mapping: IdMapping = field(default_factory=IdMapping)
    position_index: PositionIndex = field(default_factory=PositionIndex)
    guidance: GuidanceState = field(default_factory=GuidanceState)
    current_turn: int = 0
    last_compaction: float = 0
    is_subagent: bool = False
    metadata_loaded: bool = False
    restored: bool = False
    synced: bool = False
    model: Optional[ModelInfo] = None
    session_name: Optional[str] = None
    agent: Optional[str] = None
    message_count: int = 0

    # ------------------------------------------------------------------
    # Protection and candidates
    # ------------------------------------------------------------------

    def is_turn_protected(self, record: ToolCallRecord, settings: PruningSettings) -> bool:
        turns = settings.turn_protection.turns
        return turns > 0 and self.current_turn - record.turn < turns

    def is_protected(self, record: ToolCallRecord, settings: PruningSettings) -> bool:
        """Protected tool name, protected file path, or within the recent turns."""
        return (
            settings.is_tool_protected(record.tool)
            or settings.is_file_protected(record.parameters)
            or self.is_turn_protected(record, settings)
        )

    def unpruned_ids(self) -> List[str]:
        return [cid for cid in self.registry.ids() if cid not in self.prune_set]

    def candidate_ids(self, settings: PruningSettings) -> List[str]:
        """Unpruned, unprotected ids in transcript order."""
        candidates: List[str] = []
        for record in self.registry:
            if record.call_id in self.prune_set:
                continue
            if self.is_protected(record, settings):
                continue
            candidates.append(record.call_id)
        return candidates

    def protected_ids(self, settings: PruningSettings) -> List[str]:
        return [
            r.call_id
            for r in self.registry
            if r.call_id not in self.prune_set and self.is_protected(r, settings)
        ]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def apply_prune(self, call_ids: Sequence[str]) -> List[str]:
        """Union ids into the prune set.

        Ids the registry has never seen are rejected. A transcript message
        whose tool calls are now all pruned is added to the message set.

        Returns:
            List[str]: Ids that were newly added.
        """
        known = []
        for call_id in call_ids:
            if self.registry.has_seen(call_id):
                known.append(call_id)
            else:
                logger.warning("Refusing to prune unknown id %s", call_id)
        added = self.prune_set.add(known)

        touched = {r.message_id for r in self.registry.metadata(added).values() if r.message_id}
        for message_id in touched:
            if all(
                r.call_id in self.prune_set
                for r in self.registry
                if r.message_id == message_id
            ):
                self.prune_set.add_messages([message_id])
        return added

    def reset_for_compaction(self) -> None:
        """Forget tool calls and prune ids; the host collapsed the history."""
        self.registry.clear()
        self.prune_set.clear()
        self.position_index.clear()

    def snapshot(self) -> PersistedSessionState:
        return PersistedSessionState(
            session_name=self.session_name,
            pruned_tool_ids=self.prune_set.tool_ids,
            pruned_message_ids=self.prune_set.message_ids,
            stats=PersistedStats(
                tokens_pruned_this_turn=self.stats.tokens_pruned_this_turn,
                total_tokens_pruned=self.stats.total_tokens_pruned,
                total_tools_pruned=self.stats.total_tools_pruned,
            ),
        )

    def adapter_context(self) -> AdapterContext:
        return AdapterContext(registry=self.registry, position_index=self.position_index)


class SessionManager:
    """Process-wide owner of :class:`SessionState` objects, keyed by id."""

    def __init__(
        self,
        settings: PruningSettings,
        store: Optional[SessionStore] = None,
        host: Optional[HostClient] = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.host = host
        self.last_seen_session_id: Optional[str] = None
        self._sessions: Dict[str, SessionState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> SessionState:
        """State for ``session_id``, created on first use."""
        state = self._sessions.get(session_id)
        if state is None:
            state = SessionState(
                session_id=session_id,
                registry=ToolRegistry(max_records=self.settings.tool_cache_size),
            )
            self._sessions[session_id] = state
            logger.info("Created state for session %s", session_id)
        return state

    def peek(self, session_id: str) -> Optional[SessionState]:
        return self._sessions.get(session_id)

    def _lock(self, session_id: str) -> asyncio.Lock:
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    def dispose(self, session_id: str) -> bool:
        """Drop in-memory state. Persisted state stays on disk."""
        self._locks.pop(session_id, None)
        if self.last_seen_session_id == session_id:
            self.last_seen_session_id = None
        removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info("Disposed state for session %s", session_id)
        return removed

    def record_chat_params(self, session_id: str, model: ModelInfo) -> SessionState:
        """Remember the model driving the session and mark it last seen."""
        state = self.get(session_id)
        state.model = model
        self.last_seen_session_id = session_id
        return state

    # ------------------------------------------------------------------
    # Restore and metadata (once per process lifetime)
    # ------------------------------------------------------------------

    async def ensure_initialized(self, state: SessionState) -> None:
        if state.restored and state.metadata_loaded:
            return
        async with self._lock(state.session_id):
            if not state.restored:
                await self._restore(state)
            if not state.metadata_loaded:
                await self._load_metadata(state)

    async def _restore(self, state: SessionState) -> None:
        if self.store is not None:
            persisted = await self.store.load(state.session_id)
            if persisted is not None:
                state.prune_set.add(persisted.pruned_tool_ids)
                state.prune_set.add_messages(persisted.pruned_message_ids)
                state.stats = SessionStats(
                    tokens_pruned_this_turn=persisted.stats.tokens_pruned_this_turn,
                    total_tokens_pruned=persisted.stats.total_tokens_pruned,
                    total_tools_pruned=persisted.stats.total_tools_pruned,
                )
                state.session_name = persisted.session_name
                logger.info(
                    "Restored session %s: %d pruned ids",
                    state.session_id,
                    len(state.prune_set),
                )
        state.restored = True

    async def _load_metadata(self, state: SessionState) -> None:
        if self.host is None:
            state.metadata_loaded = True
            return
        try:
            info = await self.host.get_session(state.session_id)
        except HostError as e:
            logger.warning("Session metadata unavailable for %s: %s", state.session_id, e)
            return
        state.is_subagent = bool(info.get("parentID"))
        state.session_name = info.get("title") or state.session_name
        state.metadata_loaded = True
        if state.is_subagent:
            logger.info("Session %s is a sub-agent session; skipping", state.session_id)

    # ------------------------------------------------------------------
    # Transcript sync
    # ------------------------------------------------------------------

    async def sync(
        self, session_id: str, messages: Sequence[TranscriptMessage]
    ) -> SessionState:
        """Bring a session's state in line with the transcript.

        Detects compaction, recounts turns, registers new tool calls, rebuilds
        the position index and advances the guidance state machine for every
        tool call not seen before.

        Args:
            session_id (str): Host session id.
            messages (Sequence[TranscriptMessage]): Full current transcript.

        Returns:
            SessionState: The synchronized state.
        """
        state = self.get(session_id)
        await self.ensure_initialized(state)

        compaction = find_last_compaction(messages)
        if compaction > state.last_compaction:
            if state.synced:
                state.reset_for_compaction()
                logger.info(
                    "Detected compaction in session %s; cleared tool cache", session_id
                )
            state.last_compaction = compaction

        state.current_turn = count_turns(messages, state.last_compaction)
        inserted = state.registry.sync(messages, skip_before=state.last_compaction)
        state.position_index.rebuild(messages, skip_before=state.last_compaction)

        for record in inserted:
            if record.tool in PRUNE_TOOL_NAMES:
                state.guidance.mark_pruned()
            else:
                state.guidance.observe_tool(protected=state.is_protected(record, self.settings))

        last_user = _last_user_message(messages)
        if last_user is not None:
            state.agent = last_user.info.agent or state.agent
            if state.model is None and last_user.info.model is not None:
                state.model = ModelInfo(
                    provider_id=last_user.info.model.provider_id,
                    model_id=last_user.info.model.model_id,
                )

        state.message_count = len(messages)
        state.synced = True
        return state

    async def fetch_and_sync(self, session_id: str) -> tuple:
        """Pull the transcript from the host and sync.

        Returns:
            tuple: ``(SessionState, List[TranscriptMessage])``.

        Raises:
            HostError: If no host is configured or the fetch fails.
        """
        if self.host is None:
            raise HostError("No host client configured")
        messages = await self.host.get_messages(session_id)
        state = await self.sync(session_id, messages)
        return state, messages

    def persist(self, state: SessionState) -> Optional[asyncio.Task]:
        """Schedule a background write of the session snapshot."""
        if self.store is None:
            return None
        return self.store.schedule_save(state.session_id, state.snapshot())
