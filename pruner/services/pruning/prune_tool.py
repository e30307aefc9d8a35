# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Prune tools exposed to the acting model.

``discard`` drops tool outputs outright; ``extract`` drops them after the
model has distilled what matters. Both take ``ids`` whose first element is
the reason and whose remaining elements are numeric ids from the
``<prunable-tools>`` list. A request with any id that does not resolve to a
prunable tool call is rejected as a whole.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from pruner.services.errors import HostError
from pruner.services.prompts.base import (
    DISTILLATION_MISMATCH_MESSAGE,
    INVALID_IDS_MESSAGE,
    INVALID_REASON_MESSAGE,
    NO_IDS_MESSAGE,
    NO_NUMERIC_IDS_MESSAGE,
)
from pruner.services.pruning.display import format_pruned_items
from pruner.services.pruning.notification import Notifier
from pruner.services.pruning.settings import PruningSettings
from pruner.services.state.session import SessionManager, SessionState

logger = logging.getLogger(__name__)

DISCARD_REASONS = ("completion", "noise")
EXTRACT_REASONS = ("consolidation",)


def _reasons_label(reasons: Sequence[str]) -> str:
    return " or ".join(f"'{r}'" for r in reasons)


def parse_prune_ids(
    ids: Sequence[str], reasons: Sequence[str]
) -> Tuple[Optional[str], List[int], Optional[str]]:
    """Split ``[reason, id, id, ...]``.

    Args:
        ids (Sequence[str]): Raw tool argument.
        reasons (Sequence[str]): Reasons accepted by the calling tool.

    Returns:
        Tuple[Optional[str], List[int], Optional[str]]: Reason, numeric ids
            and an error message for the model (``None`` when valid).
    """
    if not ids:
        return None, [], NO_IDS_MESSAGE

    reason = str(ids[0]).strip().lower()
    if reason not in reasons:
        return None, [], INVALID_REASON_MESSAGE.format(reasons=_reasons_label(reasons))

    numeric: List[int] = []
    for raw in ids[1:]:
        try:
            numeric.append(int(str(raw).strip()))
        except ValueError:
            logger.debug("Ignoring non-numeric prune id %r", raw)
    if not numeric:
        return reason, [], NO_NUMERIC_IDS_MESSAGE.format(reasons=_reasons_label(reasons))
    return reason, numeric, None


class PruneTool:
    """Executes ``discard`` and ``extract`` calls for a session."""

    def __init__(
        self,
        manager: SessionManager,
        notifier: Notifier,
        settings: PruningSettings,
    ) -> None:
        self.manager = manager
        self.notifier = notifier
        self.settings = settings

    async def discard(self, session_id: str, ids: Sequence[str]) -> str:
        return await self._execute(session_id, ids, DISCARD_REASONS, "discard")

    async def extract(
        self, session_id: str, ids: Sequence[str], distillation: Sequence[str]
    ) -> str:
        return await self._execute(
            session_id, ids, EXTRACT_REASONS, "extract", distillation=list(distillation)
        )

    async def _load_state(self, session_id: str) -> SessionState:
        if self.manager.host is not None:
            try:
                state, _ = await self.manager.fetch_and_sync(session_id)
                return state
            except HostError as e:
                logger.warning("Transcript unavailable for %s, using cached state: %s", session_id, e)
        state = self.manager.get(session_id)
        await self.manager.ensure_initialized(state)
        return state

    def _resolve(self, state: SessionState, numeric: Sequence[int]) -> Optional[List[str]]:
        resolved: List[str] = []
        for number in numeric:
            call_id = state.id_mapping.resolve(number)
            record = state.registry.get(call_id) if call_id else None
            if record is None:
                logger.debug("Rejecting prune request: %d has no known tool call", number)
                return None
            if state.is_protected(record, self.settings):
                logger.debug("Rejecting prune request: %d (%s) is protected", number, record.tool)
                return None
            if record.call_id not in resolved:
                resolved.append(record.call_id)
        return resolved

    async def _execute(
        self,
        session_id: str,
        ids: Sequence[str],
        reasons: Sequence[str],
        tool_name: str,
        distillation: Optional[List[str]] = None,
    ) -> str:
        logger.info("%s tool invoked for %s: %s", tool_name, session_id, list(ids))

        reason, numeric, error = parse_prune_ids(ids, reasons)
        if error is not None:
            return error
        if distillation is not None and len(distillation) != len(numeric):
            return DISTILLATION_MISMATCH_MESSAGE

        state = await self._load_state(session_id)
        resolved = self._resolve(state, numeric)
        if resolved is None:
            return INVALID_IDS_MESSAGE

        call_ids = state.registry.expand_batches(resolved)
        added = state.apply_prune(call_ids)
        metadata = state.registry.metadata(call_ids)
        tokens = sum(metadata[i].output_tokens for i in added if i in metadata)
        state.stats.record(tokens, len(added))

        await self.notifier.notify_pruned(
            session_id,
            state.stats,
            call_ids,
            metadata,
            reason=reason,
            agent=state.agent,
        )
        if distillation:
            logger.debug("Distillation for %s: %s", session_id, distillation)
            await self.notifier.notify_distillation(session_id, distillation, agent=state.agent)

        state.stats.commit()
        state.guidance.mark_pruned(skip_next_idle=True)
        self.manager.persist(state)

        lines = [f"Context pruning complete. Pruned {len(call_ids)} tool outputs.", ""]
        lines.extend(format_pruned_items(call_ids, metadata, self.settings.working_directory))
        return "\n".join(lines).strip()
