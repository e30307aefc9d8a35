# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Idle trigger: run the configured strategies when a session goes quiet."""

import logging
from typing import Optional

from pruner.services.pruning.janitor import Janitor, PruningResult
from pruner.services.state.session import SessionManager

logger = logging.getLogger(__name__)


async def on_idle(
    session_id: str,
    manager: SessionManager,
    janitor: Janitor,
) -> Optional[PruningResult]:
    """Handle a session idle event.

    Sub-agent sessions are skipped. When the acting model pruned by itself
    just before going idle, one idle pass is skipped.

    Args:
        session_id (str): Session that went idle.
        manager (SessionManager): Session state owner.
        janitor (Janitor): Analyzer to run.

    Returns:
        Optional[PruningResult]: Result of the pass, if anything was pruned.
    """
    state = manager.get(session_id)
    await manager.ensure_initialized(state)

    if state.is_subagent:
        return None
    if state.guidance.skip_next_idle:
        state.guidance.skip_next_idle = False
        logger.debug("Idle: skipping %s after prune tool use", session_id)
        return None
    if not janitor.settings.idle_strategies:
        return None

    result = await janitor.run_analysis(session_id, trigger="idle")
    if result is not None and result.pruned_count:
        state.guidance.reset_nudge()
    return result
