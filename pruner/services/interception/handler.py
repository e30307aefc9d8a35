# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Interception layer.

Runs on every outbound model request. The body is rewritten on a deep copy:
guidance is injected (system addendum, then the prunable list or the
cooldown notice, plus the nudge when due) and outputs of pruned tool calls
are replaced with the placeholder. The host's transcript is never touched.
When nothing changes, the original body object is returned.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from pruner.services.errors import HostError
from pruner.services.formats import detect_format
from pruner.services.formats.base import FormatAdapter
from pruner.services.prompts.base import (
    NUDGE_INSTRUCTION,
    SYSTEM_PROMPT_ADDENDUM,
    cooldown_message,
    wrap_prunable_tools,
)
from pruner.services.pruning.display import extract_parameter_key, shorten_path, truncate
from pruner.services.pruning.settings import PruningSettings
from pruner.services.state.session import SessionManager, SessionState

logger = logging.getLogger(__name__)


def build_prunable_lines(state: SessionState, settings: PruningSettings) -> List[str]:
    """``N: tool, key`` per prunable tool call, numbering through the id map."""
    lines: List[str] = []
    for call_id in state.candidate_ids(settings):
        record = state.registry.get(call_id)
        if record is None:
            continue
        number = state.id_mapping.get_or_create(call_id)
        key = extract_parameter_key(record.tool, record.parameters)
        if key:
            key = truncate(shorten_path(key, settings.working_directory))
            lines.append(f"{number}: {record.tool}, {key}")
        else:
            lines.append(f"{number}: {record.tool}")
    return lines


def build_guidance(state: SessionState, settings: PruningSettings) -> str:
    """Guidance text for the next request, or ``""`` when there is none.

    In cooldown the text is the cooldown notice. Otherwise it is the
    prunable list, followed by the nudge when the counter has passed the
    configured frequency.
    """
    if state.guidance.in_cooldown:
        return cooldown_message()

    lines = build_prunable_lines(state, settings)
    if not lines:
        return ""
    text = wrap_prunable_tools(lines)
    if settings.nudge.enabled and state.guidance.nudge_due(settings.nudge.frequency):
        text = f"{text}\n\n{NUDGE_INSTRUCTION}"
    return text


class InterceptionLayer:
    """Rewrites outbound model requests for one process."""

    def __init__(self, manager: SessionManager, settings: PruningSettings) -> None:
        self.manager = manager
        self.settings = settings

    async def process(
        self, session_id: Optional[str], body: Dict[str, Any]
    ) -> Tuple[bool, Dict[str, Any]]:
        """Run a request body through the layer.

        Args:
            session_id (Optional[str]): Owning session. Falls back to the
                last session seen through chat params.
            body (Dict[str, Any]): Decoded request body. Never mutated.

        Returns:
            Tuple[bool, Dict[str, Any]]: Whether anything changed, and the
                body to forward (the original object when unchanged).
        """
        try:
            return await self._process(session_id, body)
        except Exception as e:
            logger.error("Interception failed for %s: %s", session_id, e)
            return False, body

    async def _sync(self, session_id: str) -> SessionState:
        if self.manager.host is not None:
            try:
                state, _ = await self.manager.fetch_and_sync(session_id)
                return state
            except HostError as e:
                logger.warning("Transcript sync failed for %s: %s", session_id, e)
        state = self.manager.get(session_id)
        await self.manager.ensure_initialized(state)
        return state

    async def _process(
        self, session_id: Optional[str], body: Dict[str, Any]
    ) -> Tuple[bool, Dict[str, Any]]:
        if not self.settings.enabled:
            return False, body

        session_id = session_id or self.manager.last_seen_session_id
        if not session_id:
            return False, body

        adapter = detect_format(body)
        if adapter is None:
            logger.debug("No wire format matched request for %s", session_id)
            return False, body

        state = await self._sync(session_id)
        if state.is_subagent:
            return False, body

        working = copy.deepcopy(body)
        data = adapter.get_data(working)
        if data is None:
            return False, body

        modified = False
        if self.settings.guidance_enabled:
            if adapter.inject_synth(data, SYSTEM_PROMPT_ADDENDUM):
                modified = True
            guidance = build_guidance(state, self.settings)
            if guidance and adapter.inject_prunable_list(data, guidance):
                logger.debug(
                    "Injected %s guidance (%s)",
                    "cooldown" if state.guidance.in_cooldown else "prunable list",
                    adapter.name,
                )
                modified = True

        if len(state.prune_set) and adapter.has_tool_outputs(data):
            if self._replace_pruned(adapter, data, state):
                modified = True

        if not modified:
            return False, body
        return True, working

    def _replace_pruned(self, adapter: FormatAdapter, data: List[Any], state: SessionState) -> bool:
        ctx = state.adapter_context()
        outputs = adapter.extract_tool_outputs(data, ctx)
        done = set()
        replaced = 0
        for output in outputs:
            if output.call_id in done:
                continue
            done.add(output.call_id)
            if self.settings.is_tool_protected(output.tool_name):
                continue
            if output.call_id not in state.prune_set:
                continue
            if adapter.replace_tool_output(data, output.call_id, self.settings.placeholder, ctx):
                replaced += 1

        if state.position_index.stale:
            logger.warning(
                "Position index for %s is stale; it is rebuilt on the next sync",
                state.session_id,
            )
        if replaced:
            logger.info(
                "Replaced %d of %d tool outputs (%s) in %s",
                replaced,
                len(done),
                adapter.name,
                state.session_id,
            )
        return replaced > 0
