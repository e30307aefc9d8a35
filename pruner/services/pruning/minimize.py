# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Minimized transcript for obsolescence analysis.

The analyzer model only needs enough of the conversation to judge which tool
outputs are stale. Structural markers are dropped, reasoning is reduced to a
short summary, and ids that are not candidates are masked with sentinels so
a hallucinating model cannot target them.
"""

import json
import logging
from typing import Any, Collection, Dict, List, Optional, Sequence

from pruner.schemas.transcript import TextPart, ToolPart, ToolStatus, TranscriptMessage
from pruner.services.prompts.base import (
    ALREADY_PRUNED_SENTINEL,
    ANALYSIS_PROMPT,
    PROTECTED_SENTINEL,
)
from pruner.services.pruning.settings import get_file_path

logger = logging.getLogger(__name__)

STRUCTURAL_PART_TYPES = frozenset({"step-start", "step-finish"})
MUTATING_TOOLS = frozenset({"write", "edit", "multiedit", "patch"})
REASONING_PREVIEW_CHARS = 200


def _minimize_input(tool: str, parameters: Any) -> Any:
    if not isinstance(parameters, dict):
        return parameters
    if get_file_path(parameters):
        if tool in MUTATING_TOOLS:
            return parameters
        return {"filePath": get_file_path(parameters)}
    calls = parameters.get("tool_calls")
    if isinstance(calls, list):
        return {
            "batch_summary": f"{len(calls)} tool calls",
            "tools": [c.get("tool") for c in calls if isinstance(c, dict)],
        }
    return parameters


def _minimize_tool(
    part: ToolPart,
    pruned_ids: Collection[str],
    protected_ids: Collection[str],
) -> Dict[str, Any]:
    call_id = part.normalized_id
    if call_id in pruned_ids:
        shown_id = ALREADY_PRUNED_SENTINEL
    elif call_id in protected_ids:
        shown_id = PROTECTED_SENTINEL
    else:
        shown_id = call_id

    entry: Dict[str, Any] = {"type": "tool", "toolCallID": shown_id, "tool": part.tool}
    if part.state.status == ToolStatus.COMPLETED and part.state.output is not None:
        entry["output"] = (
            ALREADY_PRUNED_SENTINEL if call_id in pruned_ids else part.state.output
        )
    elif part.state.status == ToolStatus.ERROR and part.state.error:
        entry["error"] = part.state.error
    if part.state.input is not None:
        entry["input"] = _minimize_input(part.tool, part.state.input)
    return entry


def _minimize_part(
    part: Any,
    pruned_ids: Collection[str],
    protected_ids: Collection[str],
) -> Optional[Dict[str, Any]]:
    if part.type in STRUCTURAL_PART_TYPES:
        return None
    if isinstance(part, ToolPart):
        return _minimize_tool(part, pruned_ids, protected_ids)
    if isinstance(part, TextPart):
        if part.ignored:
            return None
        return {"type": "text", "text": part.text}
    if part.type == "reasoning":
        text = getattr(part, "text", "") or ""
        return {
            "type": "reasoning",
            "text": text[:REASONING_PREVIEW_CHARS],
            "textLength": len(text),
        }
    return None


def minimize_transcript(
    messages: Sequence[TranscriptMessage],
    pruned_ids: Collection[str],
    protected_ids: Collection[str],
) -> List[Dict[str, Any]]:
    """Reduce a transcript to what the analyzer needs.

    Args:
        messages (Sequence[TranscriptMessage]): Full transcript.
        pruned_ids (Collection[str]): Lower-cased ids already pruned.
        protected_ids (Collection[str]): Lower-cased ids never to prune.

    Returns:
        List[Dict[str, Any]]: ``{"id", "role", "parts"}`` per message that
            still has parts after minimization.
    """
    pruned = {i.lower() for i in pruned_ids}
    protected = {i.lower() for i in protected_ids}
    result: List[Dict[str, Any]] = []
    for msg in messages:
        parts = [
            p for p in (_minimize_part(part, pruned, protected) for part in msg.parts) if p
        ]
        if not parts:
            continue
        result.append({"id": msg.info.id, "role": msg.info.role, "parts": parts})
    return result


def build_analysis_prompt(
    messages: Sequence[TranscriptMessage],
    candidate_ids: Sequence[str],
    pruned_ids: Collection[str],
    protected_ids: Collection[str],
) -> str:
    """Render the analysis prompt for one pass."""
    history = minimize_transcript(messages, pruned_ids, protected_ids)
    return ANALYSIS_PROMPT.format(
        already_pruned=ALREADY_PRUNED_SENTINEL,
        protected=PROTECTED_SENTINEL,
        available_tool_call_ids=", ".join(candidate_ids),
        session_history=json.dumps(history, ensure_ascii=False, indent=2, default=str),
    )
