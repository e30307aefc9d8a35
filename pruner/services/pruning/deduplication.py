# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Deduplication strategy.

Groups tool calls by signature (tool name plus canonical JSON of their
parameters) and marks every member of a group except the most recent as a
prune candidate. Never consults an LLM and never mutates its inputs.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List

from pruner.services.pruning.display import extract_parameter_key
from pruner.services.state.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuplicateGroup:
    """Calls sharing one signature, oldest first.

    Attributes:
        signature (str): ``tool::{canonical json}`` or the bare tool name.
        tool (str): Tool name.
        key (str): Human-readable parameter key for reporting.
        call_ids (List[str]): Ids in transcript order; the last one is kept.
    """

    signature: str
    tool: str
    key: str
    call_ids: List[str]

    @property
    def pruned_ids(self) -> List[str]:
        return self.call_ids[:-1]


@dataclass
class DeduplicationResult:
    prune_candidates: List[str] = field(default_factory=list)
    groups: List[DuplicateGroup] = field(default_factory=list)


def _sort_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sort_keys(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [_sort_keys(v) for v in value]
    return value


def _drop_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: v for k, v in value.items() if v is not None}
    return value


def tool_signature(tool: str, parameters: Any) -> str:
    """Signature for duplicate grouping.

    Top-level keys whose value is ``None`` are dropped, object keys are
    sorted recursively and arrays keep their order.

    Args:
        tool (str): Tool name.
        parameters (Any): Tool input payload.

    Returns:
        str: ``"{tool}::{json}"``, or ``tool`` alone when ``parameters``
            is ``None``. An empty object still encodes as ``{}``.
    """
    if parameters is None:
        return tool
    canonical = _sort_keys(_drop_nulls(parameters))
    try:
        encoded = json.dumps(canonical, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        encoded = repr(canonical)
    return f"{tool}::{encoded}"


def detect_duplicates(
    registry: ToolRegistry,
    unpruned_ids: Collection[str],
    protected_tools: Collection[str],
) -> DeduplicationResult:
    """Find older duplicates among unpruned tool calls.

    Args:
        registry (ToolRegistry): Source of tool names and parameters.
        unpruned_ids (Collection[str]): Candidate ids in transcript order.
        protected_tools (Collection[str]): Tool names that are neither
            candidates nor grouped.

    Returns:
        DeduplicationResult: Candidates (all but the last of each group) and
            the groups themselves for reporting.
    """
    by_signature: Dict[str, List[str]] = {}
    tools: Dict[str, str] = {}
    keys: Dict[str, str] = {}

    for call_id in unpruned_ids:
        record = registry.get(call_id)
        if record is None:
            logger.debug("No registry entry for %s, skipping", call_id)
            continue
        if record.tool in protected_tools:
            continue
        signature = tool_signature(record.tool, record.parameters)
        by_signature.setdefault(signature, []).append(record.call_id)
        if signature not in tools:
            tools[signature] = record.tool
            keys[signature] = extract_parameter_key(record.tool, record.parameters)

    result = DeduplicationResult()
    for signature, ids in by_signature.items():
        if len(ids) < 2:
            continue
        group = DuplicateGroup(
            signature=signature,
            tool=tools[signature],
            key=keys[signature],
            call_ids=ids,
        )
        result.groups.append(group)
        result.prune_candidates.extend(group.pruned_ids)

    if result.prune_candidates:
        logger.debug(
            "Found %d duplicate tool calls in %d groups",
            len(result.prune_candidates),
            len(result.groups),
        )
    return result
