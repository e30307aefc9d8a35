# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Pruning notifications.

Builds the user-facing summary of a pruning action and posts it to the host
as an ignored message (shown to the user, never sent to the model).

  minimal    ▣ Pruning | ~12.4K tokens saved total [Noise Removal]
  detailed   header, then the pruned tools grouped by name with their keys
  off        nothing is sent
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Tuple

from pruner.models import ModelInfo
from pruner.services.host import HostClient
from pruner.services.pruning.deduplication import DuplicateGroup
from pruner.services.pruning.display import (
    extract_parameter_key,
    shorten_path,
    truncate,
)
from pruner.services.pruning.settings import NotificationMode, PruningSettings
from pruner.services.pruning.tokens import format_token_count
from pruner.services.state.prune_set import SessionStats
from pruner.services.state.registry import BATCH_TOOL, ToolCallRecord

logger = logging.getLogger(__name__)

PRUNE_REASON_LABELS: Dict[str, str] = {
    "completion": "Task Complete",
    "noise": "Noise Removal",
    "consolidation": "Consolidation",
}

MAX_ITEMS_PER_GROUP = 5


def format_stats_header(total_tokens: int) -> str:
    return f"▣ Pruning | ~{format_token_count(total_tokens)} saved total"


def build_minimal_message(stats: SessionStats, reason: Optional[str] = None) -> str:
    suffix = f" [{PRUNE_REASON_LABELS[reason]}]" if reason in PRUNE_REASON_LABELS else ""
    return format_stats_header(stats.total_tokens_pruned + stats.tokens_pruned_this_turn) + suffix


def group_by_tool(
    call_ids: Sequence[str],
    metadata: Dict[str, ToolCallRecord],
    working_directory: str = "",
) -> Tuple["OrderedDict[str, List[str]]", int]:
    """Group pruned ids by tool name for display.

    Batch calls are left out since their children are listed on their own.

    Returns:
        Tuple[OrderedDict[str, List[str]], int]: Display keys per tool in
            first-seen order, and the number of ids without metadata.
    """
    groups: "OrderedDict[str, List[str]]" = OrderedDict()
    unknown = 0
    for call_id in call_ids:
        record = metadata.get(call_id.lower())
        if record is None:
            unknown += 1
            continue
        if record.tool == BATCH_TOOL:
            continue
        key = extract_parameter_key(record.tool, record.parameters)
        display = truncate(shorten_path(key, working_directory)) if key else "(default)"
        groups.setdefault(record.tool, []).append(display)
    return groups, unknown


def format_group_lines(groups: "OrderedDict[str, List[str]]", indent: str = "  ") -> List[str]:
    lines: List[str] = []
    for tool, keys in groups.items():
        if len(keys) == 1:
            lines.append(f"{indent}{tool}: {keys[0]}")
            continue
        lines.append(f"{indent}{tool} ({len(keys)}):")
        for key in keys[:MAX_ITEMS_PER_GROUP]:
            lines.append(f"{indent}  {key}")
        if len(keys) > MAX_ITEMS_PER_GROUP:
            lines.append(f"{indent}  ... and {len(keys) - MAX_ITEMS_PER_GROUP} more")
    return lines


def format_duplicate_lines(
    groups: Sequence[DuplicateGroup], working_directory: str = "", indent: str = "  "
) -> List[str]:
    lines: List[str] = []
    for group in groups:
        if group.tool == BATCH_TOOL:
            continue
        key = shorten_path(group.key, working_directory) if group.key else "(default)"
        lines.append(f"{indent}{group.tool}: {truncate(key)} ({len(group.pruned_ids)}× duplicate)")
    return lines


def build_detailed_message(
    stats: SessionStats,
    pruned_ids: Sequence[str],
    metadata: Dict[str, ToolCallRecord],
    reason: Optional[str] = None,
    duplicate_groups: Sequence[DuplicateGroup] = (),
    working_directory: str = "",
) -> str:
    """Header plus the pruned tool outputs, grouped by tool.

    Args:
        stats (SessionStats): Counters with the current action still in
            ``tokens_pruned_this_turn``.
        pruned_ids (Sequence[str]): Ids pruned by analysis or the prune tool.
        metadata (Dict[str, ToolCallRecord]): Registry records by id.
        reason (Optional[str]): Prune reason, when the acting model gave one.
        duplicate_groups (Sequence[DuplicateGroup]): Duplicates pruned in
            the same action.
        working_directory (str): Project root for path shortening.

    Returns:
        str: Multi-line notification text.
    """
    lines = [format_stats_header(stats.total_tokens_pruned + stats.tokens_pruned_this_turn)]
    label = f" - {PRUNE_REASON_LABELS[reason]}" if reason in PRUNE_REASON_LABELS else ""
    lines.append("")
    lines.append(f"▣ Pruned tools (~{format_token_count(stats.tokens_pruned_this_turn)}){label}")

    duplicate_lines = format_duplicate_lines(duplicate_groups, working_directory)
    if duplicate_lines:
        dup_count = sum(len(g.pruned_ids) for g in duplicate_groups)
        lines.append(f"Duplicates removed ({dup_count}):")
        lines.extend(duplicate_lines)

    if pruned_ids:
        groups, unknown = group_by_tool(pruned_ids, metadata, working_directory)
        if duplicate_lines:
            lines.append(f"Analysis ({len(pruned_ids)}):")
        lines.extend(format_group_lines(groups))
        if unknown:
            lines.append(f"  ({unknown} tool{'s' if unknown > 1 else ''} with unknown metadata)")

    return "\n".join(lines).strip()


def build_distillation_message(distillation: Sequence[str]) -> str:
    lines = ["▣ Extracted"]
    for item in distillation:
        lines.append(f"→ {item}")
    return "\n".join(lines)


def build_model_fallback_message(selected: ModelInfo, failed: ModelInfo, skipped: bool) -> str:
    if skipped:
        return (
            "▣ Pruning | AI analysis skipped\n"
            f"{failed.label} failed\n"
            "AI analysis skipped (strict model selection enabled)"
        )
    return f"▣ Pruning | Model fallback\n{failed.label} failed\nUsing {selected.label}"


class Notifier:
    """Sends pruning notifications through the host."""

    def __init__(self, host: Optional[HostClient], settings: PruningSettings) -> None:
        self.host = host
        self.settings = settings

    async def send(self, session_id: str, text: str, agent: Optional[str] = None) -> bool:
        """Post an ignored message. Failures are logged, never raised."""
        if self.host is None:
            logger.debug("No host configured; dropping notification for %s", session_id)
            return False
        try:
            await self.host.send_guidance_message(session_id, text, agent=agent)
        except Exception as e:
            logger.error("Failed to send notification to %s: %s", session_id, e)
            return False
        return True

    async def notify_pruned(
        self,
        session_id: str,
        stats: SessionStats,
        pruned_ids: Sequence[str],
        metadata: Dict[str, ToolCallRecord],
        reason: Optional[str] = None,
        duplicate_groups: Sequence[DuplicateGroup] = (),
        agent: Optional[str] = None,
    ) -> bool:
        """Send the summary for one pruning action.

        Returns:
            bool: ``True`` if a message was sent.
        """
        if not pruned_ids and not duplicate_groups:
            return False
        mode = self.settings.notification
        if mode == NotificationMode.OFF:
            return False
        if mode == NotificationMode.MINIMAL:
            text = build_minimal_message(stats, reason)
        else:
            text = build_detailed_message(
                stats,
                pruned_ids,
                metadata,
                reason=reason,
                duplicate_groups=duplicate_groups,
                working_directory=self.settings.working_directory,
            )
        return await self.send(session_id, text, agent=agent)

    async def notify_distillation(
        self, session_id: str, distillation: Sequence[str], agent: Optional[str] = None
    ) -> bool:
        if not distillation or self.settings.notification == NotificationMode.OFF:
            return False
        return await self.send(session_id, build_distillation_message(distillation), agent=agent)

    async def notify_model_fallback(
        self,
        session_id: str,
        selected: ModelInfo,
        failed: ModelInfo,
        skipped: bool,
        agent: Optional[str] = None,
    ) -> bool:
        if not self.settings.model_selection.show_errors:
            return False
        return await self.send(
            session_id, build_model_fallback_message(selected, failed, skipped), agent=agent
        )
