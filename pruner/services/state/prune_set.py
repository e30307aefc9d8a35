# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Prune set and pruning statistics for one session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List


class PruneSet:
    """Append-only set of pruned tool call ids.

    Ids are stored lower-cased in insertion order. Adding an id that is
    already present is a no-op, so concurrent passes that both add the same
    id cannot corrupt the set. A parallel set holds transcript message ids
    whose tool calls have all been pruned.
    """

    def __init__(self) -> None:
        self._tool_ids: Dict[str, None] = {}
        self._message_ids: Dict[str, None] = {}

    def __contains__(self, call_id: object) -> bool:
        return isinstance(call_id, str) and call_id.lower() in self._tool_ids

    def __len__(self) -> int:
        return len(self._tool_ids)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tool_ids))

    @property
    def tool_ids(self) -> List[str]:
        return list(self._tool_ids)

    @property
    def message_ids(self) -> List[str]:
        return list(self._message_ids)

    def add(self, call_ids: Iterable[str]) -> List[str]:
        """Union ``call_ids`` into the set.

        Args:
            call_ids (Iterable[str]): Tool call ids (any case).

        Returns:
            List[str]: The ids that were not already present.
        """
        added: List[str] = []
        for call_id in call_ids:
            key = call_id.lower()
            if key not in self._tool_ids:
                self._tool_ids[key] = None
                added.append(key)
        return added

    def add_messages(self, message_ids: Iterable[str]) -> List[str]:
        added: List[str] = []
        for message_id in message_ids:
            if message_id and message_id not in self._message_ids:
                self._message_ids[message_id] = None
                added.append(message_id)
        return added

    def has_message(self, message_id: str) -> bool:
        return message_id in self._message_ids

    def clear(self) -> None:
        """Forget every id. Only used when the host compacts the transcript."""
        self._tool_ids.clear()
        self._message_ids.clear()


@dataclass
class SessionStats:
    """Token counters attributed to pruning.

    Attributes:
        tokens_pruned_this_turn (int): Tokens removed by the pruning action in
            progress; folded into the total once the action completes.
        total_tokens_pruned (int): Lifetime tokens removed for the session.
        total_tools_pruned (int): Lifetime tool outputs removed.
    """

    tokens_pruned_this_turn: int = 0
    total_tokens_pruned: int = 0
    total_tools_pruned: int = 0

    def record(self, tokens: int, tools: int) -> None:
        """Attribute a pruning action's savings to the current turn."""
        self.tokens_pruned_this_turn += tokens
        self.total_tools_pruned += tools

    def commit(self) -> int:
        """Fold the current turn into the lifetime total.

        Returns:
            int: Tokens that were folded.
        """
        folded = self.tokens_pruned_this_turn
        self.total_tokens_pruned += folded
        self.tokens_pruned_this_turn = 0
        return folded
