# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Numeric ID virtualization.

Maps small incrementing integers (1, 2, 3, ...) to provider tool call ids
such as ``call_abc123xyz`` so the acting model can reference tool outputs
compactly. Numbers start at 1, are never reused and never reassigned.
"""

from typing import Dict, Optional


class IdMapping:
    """Bijection between numeric ids and tool call ids for one session."""

    def __init__(self) -> None:
        self._numeric_to_actual: Dict[int, str] = {}
        self._actual_to_numeric: Dict[str, int] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._numeric_to_actual)

    @property
    def next_id(self) -> int:
        return self._next_id

    def get_or_create(self, actual_id: str) -> int:
        """Numeric id for ``actual_id``, assigning the next one if needed.

        Args:
            actual_id (str): Tool call id (case-insensitive).

        Returns:
            int: Stable numeric id.
        """
        key = actual_id.lower()
        existing = self._actual_to_numeric.get(key)
        if existing is not None:
            return existing

        numeric_id = self._next_id
        self._next_id += 1
        self._numeric_to_actual[numeric_id] = key
        self._actual_to_numeric[key] = numeric_id
        return numeric_id

    def resolve(self, numeric_id: int) -> Optional[str]:
        """Tool call id for a numeric id, or ``None`` if unassigned."""
        return self._numeric_to_actual.get(numeric_id)

    def numeric_id(self, actual_id: str) -> Optional[int]:
        """Numeric id already assigned to ``actual_id``, without assigning."""
        return self._actual_to_numeric.get(actual_id.lower())
