# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Turn/cooldown state machine.

    NORMAL --(prune completes)--> JUST_PRUNED --(new tool observed)--> NORMAL

While JUST_PRUNED, the guidance injected into the next request is a cooldown
notice instead of a fresh prunable list. A separate counter tracks tool
results since the last prune and triggers the nudge once it passes the
configured frequency.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class GuidancePhase(str, Enum):
    NORMAL = "normal"
    JUST_PRUNED = "just_pruned"


class GuidanceState:
    """Cooldown phase and nudge counter for one session."""

    def __init__(self) -> None:
        self.phase = GuidancePhase.NORMAL
        self.nudge_counter = 0
        self.skip_next_idle = False

    @property
    def in_cooldown(self) -> bool:
        return self.phase == GuidancePhase.JUST_PRUNED

    def mark_pruned(self, skip_next_idle: bool = False) -> None:
        """Enter cooldown after a pruning action and reset the nudge counter.

        Args:
            skip_next_idle (bool): Set when the acting model pruned by itself,
                so the following idle pass can be skipped.
        """
        if self.phase != GuidancePhase.JUST_PRUNED:
            logger.debug("Guidance: %s -> %s", self.phase.value, GuidancePhase.JUST_PRUNED.value)
        self.phase = GuidancePhase.JUST_PRUNED
        self.nudge_counter = 0
        self.skip_next_idle = skip_next_idle or self.skip_next_idle

    def observe_tool(self, protected: bool) -> None:
        """A tool call not seen before appeared in the transcript.

        Leaves cooldown. Counts toward the nudge unless the tool is protected.
        """
        if self.phase != GuidancePhase.NORMAL:
            logger.debug("Guidance: %s -> %s", self.phase.value, GuidancePhase.NORMAL.value)
        self.phase = GuidancePhase.NORMAL
        if not protected:
            self.nudge_counter += 1

    def reset_nudge(self) -> None:
        self.nudge_counter = 0

    def nudge_due(self, frequency: int) -> bool:
        """Whether the nudge counter has passed ``frequency``."""
        return frequency > 0 and self.nudge_counter > frequency

    def reset(self) -> None:
        self.phase = GuidancePhase.NORMAL
        self.nudge_counter = 0
        self.skip_next_idle = False
