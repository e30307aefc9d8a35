# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Pruning settings.

Engine-level configuration as a tree of frozen dataclasses. Built from the
process ``Settings`` via :meth:`PruningSettings.from_settings`; tests build it
directly.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Mapping, Optional, Tuple

from pruner.config import DEFAULT_PROTECTED_TOOLS, Settings
from pruner.services.prompts.base import PRUNED_OUTPUT_PLACEHOLDER

IDLE_STRATEGIES = frozenset({"deduplication", "ai-analysis"})


class NotificationMode(str, Enum):
    """How much detail pruning notifications carry."""

    OFF = "off"
    MINIMAL = "minimal"
    DETAILED = "detailed"


@dataclass(frozen=True)
class DeduplicationConfig:
    """Deterministic duplicate detection.

    Attributes:
        enabled (bool): Whether duplicate tool calls are pruned.
    """

    enabled: bool = True


@dataclass(frozen=True)
class NudgeConfig:
    """Periodic reminder to prune once unmanaged tool results pile up.

    Attributes:
        enabled (bool): Whether the nudge instruction is ever injected.
        frequency (int): Tool results since the last prune before nudging.
    """

    enabled: bool = True
    frequency: int = 10


@dataclass(frozen=True)
class TurnProtectionConfig:
    """Keeps tool calls from the most recent turns out of every candidate set.

    Attributes:
        turns (int): Number of recent turns protected. ``0`` disables.
    """

    turns: int = 0

    @property
    def enabled(self) -> bool:
        return self.turns > 0


@dataclass(frozen=True)
class ModelSelectionConfig:
    """Obsolescence analyzer model selection.

    Attributes:
        model (Optional[str]): Operator-configured ``provider/model``.
        strict (bool): Skip LLM analysis when only a fallback model is found.
        show_errors (bool): Notify the user about model fallbacks.
        probe_timeout_seconds (float): Upper bound for a single model probe.
        analysis_timeout_seconds (float): Upper bound for the analysis call.
    """

    model: Optional[str] = None
    strict: bool = False
    show_errors: bool = True
    probe_timeout_seconds: float = 10.0
    analysis_timeout_seconds: float = 60.0


@dataclass(frozen=True)
class PruningSettings:
    """All pruning-related configuration in one place.

    Attributes:
        enabled (bool): Master switch for interception and analysis.
        protected_tools (FrozenSet[str]): Tool names whose outputs are never
            pruned.
        protected_file_patterns (Tuple[str, ...]): ``fnmatch`` globs; tool
            calls touching a matching file path are treated as protected.
        placeholder (str): Replacement text for pruned tool outputs.
        notification (NotificationMode): Notification verbosity.
        guidance_enabled (bool): Inject the prunable list and cooldown notice
            into outbound requests.
        idle_strategies (Tuple[str, ...]): Strategies run on the idle trigger.
        tool_cache_size (int): Registry cap per session (FIFO eviction).
        min_messages (int): Transcript length below which analysis is a no-op.
        working_directory (str): Used to shorten paths for display.
        deduplication (DeduplicationConfig): Duplicate detection settings.
        nudge (NudgeConfig): Nudge settings.
        turn_protection (TurnProtectionConfig): Turn protection settings.
        model_selection (ModelSelectionConfig): Analyzer model selection.
    """

    enabled: bool = True
    protected_tools: FrozenSet[str] = frozenset(DEFAULT_PROTECTED_TOOLS)
    protected_file_patterns: Tuple[str, ...] = ()
    placeholder: str = PRUNED_OUTPUT_PLACEHOLDER
    notification: NotificationMode = NotificationMode.DETAILED
    guidance_enabled: bool = True
    idle_strategies: Tuple[str, ...] = ("deduplication", "ai-analysis")
    tool_cache_size: int = 500
    min_messages: int = 3
    working_directory: str = ""
    deduplication: DeduplicationConfig = field(default_factory=DeduplicationConfig)
    nudge: NudgeConfig = field(default_factory=NudgeConfig)
    turn_protection: TurnProtectionConfig = field(default_factory=TurnProtectionConfig)
    model_selection: ModelSelectionConfig = field(default_factory=ModelSelectionConfig)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PruningSettings":
        """Build engine settings from process settings.

        Args:
            settings (Settings): Loaded application settings.

        Returns:
            PruningSettings: Engine configuration. Unknown idle strategy
                names and an unknown notification mode fall back to defaults.
        """
        try:
            notification = NotificationMode(settings.PRUNER_NOTIFICATION.strip().lower())
        except ValueError:
            notification = NotificationMode.DETAILED

        strategies = tuple(
            s for s in settings.get_on_idle_strategies() if s in IDLE_STRATEGIES
        )

        return cls(
            enabled=settings.PRUNER_ENABLED,
            protected_tools=frozenset(settings.get_protected_tools()),
            protected_file_patterns=tuple(settings.get_protected_file_patterns()),
            notification=notification,
            guidance_enabled=settings.PRUNER_GUIDANCE_ENABLED,
            idle_strategies=strategies,
            tool_cache_size=settings.PRUNER_TOOL_CACHE_SIZE,
            min_messages=settings.PRUNER_MIN_MESSAGES,
            working_directory=settings.WORKING_DIRECTORY,
            deduplication=DeduplicationConfig(enabled=settings.PRUNER_DEDUPLICATION_ENABLED),
            nudge=NudgeConfig(
                enabled=settings.PRUNER_NUDGE_ENABLED,
                frequency=settings.PRUNER_NUDGE_FREQUENCY,
            ),
            turn_protection=TurnProtectionConfig(turns=settings.PRUNER_TURN_PROTECTION_TURNS),
            model_selection=ModelSelectionConfig(
                model=settings.PRUNER_MODEL or None,
                strict=settings.PRUNER_STRICT_MODEL_SELECTION,
                show_errors=settings.PRUNER_SHOW_MODEL_ERRORS,
                probe_timeout_seconds=settings.PRUNER_PROBE_TIMEOUT_SECONDS,
                analysis_timeout_seconds=settings.PRUNER_ANALYSIS_TIMEOUT_SECONDS,
            ),
        )

    def is_tool_protected(self, tool_name: Optional[str]) -> bool:
        """Whether the named tool is in the protected set."""
        return bool(tool_name) and tool_name in self.protected_tools

    def is_file_protected(self, parameters: Any) -> bool:
        """Check a tool call's file path against the protected globs.

        Args:
            parameters (Any): The tool call's input payload.

        Returns:
            bool: ``True`` if a file path is present and matches any
                configured pattern.
        """
        if not self.protected_file_patterns:
            return False
        path = get_file_path(parameters)
        if not path:
            return False
        for pattern in self.protected_file_patterns:
            if fnmatch.fnmatch(path, pattern) or fnmatch.fnmatch(
                path.rsplit("/", 1)[-1], pattern
            ):
                return True
        return False


def get_file_path(parameters: Any) -> Optional[str]:
    """File path carried by a tool call's parameters, if any."""
    if not isinstance(parameters, Mapping):
        return None
    for key in ("filePath", "file_path", "path"):
        value = parameters.get(key)
        if isinstance(value, str) and value:
            return value
    return None
