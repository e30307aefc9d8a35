# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Obsolescence analyzer.

One analysis pass over a session:

  1. Fetch the transcript and sync the session state.
  2. Compute candidates: unpruned, unprotected, outside turn protection.
  3. Deduplicate (deterministic, no LLM).
  4. Ask the selected model which remaining candidates are obsolete.
  5. Keep only answers that are real candidates, expand batch calls,
     merge with duplicates and apply to the prune set.
  6. Update stats, notify, persist.

The pass is best-effort: any exception is logged and turned into ``None``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from langchain_core.messages import HumanMessage
from pydantic import BaseModel, Field

from pruner.schemas.transcript import TranscriptMessage
from pruner.services.pruning.deduplication import (
    DeduplicationResult,
    DuplicateGroup,
    detect_duplicates,
)
from pruner.services.pruning.minimize import build_analysis_prompt
from pruner.services.pruning.model_selector import ModelSelector, ModelSource
from pruner.services.pruning.notification import Notifier
from pruner.services.pruning.settings import PruningSettings
from pruner.services.pruning.tokens import format_token_count
from pruner.services.state.session import SessionManager, SessionState

logger = logging.getLogger(__name__)

REASONING_LOG_CHARS = 200


class PruneAnalysis(BaseModel):
    """Structured answer expected from the analyzer model."""

    pruned_tool_call_ids: List[str] = Field(
        default_factory=list,
        description="Tool call ids whose outputs are obsolete",
    )
    reasoning: str = Field(default="", description="Short justification")


@dataclass
class PruningResult:
    """Outcome of a pass that pruned something.

    Attributes:
        pruned_ids (List[str]): Every id newly added to the prune set.
        tokens_saved (int): Estimated tokens of the pruned outputs.
        deduplicated_ids (List[str]): Ids pruned as older duplicates.
        llm_pruned_ids (List[str]): Ids pruned by analysis, batches expanded.
        duplicate_groups (List[DuplicateGroup]): Groups behind the duplicates.
    """

    pruned_ids: List[str] = field(default_factory=list)
    tokens_saved: int = 0
    deduplicated_ids: List[str] = field(default_factory=list)
    llm_pruned_ids: List[str] = field(default_factory=list)
    duplicate_groups: List[DuplicateGroup] = field(default_factory=list)

    @property
    def pruned_count(self) -> int:
        return len(self.pruned_ids)


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class Janitor:
    """Runs deduplication and LLM analysis passes for sessions."""

    def __init__(
        self,
        manager: SessionManager,
        selector: ModelSelector,
        notifier: Notifier,
        settings: PruningSettings,
    ) -> None:
        self.manager = manager
        self.selector = selector
        self.notifier = notifier
        self.settings = settings

    async def run_analysis(
        self,
        session_id: str,
        trigger: str = "idle",
        strategies: Optional[Sequence[str]] = None,
    ) -> Optional[PruningResult]:
        """Run one pass.

        Args:
            session_id (str): Session to analyze.
            trigger (str): What started the pass, for logging.
            strategies (Optional[Sequence[str]]): Subset of ``deduplication``
                and ``ai-analysis``. Defaults to the configured idle
                strategies.

        Returns:
            Optional[PruningResult]: ``None`` when nothing was pruned or the
                pass failed.
        """
        try:
            return await self._run(session_id, trigger, strategies)
        except Exception as e:
            logger.error("Analysis failed for %s (trigger=%s): %s", session_id, trigger, e)
            return None

    async def _run(
        self,
        session_id: str,
        trigger: str,
        strategies: Optional[Sequence[str]],
    ) -> Optional[PruningResult]:
        if strategies is None:
            strategies = self.settings.idle_strategies
        if not strategies or not self.settings.enabled:
            return None

        state, messages = await self.manager.fetch_and_sync(session_id)
        if state.is_subagent:
            return None
        # Only the post-compaction tail is visible to the acting model.
        if state.last_compaction:
            messages = [m for m in messages if m.info.time.created >= state.last_compaction]
        if len(messages) < self.settings.min_messages:
            logger.debug("Session %s has %d messages; skipping analysis", session_id, len(messages))
            return None

        candidates = state.candidate_ids(self.settings)
        if not candidates:
            return None

        dedup = DeduplicationResult()
        if "deduplication" in strategies and self.settings.deduplication.enabled:
            dedup = detect_duplicates(
                state.registry, candidates, self.settings.protected_tools
            )

        llm_ids: List[str] = []
        if "ai-analysis" in strategies:
            duplicates = set(dedup.prune_candidates)
            analyzable = [c for c in candidates if c not in duplicates]
            if analyzable:
                llm_ids = await self._analyze(state, messages, analyzable, dedup.prune_candidates)

        newly = dedup.prune_candidates + llm_ids
        if not newly:
            return None

        expanded = state.registry.expand_batches(newly)
        llm_expanded = state.registry.expand_batches(llm_ids)
        added = state.apply_prune(expanded)
        if not added:
            return None

        tokens = sum(
            record.output_tokens for record in state.registry.metadata(added).values()
        )
        state.stats.record(tokens, len(added))

        added_set = set(added)
        await self.notifier.notify_pruned(
            session_id,
            state.stats,
            [i for i in llm_expanded if i in added_set],
            state.registry.metadata(added),
            duplicate_groups=dedup.groups,
            agent=state.agent,
        )
        state.stats.commit()
        state.guidance.mark_pruned()
        self.manager.persist(state)

        logger.info(
            "Pruned %d/%d tools in %s (%d duplicate, %d llm), ~%s, trigger=%s",
            len(added),
            len(candidates),
            session_id,
            len(dedup.prune_candidates),
            len(llm_ids),
            format_token_count(tokens),
            trigger,
        )
        return PruningResult(
            pruned_ids=added,
            tokens_saved=tokens,
            deduplicated_ids=[i for i in dedup.prune_candidates if i in added_set],
            llm_pruned_ids=[i for i in llm_expanded if i in added_set],
            duplicate_groups=dedup.groups,
        )

    async def _analyze(
        self,
        state: SessionState,
        messages: Sequence[TranscriptMessage],
        analyzable: List[str],
        deduplicated: List[str],
    ) -> List[str]:
        """Ask the selected model for obsolete ids among ``analyzable``.

        Raises:
            NoModelAvailableError: The selection cascade was exhausted.
        """
        config = self.settings.model_selection
        selection = await self.selector.select(state.model, config.model)
        logger.info(
            "Analysis model for %s: %s (source=%s)",
            state.session_id,
            selection.model_info.label,
            selection.source.value,
        )

        skip = selection.source == ModelSource.FALLBACK and config.strict
        if selection.failed_model is not None:
            await self.notifier.notify_model_fallback(
                state.session_id,
                selection.model_info,
                selection.failed_model,
                skipped=skip,
                agent=state.agent,
            )
        if skip:
            logger.info("Skipping AI analysis (fallback model, strict selection enabled)")
            return []

        prompt = build_analysis_prompt(
            messages,
            analyzable,
            pruned_ids=state.prune_set.tool_ids + deduplicated,
            protected_ids=state.protected_ids(self.settings),
        )
        structured = selection.model.with_structured_output(PruneAnalysis)
        answer = await asyncio.wait_for(
            structured.ainvoke([HumanMessage(content=prompt)]),
            timeout=config.analysis_timeout_seconds,
        )
        if not isinstance(answer, PruneAnalysis):
            answer = PruneAnalysis.model_validate(answer)

        allowed = set(analyzable)
        accepted: List[str] = []
        dropped: List[str] = []
        for raw in answer.pruned_tool_call_ids:
            call_id = str(raw).lower()
            if call_id in allowed and call_id not in accepted:
                accepted.append(call_id)
            elif call_id not in allowed:
                dropped.append(call_id)
        if dropped:
            logger.warning(
                "Dropped %d ids outside the candidate set for %s: %s",
                len(dropped),
                state.session_id,
                dropped[:10],
            )

        if accepted:
            reasoning = _collapse_whitespace(answer.reasoning)
            if len(reasoning) > REASONING_LOG_CHARS:
                reasoning = reasoning[:REASONING_LOG_CHARS] + "..."
            logger.info("Analysis reasoning: %s", reasoning)
        return accepted
