# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Model selection cascade for obsolescence analysis.

Order:
  1. ``config``      operator-configured ``provider/model``
  2. ``user-model``  the model driving the session, unless its provider is
                     known to be incompatible
  3. ``fallback``    first authenticated provider in ``PROVIDER_PRIORITY``
                     with its documented cheap model

Every probe is bounded by a timeout; a probe that times out counts as a
failure. ``failed_model`` reports the most recent candidate that failed or
was skipped before the selected one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from langchain_core.language_models.chat_models import BaseChatModel

from pruner.models import ModelInfo
from pruner.services.errors import NoModelAvailableError
from pruner.services.pruning.catalog import ModelCatalog

logger = logging.getLogger(__name__)

FALLBACK_MODELS: Dict[str, str] = {
    "openai": "gpt-5-mini",
    "anthropic": "claude-haiku-4-5",
    "google": "gemini-2.5-flash",
    "deepseek": "deepseek-chat",
    "xai": "grok-4-fast",
    "alibaba": "qwen3-coder-flash",
    "zai": "glm-4.5-flash",
    "opencode": "big-pickle",
}

PROVIDER_PRIORITY: List[str] = [
    "openai",
    "anthropic",
    "google",
    "deepseek",
    "xai",
    "alibaba",
    "zai",
    "opencode",
]

# Session models from these providers are not used for analysis.
SKIP_PROVIDERS = ("github-copilot", "anthropic")


class ModelSource(str, Enum):
    CONFIG = "config"
    USER_MODEL = "user-model"
    FALLBACK = "fallback"


@dataclass
class ModelSelection:
    """Outcome of the cascade.

    Attributes:
        model (BaseChatModel): Ready-to-use chat model.
        model_info (ModelInfo): Which model was selected.
        source (ModelSource): Cascade stage that produced it.
        reason (str): Short human-readable explanation.
        failed_model (Optional[ModelInfo]): Last candidate that failed or
            was skipped before the selection.
    """

    model: BaseChatModel
    model_info: ModelInfo
    source: ModelSource
    reason: str = ""
    failed_model: Optional[ModelInfo] = None


def should_skip_provider(provider_id: str) -> bool:
    normalized = provider_id.strip().lower()
    return any(skip in normalized for skip in SKIP_PROVIDERS)


class ModelSelector:
    """Runs the cascade against a :class:`ModelCatalog`."""

    def __init__(self, catalog: ModelCatalog, probe_timeout: float = 10.0) -> None:
        self.catalog = catalog
        self.probe_timeout = probe_timeout

    async def _probe(self, info: ModelInfo) -> BaseChatModel:
        return await asyncio.wait_for(
            self.catalog.get_model(info.provider_id, info.model_id),
            timeout=self.probe_timeout,
        )

    async def select(
        self,
        current_model: Optional[ModelInfo] = None,
        config_model: Optional[str] = None,
    ) -> ModelSelection:
        """Pick a model for analysis.

        Args:
            current_model (Optional[ModelInfo]): Model driving the session.
            config_model (Optional[str]): Operator override ``provider/model``.

        Returns:
            ModelSelection: The first candidate that could be obtained.

        Raises:
            NoModelAvailableError: Every candidate failed.
        """
        failed: Optional[ModelInfo] = None

        if config_model:
            info = ModelInfo.parse(config_model)
            if info is None:
                logger.warning("Invalid config model format: %r (expected provider/model)", config_model)
            else:
                try:
                    model = await self._probe(info)
                    return ModelSelection(
                        model=model,
                        model_info=info,
                        source=ModelSource.CONFIG,
                        reason="Using model specified in configuration",
                    )
                except Exception as e:
                    logger.warning("Config model failed: %s (%s)", info.label, e or type(e).__name__)
                    failed = info

        if current_model is not None:
            if should_skip_provider(current_model.provider_id):
                logger.debug("Skipping session model %s (incompatible provider)", current_model.label)
                failed = current_model
            else:
                try:
                    model = await self._probe(current_model)
                    return ModelSelection(
                        model=model,
                        model_info=current_model,
                        source=ModelSource.USER_MODEL,
                        reason="Using current session model",
                        failed_model=failed,
                    )
                except Exception as e:
                    logger.warning(
                        "Session model failed: %s (%s)", current_model.label, e or type(e).__name__
                    )
                    failed = current_model

        try:
            providers = await asyncio.wait_for(
                self.catalog.list_available_providers(), timeout=self.probe_timeout
            )
        except Exception as e:
            logger.warning("Listing providers failed: %s", e or type(e).__name__)
            providers = set()

        for provider_id in PROVIDER_PRIORITY:
            if provider_id not in providers:
                continue
            model_id = FALLBACK_MODELS.get(provider_id)
            if not model_id:
                continue
            info = ModelInfo(provider_id=provider_id, model_id=model_id)
            try:
                model = await self._probe(info)
            except Exception as e:
                logger.debug("Fallback model %s unavailable: %s", info.label, e or type(e).__name__)
                continue
            return ModelSelection(
                model=model,
                model_info=info,
                source=ModelSource.FALLBACK,
                reason=f"Using {info.label}",
                failed_model=failed,
            )

        raise NoModelAvailableError()
