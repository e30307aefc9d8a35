# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Pruning engine.

Wires the session manager, analyzer, prune tool and interception layer
around one set of collaborators (host API, model catalog, state store).
Routers talk to this object only.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from pruner.config import Settings
from pruner.models import ModelInfo
from pruner.schemas.transcript import parse_transcript
from pruner.services.host import HostClient, HttpHostClient
from pruner.services.interception.handler import InterceptionLayer
from pruner.services.interception.transport import PruningTransport
from pruner.services.pruning.catalog import LangChainModelCatalog, ModelCatalog
from pruner.services.pruning.janitor import Janitor, PruningResult
from pruner.services.pruning.model_selector import ModelSelector
from pruner.services.pruning.notification import Notifier
from pruner.services.pruning.on_idle import on_idle
from pruner.services.pruning.prune_tool import PruneTool
from pruner.services.pruning.settings import PruningSettings
from pruner.services.state.persistence import AggregatedStats, SessionStore
from pruner.services.state.session import SessionManager, SessionState

logger = logging.getLogger(__name__)


class PruningEngine:
    """Entry points for every host lifecycle event.

    Args:
        settings (PruningSettings): Engine configuration.
        host (Optional[HostClient]): Host session API. Without it the
            transcript must be pushed with :meth:`sync_transcript`.
        catalog (Optional[ModelCatalog]): Analyzer model source.
        store (Optional[SessionStore]): Persistence; ``None`` keeps state
            in memory only.
    """

    def __init__(
        self,
        settings: PruningSettings,
        host: Optional[HostClient] = None,
        catalog: Optional[ModelCatalog] = None,
        store: Optional[SessionStore] = None,
    ) -> None:
        self.settings = settings
        self.host = host
        self.store = store
        self.catalog = catalog or LangChainModelCatalog({})
        self.manager = SessionManager(settings, store=store, host=host)
        self.notifier = Notifier(host, settings)
        self.selector = ModelSelector(
            self.catalog, probe_timeout=settings.model_selection.probe_timeout_seconds
        )
        self.janitor = Janitor(self.manager, self.selector, self.notifier, settings)
        self.prune_tool = PruneTool(self.manager, self.notifier, settings)
        self.interception = InterceptionLayer(self.manager, settings)

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "PruningEngine":
        """Build the engine with the HTTP host client and LangChain catalog."""
        pruning = PruningSettings.from_settings(app_settings)
        host = (
            HttpHostClient(app_settings.HOST_URL, timeout=app_settings.HOST_TIMEOUT_SECONDS)
            if app_settings.HOST_URL
            else None
        )
        catalog = LangChainModelCatalog(
            app_settings.get_provider_keys(),
            timeout=app_settings.PRUNER_ANALYSIS_TIMEOUT_SECONDS,
        )
        store = SessionStore(app_settings.STORAGE_DIR) if app_settings.STORAGE_DIR else None
        return cls(pruning, host=host, catalog=catalog, store=store)

    # ------------------------------------------------------------------
    # Host events
    # ------------------------------------------------------------------

    async def intercept(
        self, session_id: Optional[str], body: Dict[str, Any]
    ) -> Tuple[bool, Dict[str, Any]]:
        return await self.interception.process(session_id, body)

    def record_chat_params(self, session_id: str, provider_id: str, model_id: str) -> SessionState:
        return self.manager.record_chat_params(
            session_id, ModelInfo(provider_id=provider_id, model_id=model_id)
        )

    async def sync_transcript(
        self, session_id: str, raw_messages: List[Dict[str, Any]]
    ) -> SessionState:
        """Sync from a transcript pushed by the host."""
        return await self.manager.sync(session_id, parse_transcript(raw_messages))

    async def on_idle(self, session_id: str) -> Optional[PruningResult]:
        return await on_idle(session_id, self.manager, self.janitor)

    async def discard(self, session_id: str, ids: Sequence[str]) -> str:
        return await self.prune_tool.discard(session_id, ids)

    async def extract(
        self, session_id: str, ids: Sequence[str], distillation: Sequence[str]
    ) -> str:
        return await self.prune_tool.extract(session_id, ids, distillation)

    # ------------------------------------------------------------------
    # Reporting and lifecycle
    # ------------------------------------------------------------------

    def session(self, session_id: str) -> Optional[SessionState]:
        return self.manager.peek(session_id)

    async def all_stats(self) -> AggregatedStats:
        if self.store is None:
            return AggregatedStats()
        return await self.store.load_all_stats()

    def dispose(self, session_id: str) -> bool:
        return self.manager.dispose(session_id)

    def transport(self, inner: Optional[httpx.AsyncBaseTransport] = None) -> PruningTransport:
        """httpx transport that routes requests through the interception layer."""
        return PruningTransport(self.interception, inner)

    async def shutdown(self) -> None:
        """Flush pending state writes."""
        if self.store is not None:
            await self.store.drain()
