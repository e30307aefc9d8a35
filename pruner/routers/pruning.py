# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Pruning router - host lifecycle hooks and management endpoints.

Hooks:
  POST /intercept                         outbound model request
  POST /sessions/{id}/chat-params         model driving the session
  POST /sessions/{id}/transcript          host-pushed transcript
  POST /sessions/{id}/idle                session went idle
  POST /sessions/{id}/tools/discard       prune tool calls
  POST /sessions/{id}/tools/extract
  GET  /tools                             prune tool schemas and prompt

Management:
  GET    /sessions/{id}/stats
  GET    /stats
  DELETE /sessions/{id}

Interception always answers 200 with a forwardable body.
"""

import logging

from fastapi import APIRouter, HTTPException

from pruner.config import settings
from pruner.models import (
    AggregatedStatsResponse,
    ChatParamsRequest,
    DiscardRequest,
    ExtractRequest,
    InterceptRequest,
    InterceptResponse,
    PruningResultResponse,
    SessionStatsResponse,
    ToolDefinitionsResponse,
    ToolResultResponse,
    TranscriptSyncRequest,
)
from pruner.schemas.tool_schema import PRUNE_TOOL_SCHEMAS
from pruner.services.engine import PruningEngine
from pruner.services.errors import HostError, PrunerError
from pruner.services.prompts.base import SYSTEM_PROMPT_ADDENDUM

logger = logging.getLogger(__name__)

router = APIRouter()

engine = PruningEngine.from_settings(settings)


def _http_error(e: PrunerError) -> HTTPException:
    status = 502 if isinstance(e, HostError) else 503
    return HTTPException(status_code=status, detail=str(e))


@router.post("/intercept", response_model=InterceptResponse)
async def intercept(request: InterceptRequest) -> InterceptResponse:
    """Run an outbound model request through the interception layer."""
    modified, body = await engine.intercept(request.session_id, request.body)
    return InterceptResponse(modified=modified, body=body)


@router.post("/sessions/{session_id}/chat-params", status_code=204)
async def chat_params(session_id: str, request: ChatParamsRequest) -> None:
    engine.record_chat_params(session_id, request.provider_id, request.model_id)


@router.post("/sessions/{session_id}/transcript", response_model=SessionStatsResponse)
async def sync_transcript(session_id: str, request: TranscriptSyncRequest) -> SessionStatsResponse:
    """Synchronize session state from a transcript pushed by the host."""
    try:
        await engine.sync_transcript(session_id, request.messages)
    except PrunerError as e:
        raise _http_error(e) from e
    return _session_stats(session_id)


@router.post("/sessions/{session_id}/idle", response_model=PruningResultResponse)
async def idle(session_id: str) -> PruningResultResponse:
    """Run the idle strategies. Never fails; an empty result means no-op."""
    result = await engine.on_idle(session_id)
    if result is None:
        return PruningResultResponse(pruned=False)
    return PruningResultResponse(
        pruned=result.pruned_count > 0,
        pruned_count=result.pruned_count,
        tokens_saved=result.tokens_saved,
        deduplicated_ids=result.deduplicated_ids,
        llm_pruned_ids=result.llm_pruned_ids,
    )


@router.post("/sessions/{session_id}/tools/discard", response_model=ToolResultResponse)
async def discard(session_id: str, request: DiscardRequest) -> ToolResultResponse:
    output = await engine.discard(session_id, request.ids)
    return ToolResultResponse(output=output)


@router.post("/sessions/{session_id}/tools/extract", response_model=ToolResultResponse)
async def extract(session_id: str, request: ExtractRequest) -> ToolResultResponse:
    output = await engine.extract(session_id, request.ids, request.distillation)
    return ToolResultResponse(output=output)


def _session_stats(session_id: str) -> SessionStatsResponse:
    state = engine.session(session_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return SessionStatsResponse(
        session_id=session_id,
        pruned_tool_ids=state.prune_set.tool_ids,
        tokens_pruned_this_turn=state.stats.tokens_pruned_this_turn,
        total_tokens_pruned=state.stats.total_tokens_pruned,
        total_tools_pruned=state.stats.total_tools_pruned,
        tracked_tools=len(state.registry),
        current_turn=state.current_turn,
    )


@router.get("/sessions/{session_id}/stats", response_model=SessionStatsResponse)
async def session_stats(session_id: str) -> SessionStatsResponse:
    return _session_stats(session_id)


@router.get("/stats", response_model=AggregatedStatsResponse)
async def all_stats() -> AggregatedStatsResponse:
    """Lifetime totals over every persisted session."""
    try:
        stats = await engine.all_stats()
    except PrunerError as e:
        raise _http_error(e) from e
    return AggregatedStatsResponse(**stats.model_dump())


@router.delete("/sessions/{session_id}", status_code=204)
async def dispose(session_id: str) -> None:
    if not engine.dispose(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")


@router.get("/tools", response_model=ToolDefinitionsResponse)
async def tool_definitions() -> ToolDefinitionsResponse:
    """Prune tool schemas and the system prompt addendum for the host to register."""
    return ToolDefinitionsResponse(tools=PRUNE_TOOL_SCHEMAS, system_prompt=SYSTEM_PROMPT_ADDENDUM)
