# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Shared models for the application."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ModelInfo(BaseModel):
    """Provider/model pair.

    Attributes:
        provider_id (str): Provider identifier (``openai``, ``google``, ...).
        model_id (str): Model identifier within the provider.
    """

    provider_id: str
    model_id: str

    @property
    def label(self) -> str:
        return f"{self.provider_id}/{self.model_id}"

    @classmethod
    def parse(cls, value: str) -> Optional["ModelInfo"]:
        """Parse ``provider/model``; anything else yields ``None``."""
        parts = value.split("/")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            return None
        return cls(provider_id=parts[0], model_id=parts[1])


class InterceptRequest(BaseModel):
    """Outbound model request to run through the interception layer.

    Attributes:
        session_id (Optional[str]): Session the request belongs to. Falls
            back to the last session seen via chat params.
        body (Dict[str, Any]): Decoded JSON request body.
    """

    session_id: Optional[str] = None
    body: Dict[str, Any]


class InterceptResponse(BaseModel):
    modified: bool
    body: Dict[str, Any]


class ChatParamsRequest(BaseModel):
    """Model currently driving a session, as reported by the host."""

    provider_id: str
    model_id: str


class TranscriptSyncRequest(BaseModel):
    messages: List[Dict[str, Any]] = Field(default_factory=list)


class DiscardRequest(BaseModel):
    """Prune tool arguments: reason first, then numeric ids as strings."""

    ids: List[str] = Field(default_factory=list)


class ExtractRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)
    distillation: List[str] = Field(default_factory=list)


class ToolResultResponse(BaseModel):
    """Text returned to the acting model as the tool result."""

    output: str


class ToolDefinitionsResponse(BaseModel):
    """Prune tools and the system prompt addendum for the acting model.

    Attributes:
        tools (List[Dict[str, Any]]): Function-calling schemas.
        system_prompt (str): Text to append to the host system prompt.
    """

    tools: List[Dict[str, Any]]
    system_prompt: str


class PruningResultResponse(BaseModel):
    """Outcome of an idle analysis pass.

    Attributes:
        pruned (bool): Whether anything was pruned.
        pruned_count (int): Newly pruned tool outputs.
        tokens_saved (int): Estimated tokens removed.
        deduplicated_ids (List[str]): Ids pruned as duplicates.
        llm_pruned_ids (List[str]): Ids pruned by obsolescence analysis.
    """

    pruned: bool
    pruned_count: int = 0
    tokens_saved: int = 0
    deduplicated_ids: List[str] = Field(default_factory=list)
    llm_pruned_ids: List[str] = Field(default_factory=list)


class SessionStatsResponse(BaseModel):
    session_id: str
    pruned_tool_ids: List[str]
    tokens_pruned_this_turn: int
    total_tokens_pruned: int
    total_tools_pruned: int
    tracked_tools: int
    current_turn: int


class AggregatedStatsResponse(BaseModel):
    total_tokens: int
    total_tools: int
    total_messages: int
    session_count: int


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status (str): Current health status of the service.
        version (str): Application version string.
    """

    status: str
    version: str
