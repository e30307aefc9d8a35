# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Host transcript schemas.

A transcript is an ordered list of messages, each with an ``info`` header and
zero or more typed parts. Only the fields the pruner reads are modelled;
everything else is kept as extra data so round-tripping stays lossless.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class ToolStatus(str, Enum):
    """Tool call lifecycle status.

    Attributes:
        PENDING (str): Call emitted, not started.
        RUNNING (str): Call executing.
        COMPLETED (str): Call finished with output.
        ERROR (str): Call failed.
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class _HostModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ModelRef(_HostModel):
    """Provider/model pair as reported by the host."""

    provider_id: str = Field(alias="providerID")
    model_id: str = Field(alias="modelID")


class MessageTime(_HostModel):
    created: float = 0
    completed: Optional[float] = None


class MessageInfo(_HostModel):
    """Transcript message header.

    Attributes:
        id (str): Message identifier.
        session_id (str): Owning session.
        role (str): ``user`` or ``assistant``.
        time (MessageTime): Creation (and completion) timestamps in ms.
        summary (Optional[Any]): ``True`` on assistant messages produced by a
            host compaction.
        agent (Optional[str]): Agent that produced or received the message.
        model (Optional[ModelRef]): Model selected for a user message.
        provider_id (Optional[str]): Provider that produced an assistant
            message.
        model_id (Optional[str]): Model that produced an assistant message.
    """

    id: str
    session_id: str = Field(default="", alias="sessionID")
    role: str
    time: MessageTime = Field(default_factory=MessageTime)
    summary: Optional[Any] = None
    agent: Optional[str] = None
    model: Optional[ModelRef] = None
    provider_id: Optional[str] = Field(default=None, alias="providerID")
    model_id: Optional[str] = Field(default=None, alias="modelID")

    @property
    def is_compaction_summary(self) -> bool:
        return self.role == "assistant" and self.summary is True


class ToolState(_HostModel):
    status: ToolStatus = ToolStatus.PENDING
    input: Any = None
    output: Optional[str] = None
    error: Optional[str] = None


class Part(_HostModel):
    """Any transcript part not modelled more specifically."""

    id: Optional[str] = None
    type: str


class TextPart(Part):
    text: str = ""
    synthetic: Optional[bool] = None
    ignored: Optional[bool] = None


class ToolPart(Part):
    """A tool invocation and its current state.

    Attributes:
        call_id (str): Provider tool-call identifier (case-insensitive).
        tool (str): Tool name.
        state (ToolState): Lifecycle status, input and output/error.
    """

    call_id: str = Field(alias="callID")
    tool: str
    state: ToolState = Field(default_factory=ToolState)

    @property
    def normalized_id(self) -> str:
        return self.call_id.lower()


TranscriptPart = Union[ToolPart, TextPart, Part]

_PART_MODELS: Dict[str, type] = {
    "tool": ToolPart,
    "text": TextPart,
}


class TranscriptMessage(BaseModel):
    """One transcript message with its parts."""

    info: MessageInfo
    parts: List[TranscriptPart] = Field(default_factory=list)


def parse_part(raw: Any) -> Optional[TranscriptPart]:
    """Validate a single raw part.

    Args:
        raw (Any): Part as decoded from host JSON.

    Returns:
        Optional[TranscriptPart]: Typed part, or ``None`` if malformed.
    """
    if not isinstance(raw, dict):
        return None
    model = _PART_MODELS.get(raw.get("type"), Part)
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.debug("Dropping malformed %s part: %s", raw.get("type"), e.errors()[:1])
        return None


def parse_transcript(raw_messages: Any) -> List[TranscriptMessage]:
    """Convert raw host JSON into typed transcript messages.

    Invalid parts are dropped; a message whose header is invalid is dropped
    entirely.

    Args:
        raw_messages (Any): List of ``{"info": ..., "parts": [...]}`` dicts.

    Returns:
        List[TranscriptMessage]: Parsed messages in transcript order.
    """
    if not isinstance(raw_messages, list):
        return []

    messages: List[TranscriptMessage] = []
    for raw in raw_messages:
        if not isinstance(raw, dict):
            continue
        try:
            info = MessageInfo.model_validate(raw.get("info"))
        except ValidationError as e:
            logger.debug("Dropping message with invalid info: %s", e.errors()[:1])
            continue
        raw_parts = raw.get("parts") if isinstance(raw.get("parts"), list) else []
        parts = [p for p in (parse_part(rp) for rp in raw_parts) if p is not None]
        messages.append(TranscriptMessage.model_construct(info=info, parts=parts))
    return messages
