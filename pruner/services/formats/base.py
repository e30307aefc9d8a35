# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Wire format adapter contract.

Each supported request shape implements :class:`FormatAdapter`. Untyped JSON
never leaves the adapter: callers get :class:`ToolOutput` records back and
hand in plain strings to inject.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pruner.services.formats.position_index import PositionIndex
from pruner.services.state.registry import ToolRegistry

GUIDANCE_MARKERS = (
    "<prunable-tools>",
    "<context-info>",
    "<instruction name=context_management_required>",
)


@dataclass(frozen=True)
class ToolOutput:
    """A tool result found in a request body.

    Attributes:
        call_id (str): Lower-cased tool call id.
        tool_name (Optional[str]): Tool name from the registry, when known.
    """

    call_id: str
    tool_name: Optional[str] = None


@dataclass
class AdapterContext:
    """Session data an adapter may consult.

    Attributes:
        registry (ToolRegistry): Tool call registry, for tool names.
        position_index (Optional[PositionIndex]): ``name:occurrence`` to call
            id map for formats without call ids.
    """

    registry: ToolRegistry
    position_index: Optional[PositionIndex] = None

    def tool_name(self, call_id: str) -> Optional[str]:
        record = self.registry.get(call_id)
        return record.tool if record is not None else None


def is_guidance_text(text: Any) -> bool:
    """Whether ``text`` is a guidance block this service injected."""
    return isinstance(text, str) and text.lstrip().startswith(GUIDANCE_MARKERS)


class FormatAdapter(ABC):
    """Capability record for one wire format.

    Subclasses set ``name`` and ``data_key`` (the top-level list holding the
    conversation) and implement the abstract operations. All mutating
    operations work in place on the list returned by :meth:`get_data`.
    """

    name: str = ""
    data_key: str = ""

    @abstractmethod
    def detect(self, body: Dict[str, Any]) -> bool:
        """Structural sniff of an outbound request body."""

    def get_data(self, body: Dict[str, Any]) -> Optional[List[Any]]:
        data = body.get(self.data_key)
        return data if isinstance(data, list) else None

    @abstractmethod
    def has_tool_outputs(self, data: List[Any]) -> bool:
        """Fast check for any tool result in ``data``."""

    @abstractmethod
    def extract_tool_outputs(self, data: List[Any], ctx: AdapterContext) -> List[ToolOutput]:
        """Enumerate tool results in document order."""

    @abstractmethod
    def replace_tool_output(
        self,
        data: List[Any],
        call_id: str,
        placeholder: str,
        ctx: AdapterContext,
    ) -> bool:
        """Replace every result for ``call_id`` with ``placeholder``.

        Returns:
            bool: ``True`` if at least one occurrence was replaced.
        """

    @abstractmethod
    def inject_synth(self, data: List[Any], instruction: str) -> bool:
        """Append ``instruction`` to the last real user turn.

        Returns:
            bool: ``False`` if there is no eligible user turn or the
                instruction is already present.
        """

    @abstractmethod
    def inject_prunable_list(self, data: List[Any], text: str) -> bool:
        """Append ``text`` as a new trailing user turn."""


class ChatMessagesAdapter(FormatAdapter):
    """Shared behaviour for formats built on a ``messages`` list of
    ``{role, content}`` entries."""

    data_key = "messages"
    text_block_type: Optional[str] = "text"

    def _text_block(self, text: str) -> Dict[str, Any]:
        if self.text_block_type is None:
            return {"text": text}
        return {"type": self.text_block_type, "text": text}

    def _block_text(self, block: Any) -> Optional[str]:
        if not isinstance(block, dict):
            return None
        if self.text_block_type is not None and block.get("type") != self.text_block_type:
            return None
        text = block.get("text")
        return text if isinstance(text, str) else None

    def _is_guidance_message(self, msg: Dict[str, Any]) -> bool:
        content = msg.get("content")
        if isinstance(content, str):
            return is_guidance_text(content)
        if isinstance(content, list) and len(content) == 1:
            return is_guidance_text(self._block_text(content[0]))
        return False

    def inject_synth(self, data: List[Any], instruction: str) -> bool:
        for msg in reversed(data):
            if not isinstance(msg, dict) or msg.get("role") != "user":
                continue
            if self._is_guidance_message(msg):
                continue

            content = msg.get("content")
            if isinstance(content, str):
                if instruction in content:
                    return False
                msg["content"] = f"{content}\n\n{instruction}"
                return True
            if isinstance(content, list):
                for block in content:
                    text = self._block_text(block)
                    if text is not None and instruction in text:
                        return False
                content.append(self._text_block(instruction))
                return True
            return False
        return False
