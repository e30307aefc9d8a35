# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Gemini ``generateContent`` bodies (``body.contents``).

``functionResponse`` parts carry no call id, only the function name, so
results are correlated by position through the session's
:class:`~pruner.services.formats.position_index.PositionIndex`. Occurrences
are counted per name in strict document order on every pass.

Replacement keeps every other field of the part. Gemini 3 rejects a request
whose ``thoughtSignature`` went missing.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pruner.services.formats.base import (
    AdapterContext,
    FormatAdapter,
    ToolOutput,
    is_guidance_text,
)

logger = logging.getLogger(__name__)


def _iter_responses(data: List[Any]) -> Iterator[Tuple[int, int, Dict[str, Any], str, int]]:
    """Yield ``(content_index, part_index, part, name, occurrence)``."""
    counters: Dict[str, int] = {}
    for ci, content in enumerate(data):
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            continue
        for pi, part in enumerate(parts):
            if not isinstance(part, dict):
                continue
            response = part.get("functionResponse")
            if not isinstance(response, dict):
                continue
            name = response.get("name")
            if not isinstance(name, str) or not name:
                continue
            key = name.lower()
            occurrence = counters.get(key, 0)
            counters[key] = occurrence + 1
            yield ci, pi, part, key, occurrence


class GeminiAdapter(FormatAdapter):
    name = "gemini"
    data_key = "contents"

    def detect(self, body: Dict[str, Any]) -> bool:
        return isinstance(body.get("contents"), list)

    def has_tool_outputs(self, data: List[Any]) -> bool:
        return any(True for _ in _iter_responses(data))

    def _resolve(self, ctx: AdapterContext, name: str, occurrence: int) -> Optional[str]:
        if ctx.position_index is None or not len(ctx.position_index):
            return None
        return ctx.position_index.lookup(name, occurrence)

    def extract_tool_outputs(self, data: List[Any], ctx: AdapterContext) -> List[ToolOutput]:
        outputs: List[ToolOutput] = []
        for _, _, _, name, occurrence in _iter_responses(data):
            call_id = self._resolve(ctx, name, occurrence)
            if call_id is None:
                continue
            outputs.append(ToolOutput(call_id, ctx.tool_name(call_id)))
        return outputs

    def replace_tool_output(
        self,
        data: List[Any],
        call_id: str,
        placeholder: str,
        ctx: AdapterContext,
    ) -> bool:
        target = call_id.lower()
        hits = [
            (ci, pi, part)
            for ci, pi, part, name, occurrence in _iter_responses(data)
            if self._resolve(ctx, name, occurrence) == target
        ]
        if not hits:
            return False

        for ci, pi, part in hits:
            response = part["functionResponse"]
            content = data[ci]
            parts = list(content["parts"])
            parts[pi] = {
                **part,
                "functionResponse": {
                    **response,
                    "response": {"name": response["name"], "content": placeholder},
                },
            }
            data[ci] = {**content, "parts": parts}
        return True

    def _is_guidance_content(self, content: Dict[str, Any]) -> bool:
        parts = content.get("parts")
        return (
            isinstance(parts, list)
            and len(parts) == 1
            and isinstance(parts[0], dict)
            and is_guidance_text(parts[0].get("text"))
        )

    def inject_synth(self, data: List[Any], instruction: str) -> bool:
        for content in reversed(data):
            if not isinstance(content, dict) or content.get("role") != "user":
                continue
            parts = content.get("parts")
            if not isinstance(parts, list):
                continue
            if self._is_guidance_content(content):
                continue
            for part in parts:
                text = part.get("text") if isinstance(part, dict) else None
                if isinstance(text, str) and instruction in text:
                    return False
            parts.append({"text": instruction})
            return True
        return False

    def inject_prunable_list(self, data: List[Any], text: str) -> bool:
        if not text:
            return False
        data.append({"role": "user", "parts": [{"text": text}]})
        return True
