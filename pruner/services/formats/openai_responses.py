# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
OpenAI Responses API bodies (``body.input``).

A flat list of typed items: user turns are ``{"type": "message", "role":
"user"}`` and tool results are ``{"type": "function_call_output",
"call_id": ..., "output": ...}``.
"""

from typing import Any, Dict, List

from pruner.services.formats.base import (
    AdapterContext,
    FormatAdapter,
    ToolOutput,
    is_guidance_text,
)


def _is_output(item: Any) -> bool:
    return isinstance(item, dict) and item.get("type") == "function_call_output"


class OpenAIResponsesAdapter(FormatAdapter):
    name = "openai-responses"
    data_key = "input"

    def detect(self, body: Dict[str, Any]) -> bool:
        return isinstance(body.get("input"), list)

    def has_tool_outputs(self, data: List[Any]) -> bool:
        return any(_is_output(item) for item in data)

    def extract_tool_outputs(self, data: List[Any], ctx: AdapterContext) -> List[ToolOutput]:
        outputs: List[ToolOutput] = []
        for item in data:
            if not _is_output(item):
                continue
            call_id = item.get("call_id")
            if not isinstance(call_id, str) or not call_id:
                continue
            key = call_id.lower()
            outputs.append(ToolOutput(key, ctx.tool_name(key) or item.get("name")))
        return outputs

    def replace_tool_output(
        self,
        data: List[Any],
        call_id: str,
        placeholder: str,
        ctx: AdapterContext,
    ) -> bool:
        target = call_id.lower()
        replaced = False
        for i, item in enumerate(data):
            if _is_output(item) and str(item.get("call_id", "")).lower() == target:
                data[i] = {**item, "output": placeholder}
                replaced = True
        return replaced

    def _is_guidance_item(self, item: Dict[str, Any]) -> bool:
        content = item.get("content")
        if isinstance(content, str):
            return is_guidance_text(content)
        if isinstance(content, list) and len(content) == 1 and isinstance(content[0], dict):
            return is_guidance_text(content[0].get("text"))
        return False

    def inject_synth(self, data: List[Any], instruction: str) -> bool:
        for item in reversed(data):
            if not isinstance(item, dict):
                continue
            if item.get("type") != "message" or item.get("role") != "user":
                continue
            if self._is_guidance_item(item):
                continue

            content = item.get("content")
            if isinstance(content, str):
                if instruction in content:
                    return False
                item["content"] = f"{content}\n\n{instruction}"
                return True
            if isinstance(content, list):
                for part in content:
                    if (
                        isinstance(part, dict)
                        and part.get("type") == "input_text"
                        and isinstance(part.get("text"), str)
                        and instruction in part["text"]
                    ):
                        return False
                content.append({"type": "input_text", "text": instruction})
                return True
            return False
        return False

    def inject_prunable_list(self, data: List[Any], text: str) -> bool:
        if not text:
            return False
        data.append({"type": "message", "role": "user", "content": text})
        return True
