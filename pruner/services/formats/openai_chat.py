# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Chat-completions style bodies (``body.messages``).

Covers two shapes that share the top-level list:
  - OpenAI: tool results are ``{"role": "tool", "tool_call_id": ...}``
  - Anthropic: tool results are ``{"type": "tool_result", "tool_use_id": ...}``
    blocks inside ``user`` content
"""

from typing import Any, Dict, List

from pruner.services.formats.base import AdapterContext, ChatMessagesAdapter, ToolOutput


def _anthropic_results(msg: Dict[str, Any]) -> List[Dict[str, Any]]:
    if msg.get("role") != "user" or not isinstance(msg.get("content"), list):
        return []
    return [
        block
        for block in msg["content"]
        if isinstance(block, dict)
        and block.get("type") == "tool_result"
        and isinstance(block.get("tool_use_id"), str)
    ]


class OpenAIChatAdapter(ChatMessagesAdapter):
    name = "openai-chat"

    def detect(self, body: Dict[str, Any]) -> bool:
        return isinstance(body.get("messages"), list)

    def has_tool_outputs(self, data: List[Any]) -> bool:
        for msg in data:
            if not isinstance(msg, dict):
                continue
            if msg.get("role") == "tool":
                return True
            if _anthropic_results(msg):
                return True
        return False

    def extract_tool_outputs(self, data: List[Any], ctx: AdapterContext) -> List[ToolOutput]:
        outputs: List[ToolOutput] = []
        for msg in data:
            if not isinstance(msg, dict):
                continue
            call_id = msg.get("tool_call_id")
            if msg.get("role") == "tool" and isinstance(call_id, str) and call_id:
                key = call_id.lower()
                outputs.append(ToolOutput(key, ctx.tool_name(key)))
            for block in _anthropic_results(msg):
                key = block["tool_use_id"].lower()
                outputs.append(ToolOutput(key, ctx.tool_name(key)))
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

        for i, msg in enumerate(data):
            if not isinstance(msg, dict):
                continue

            tool_call_id = msg.get("tool_call_id")
            if (
                msg.get("role") == "tool"
                and isinstance(tool_call_id, str)
                and tool_call_id.lower() == target
            ):
                data[i] = {**msg, "content": placeholder}
                replaced = True
                continue

            blocks = _anthropic_results(msg)
            if not any(b["tool_use_id"].lower() == target for b in blocks):
                continue
            data[i] = {
                **msg,
                "content": [
                    {**block, "content": placeholder}
                    if isinstance(block, dict)
                    and block.get("type") == "tool_result"
                    and str(block.get("tool_use_id", "")).lower() == target
                    else block
                    for block in msg["content"]
                ],
            }
            replaced = True

        return replaced

    def inject_prunable_list(self, data: List[Any], text: str) -> bool:
        if not text:
            return False
        data.append({"role": "user", "content": text})
        return True
