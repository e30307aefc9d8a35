# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Bedrock Converse bodies.

Distinguished from chat-completions by a top-level ``system`` list plus
``inferenceConfig``. Tool results are ``{"toolResult": {"toolUseId": ...}}``
blocks in ``user`` content; text blocks are bare ``{"text": ...}``.
"""

from typing import Any, Dict, List

from pruner.services.formats.base import AdapterContext, ChatMessagesAdapter, ToolOutput


def _tool_results(msg: Any) -> List[Dict[str, Any]]:
    if not isinstance(msg, dict) or msg.get("role") != "user":
        return []
    content = msg.get("content")
    if not isinstance(content, list):
        return []
    return [
        block
        for block in content
        if isinstance(block, dict)
        and isinstance(block.get("toolResult"), dict)
        and isinstance(block["toolResult"].get("toolUseId"), str)
    ]


class BedrockAdapter(ChatMessagesAdapter):
    name = "bedrock"
    text_block_type = None

    def detect(self, body: Dict[str, Any]) -> bool:
        return (
            isinstance(body.get("system"), list)
            and "inferenceConfig" in body
            and isinstance(body.get("messages"), list)
        )

    def has_tool_outputs(self, data: List[Any]) -> bool:
        return any(_tool_results(msg) for msg in data)

    def extract_tool_outputs(self, data: List[Any], ctx: AdapterContext) -> List[ToolOutput]:
        outputs: List[ToolOutput] = []
        for msg in data:
            for block in _tool_results(msg):
                key = block["toolResult"]["toolUseId"].lower()
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
            blocks = _tool_results(msg)
            if not any(b["toolResult"]["toolUseId"].lower() == target for b in blocks):
                continue

            new_content = []
            for block in msg["content"]:
                result = block.get("toolResult") if isinstance(block, dict) else None
                if (
                    isinstance(result, dict)
                    and str(result.get("toolUseId", "")).lower() == target
                ):
                    block = {
                        **block,
                        "toolResult": {**result, "content": [{"text": placeholder}]},
                    }
                new_content.append(block)
            data[i] = {**msg, "content": new_content}
            replaced = True

        return replaced

    def inject_prunable_list(self, data: List[Any], text: str) -> bool:
        if not text:
            return False
        data.append({"role": "user", "content": [{"text": text}]})
        return True
