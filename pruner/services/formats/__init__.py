# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Wire format adapters.

The set of formats is closed. :func:`detect_format` tries them in order;
Bedrock must come before chat-completions because both carry a
``messages`` list.

  bedrock            system[] + inferenceConfig + messages[] (toolResult blocks)
  openai-chat        messages[] (role=tool, or Anthropic tool_result blocks)
  gemini             contents[] (functionResponse parts, position-addressed)
  openai-responses   input[] (function_call_output items)
"""

from typing import Any, Optional, Tuple

from pruner.services.formats.base import AdapterContext, FormatAdapter, ToolOutput
from pruner.services.formats.bedrock import BedrockAdapter
from pruner.services.formats.gemini import GeminiAdapter
from pruner.services.formats.openai_chat import OpenAIChatAdapter
from pruner.services.formats.openai_responses import OpenAIResponsesAdapter
from pruner.services.formats.position_index import PositionIndex

FORMATS: Tuple[FormatAdapter, ...] = (
    BedrockAdapter(),
    OpenAIChatAdapter(),
    GeminiAdapter(),
    OpenAIResponsesAdapter(),
)


def detect_format(body: Any) -> Optional[FormatAdapter]:
    """First adapter whose ``detect`` matches ``body``, or ``None``."""
    if not isinstance(body, dict):
        return None
    for adapter in FORMATS:
        if adapter.detect(body):
            return adapter
    return None


__all__ = [
    "AdapterContext",
    "BedrockAdapter",
    "FORMATS",
    "FormatAdapter",
    "GeminiAdapter",
    "OpenAIChatAdapter",
    "OpenAIResponsesAdapter",
    "PositionIndex",
    "ToolOutput",
    "detect_format",
]
