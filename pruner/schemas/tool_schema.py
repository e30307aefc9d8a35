# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Prune tool schemas - OpenAI function calling format.

Hosts register these with the acting model and forward calls to the
``/tools/discard`` and ``/tools/extract`` endpoints.
"""

from pruner.services.prompts.base import DISCARD_TOOL_DESCRIPTION, EXTRACT_TOOL_DESCRIPTION

_IDS_PARAMETER = {
    "type": "array",
    "items": {"type": "string"},
    "description": "First element is the reason, followed by numeric IDs from the <prunable-tools> list",
}

DISCARD_TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "discard",
        "description": DISCARD_TOOL_DESCRIPTION,
        "parameters": {
            "type": "object",
            "properties": {"ids": _IDS_PARAMETER},
            "required": ["ids"],
        },
    },
}

EXTRACT_TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "extract",
        "description": EXTRACT_TOOL_DESCRIPTION,
        "parameters": {
            "type": "object",
            "properties": {
                "ids": _IDS_PARAMETER,
                "distillation": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "One distilled finding per ID, in the same order",
                },
            },
            "required": ["ids", "distillation"],
        },
    },
}

PRUNE_TOOL_SCHEMAS = [DISCARD_TOOL_SCHEMA, EXTRACT_TOOL_SCHEMA]
