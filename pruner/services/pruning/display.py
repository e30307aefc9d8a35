# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Human-readable descriptions of tool calls.

Used by the prunable list, notifications and the prune tool result to show
what a tool call was about (``read, src/app.ts``) without its output.
"""

import json
import os
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pruner.services.state.registry import ToolCallRecord

KEY_MAX_CHARS = 50
DISPLAY_MAX_CHARS = 60

_IN_PATH = re.compile(r"^(.+) in (.+)$")


def _str(params: Mapping[str, Any], key: str) -> Optional[str]:
    value = params.get(key)
    return value if isinstance(value, str) and value else None


def extract_parameter_key(tool: str, parameters: Any) -> str:
    """Dominant parameter of a tool call, per tool family.

    Args:
        tool (str): Tool name.
        parameters (Any): Tool input payload.

    Returns:
        str: A short key such as a file path, quoted pattern or command,
            or ``""`` when nothing meaningful can be shown.
    """
    if not parameters:
        return ""
    if not isinstance(parameters, Mapping):
        return _json_key(parameters)

    if tool in ("read", "write", "edit", "multiedit", "patch"):
        path = _str(parameters, "filePath")
        if path:
            return path

    if tool == "list":
        return _str(parameters, "path") or "(current directory)"

    if tool in ("glob", "grep"):
        pattern = _str(parameters, "pattern")
        if pattern:
            path = _str(parameters, "path")
            return f'"{pattern}" in {path}' if path else f'"{pattern}"'
        return "(unknown pattern)"

    if tool == "bash":
        description = _str(parameters, "description")
        if description:
            return description
        command = _str(parameters, "command")
        if command:
            return command if len(command) <= KEY_MAX_CHARS else command[:KEY_MAX_CHARS] + "..."

    if tool == "webfetch":
        url = _str(parameters, "url")
        if url:
            return url

    if tool in ("websearch", "codesearch"):
        query = _str(parameters, "query")
        if query:
            return f'"{query}"'

    if tool == "todowrite":
        todos = parameters.get("todos")
        return f"{len(todos) if isinstance(todos, list) else 0} todos"

    if tool == "todoread":
        return "read todo list"

    if tool == "task":
        description = _str(parameters, "description")
        if description:
            return description

    return _json_key(parameters)


def _json_key(parameters: Any) -> str:
    try:
        text = json.dumps(parameters, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        text = str(parameters)
    if text in ("{}", "[]", "null"):
        return ""
    return text[:KEY_MAX_CHARS]


def truncate(text: str, max_len: int = DISPLAY_MAX_CHARS) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _shorten_single(path: str, working_directory: str) -> str:
    if working_directory:
        wd = working_directory.rstrip("/")
        if path == wd:
            return "."
        if path.startswith(wd + "/"):
            return path[len(wd) + 1 :]
    home = os.path.expanduser("~")
    if home and home != "~" and path.startswith(home + "/"):
        return "~" + path[len(home) :]
    return path


def shorten_path(text: str, working_directory: str = "") -> str:
    """Make a path (or ``"pattern" in path``) relative to the project.

    Args:
        text (str): A parameter key, possibly ``<prefix> in <path>``.
        working_directory (str): Project root.

    Returns:
        str: The key with its path relative to ``working_directory`` or
            abbreviated under ``~``.
    """
    match = _IN_PATH.match(text)
    if match:
        return f"{match.group(1)} in {_shorten_single(match.group(2), working_directory)}"
    return _shorten_single(text, working_directory)


def describe(record: ToolCallRecord, working_directory: str = "") -> str:
    """``tool: key`` display line body for one record."""
    key = extract_parameter_key(record.tool, record.parameters)
    if not key:
        return record.tool
    return f"{record.tool}: {truncate(shorten_path(key, working_directory))}"


def format_pruned_items(
    call_ids: Sequence[str],
    metadata: Dict[str, ToolCallRecord],
    working_directory: str = "",
) -> List[str]:
    """``→ tool: key`` lines for pruned ids, plus an unknown-metadata tally.

    Args:
        call_ids (Sequence[str]): Pruned tool call ids.
        metadata (Dict[str, ToolCallRecord]): Records keyed by lower-cased id.
        working_directory (str): Project root for path shortening.

    Returns:
        List[str]: One line per known id, then one line counting ids without
            metadata.
    """
    lines: List[str] = []
    unknown = 0
    for call_id in call_ids:
        record = metadata.get(call_id.lower())
        if record is None:
            unknown += 1
            continue
        lines.append(f"→ {describe(record, working_directory)}")
    if unknown:
        lines.append(f"→ ({unknown} tool{'s' if unknown > 1 else ''} with unknown metadata)")
    return lines
