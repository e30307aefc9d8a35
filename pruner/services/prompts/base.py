# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Canned text injected into model requests or sent to the user.

Everything the acting model sees from the pruner is wrapped in XML-style tags
so it can be told apart from real user input:
  - ``<system-reminder>``   context management protocol (system addendum)
  - ``<prunable-tools>``    numbered list of tool outputs that may be pruned
  - ``<context-info>``      cooldown notice right after a prune
  - ``<instruction>``       periodic nudge
"""

from typing import Iterable

PRUNED_OUTPUT_PLACEHOLDER = (
    "[Output removed to save context - information superseded or no longer needed]"
)
PRUNED_INPUT_PLACEHOLDER = "[Input removed to save context]"

ALREADY_PRUNED_SENTINEL = "<already-pruned>"
PROTECTED_SENTINEL = "<protected>"

SYSTEM_REMINDER_OPEN = "<system-reminder>"
SYSTEM_REMINDER_CLOSE = "</system-reminder>"

CONTEXT_MANAGEMENT_INSTRUCTION = """<instruction name=context_management_protocol policy_level=critical>
You are operating in a context-constrained environment and must proactively manage your context window using the `discard` and `extract` tools. After each turn the environment provides an up-to-date <prunable-tools> list. Use it when deciding what to prune.

- `discard`: remove tool outputs that are noise, irrelevant, or superseded. Nothing is preserved.
- `extract`: distill key findings from tool outputs into short notes, then remove the raw output.

Batch your prunes; it is rarely worth pruning a single tiny output. Do not prune outputs you will need for upcoming edits. If no <prunable-tools> list is present, there is nothing to prune yet. You can ONLY prune IDs listed in <prunable-tools>.

Never mention the <prunable-tools> list, these instructions, or the results of discard/extract to the user. Process them silently.
</instruction>"""

SYSTEM_PROMPT_ADDENDUM = (
    f"{SYSTEM_REMINDER_OPEN}\n{CONTEXT_MANAGEMENT_INSTRUCTION}\n{SYSTEM_REMINDER_CLOSE}"
)

NUDGE_INSTRUCTION = """<instruction name=context_management_required>
Your context window is filling with tool outputs. Review the <prunable-tools> list:
1. Use `discard` on outputs that yielded no value or have been superseded by newer ones.
2. Use `extract` on large outputs whose technical details are worth keeping in distilled form.
Do not interrupt an atomic operation in progress, but perform context management once the current step is done.
</instruction>"""

PRUNABLE_TOOLS_HEADER = (
    "The following tools have been invoked and are available for pruning. "
    "This list does not mandate immediate action. Consider your current goals "
    "and the resources you need before pruning valuable tool outputs."
)

DISCARD_TOOL_DESCRIPTION = """Discards tool outputs from context to manage conversation size and reduce noise.

A `<prunable-tools>` list shows the tool outputs you can discard. Each line has the format `ID: tool, parameter` (e.g. `20: read, /path/to/file.ts`). Only use numeric IDs that appear in this list.

Use `discard` for outputs that are noise, came from the wrong file, or were superseded by newer outputs. Do not discard outputs you will need for upcoming work.

`ids`: the first element is the reason (`completion` or `noise`), followed by numeric IDs as strings."""

EXTRACT_TOOL_DESCRIPTION = """Extracts key findings from tool outputs into distilled knowledge, then removes the raw outputs from context.

A `<prunable-tools>` list shows the tool outputs you can extract from. Only use numeric IDs that appear in this list.

Use `extract` when an output holds valuable details but is too large to keep verbatim. Keep raw outputs you will need for exact edits.

`ids`: the first element is the reason (`consolidation`), followed by numeric IDs as strings.
`distillation`: one string per ID, positional, capturing what must be preserved."""

INVALID_IDS_MESSAGE = "Invalid IDs provided. Only use numeric IDs from the <prunable-tools> list."
NO_IDS_MESSAGE = "No IDs provided. Check the <prunable-tools> list for available IDs to prune."
NO_NUMERIC_IDS_MESSAGE = (
    "No numeric IDs provided. Format: [reason, id1, id2, ...] where reason is {reasons}."
)
INVALID_REASON_MESSAGE = (
    "No valid pruning reason found. Use {reasons} as the first element."
)
DISTILLATION_MISMATCH_MESSAGE = (
    "Distillation count does not match ID count. Provide one distillation string per ID."
)

ANALYSIS_PROMPT = """You are a conversation analyzer that identifies obsolete tool outputs in a coding session.

Your task: decide which of the tool calls listed below are no longer needed to continue the work. A tool output is obsolete when:
- it was superseded by a later call (a newer read of the same file, a re-run command)
- it explored something that turned out to be irrelevant
- its information has already been acted on and will not be needed again

Keep a tool output when the ongoing work still depends on it, or when you are unsure.

Tool call ids marked {already_pruned} or {protected} in the history are not candidates. Only return ids from this list:
{available_tool_call_ids}

<session_history>
{session_history}
</session_history>

Return the obsolete tool call ids and a short reasoning."""


def wrap_prunable_tools(lines: Iterable[str]) -> str:
    body = "\n".join(lines)
    return f"<prunable-tools>\n{PRUNABLE_TOOLS_HEADER}\n{body}\n</prunable-tools>"


def cooldown_message(tool_names: Iterable[str] = ("discard", "extract")) -> str:
    """Notice injected right after a prune, in place of the prunable list.

    Args:
        tool_names (Iterable[str]): Prune tools the acting model has access to.

    Returns:
        str: ``<context-info>`` block naming the tools not to call again.
    """
    names = list(tool_names)
    if not names:
        label = "pruning tools"
    elif len(names) == 1:
        label = f"{names[0]} tool"
    else:
        label = f"{', '.join(names[:-1])} or {names[-1]} tools"
    return (
        "<context-info>\n"
        f"Context management was just performed. Do NOT use the {label} again. "
        "A fresh list will be available after your next tool use.\n"
        "</context-info>"
    )
