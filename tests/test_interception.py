# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Tests for the interception layer."""

import copy

import pytest
import pytest_asyncio

from factories import FakeHost
from pruner.models import ModelInfo
from pruner.services.interception import handler as handler_module
from pruner.services.interception.handler import (
    InterceptionLayer,
    build_guidance,
    build_prunable_lines,
)
from pruner.services.prompts.base import (
    NUDGE_INSTRUCTION,
    PRUNED_OUTPUT_PLACEHOLDER,
    SYSTEM_PROMPT_ADDENDUM,
)
from pruner.services.pruning.settings import NudgeConfig


def _chat_body():
    return {
        "model": "gpt-4o",
        "messages": [
            {"role": "system", "content": "You are a coding agent."},
            {"role": "user", "content": "fix the bug"},
            {
                "role": "assistant",
                "tool_calls": [
                    {"id": "call_a", "type": "function", "function": {"name": "read", "arguments": "{}"}},
                    {"id": "call_b", "type": "function", "function": {"name": "read", "arguments": "{}"}},
                ],
            },
            {"role": "tool", "tool_call_id": "call_a", "content": "contents"},
            {"role": "tool", "tool_call_id": "call_b", "content": "contents"},
        ],
    }


@pytest_asyncio.fixture
async def synced(session_manager, transcript, basic_raw_transcript):
    """Manager with ses_test synced from the basic transcript and no host."""
    manager = session_manager()
    state = await manager.sync("ses_test", transcript(basic_raw_transcript))
    return manager, state


# ---------------------------------------------------------------------------
# Guidance text
# ---------------------------------------------------------------------------


class TestGuidance:
    """Tests for the prunable list and cooldown text."""

    @pytest.mark.asyncio
    async def test_prunable_lines(self, synced):
        """Verify candidates are numbered from 1 with shortened keys."""
        manager, state = synced
        lines = build_prunable_lines(state, manager.settings)
        assert lines == ["1: read, src/a.ts", "2: read, src/a.ts", '3: grep, "TODO" in src']

    @pytest.mark.asyncio
    async def test_numbers_stable_after_prune(self, synced):
        """Verify a pruned call disappears without renumbering the rest."""
        manager, state = synced
        build_prunable_lines(state, manager.settings)
        state.apply_prune(["call_a"])
        lines = build_prunable_lines(state, manager.settings)
        assert lines == ["2: read, src/a.ts", '3: grep, "TODO" in src']

    @pytest.mark.asyncio
    async def test_cooldown_replaces_list(self, synced):
        """Verify the cooldown notice is used right after a prune."""
        manager, state = synced
        state.guidance.mark_pruned()
        text = build_guidance(state, manager.settings)
        assert text.startswith("<context-info>")
        assert "<prunable-tools>" not in text

    @pytest.mark.asyncio
    async def test_nudge_appended(self, session_manager, pruning_settings, transcript, basic_raw_transcript):
        """Verify the nudge follows the list once the counter passes the frequency."""
        settings = pruning_settings(nudge=NudgeConfig(frequency=2))
        manager = session_manager(settings=settings)
        state = await manager.sync("ses_test", transcript(basic_raw_transcript))
        text = build_guidance(state, settings)
        assert text.startswith("<prunable-tools>")
        assert text.endswith(NUDGE_INSTRUCTION)

    @pytest.mark.asyncio
    async def test_no_candidates(self, session_manager):
        """Verify there is no guidance without prunable tools."""
        manager = session_manager()
        assert build_guidance(manager.get("s1"), manager.settings) == ""


# ---------------------------------------------------------------------------
# InterceptionLayer.process
# ---------------------------------------------------------------------------


class TestInterceptionLayer:
    """Tests for outbound request rewriting."""

    @pytest.mark.asyncio
    async def test_rewrites_copy_only(self, synced):
        """Verify pruned outputs are replaced in a copy and the input is untouched."""
        manager, state = synced
        state.apply_prune(["call_a"])
        body = _chat_body()
        before = copy.deepcopy(body)

        modified, result = await InterceptionLayer(manager, manager.settings).process("ses_test", body)

        assert modified
        assert body == before
        assert result is not body
        messages = result["messages"]
        assert messages[3]["content"] == PRUNED_OUTPUT_PLACEHOLDER
        assert messages[4]["content"] == "contents"
        assert messages[1]["content"].endswith(SYSTEM_PROMPT_ADDENDUM)
        assert messages[-1]["role"] == "user"
        assert messages[-1]["content"].startswith("<prunable-tools>")

    @pytest.mark.asyncio
    async def test_cooldown_injected(self, synced):
        """Verify the cooldown notice replaces the list after a prune."""
        manager, state = synced
        state.apply_prune(["call_a"])
        state.guidance.mark_pruned()
        _, result = await InterceptionLayer(manager, manager.settings).process("ses_test", _chat_body())
        assert result["messages"][-1]["content"].startswith("<context-info>")

    @pytest.mark.asyncio
    async def test_protected_tool_not_replaced(self, synced):
        """Verify protected tool outputs stay even when in the prune set."""
        manager, state = synced
        state.apply_prune(["call_c"])
        body = _chat_body()
        body["messages"].append({"role": "tool", "tool_call_id": "call_c", "content": "written"})
        _, result = await InterceptionLayer(manager, manager.settings).process("ses_test", body)
        assert result["messages"][5]["content"] == "written"

    @pytest.mark.asyncio
    async def test_nothing_to_do_returns_original(self, session_manager, pruning_settings, transcript, basic_raw_transcript):
        """Verify the original object is returned when nothing changes."""
        settings = pruning_settings(guidance_enabled=False)
        manager = session_manager(settings=settings)
        await manager.sync("ses_test", transcript(basic_raw_transcript))
        body = _chat_body()
        modified, result = await InterceptionLayer(manager, settings).process("ses_test", body)
        assert not modified
        assert result is body

    @pytest.mark.asyncio
    async def test_subagent_untouched(self, synced):
        """Verify sub-agent sessions pass through."""
        manager, state = synced
        state.is_subagent = True
        state.apply_prune(["call_a"])
        body = _chat_body()
        assert await InterceptionLayer(manager, manager.settings).process("ses_test", body) == (False, body)

    @pytest.mark.asyncio
    async def test_unknown_format(self, synced):
        """Verify bodies no adapter recognises pass through."""
        manager, _ = synced
        body = {"prompt": "hello"}
        assert await InterceptionLayer(manager, manager.settings).process("ses_test", body) == (False, body)

    @pytest.mark.asyncio
    async def test_disabled(self, session_manager, pruning_settings):
        """Verify the master switch disables rewriting."""
        settings = pruning_settings(enabled=False)
        body = _chat_body()
        layer = InterceptionLayer(session_manager(settings=settings), settings)
        assert await layer.process("ses_test", body) == (False, body)

    @pytest.mark.asyncio
    async def test_no_session(self, session_manager):
        """Verify requests without any known session pass through."""
        manager = session_manager()
        body = _chat_body()
        assert await InterceptionLayer(manager, manager.settings).process(None, body) == (False, body)

    @pytest.mark.asyncio
    async def test_last_seen_session_fallback(self, synced):
        """Verify the last session seen via chat params is used."""
        manager, state = synced
        state.apply_prune(["call_a"])
        manager.record_chat_params("ses_test", ModelInfo(provider_id="openai", model_id="gpt-4o"))
        modified, result = await InterceptionLayer(manager, manager.settings).process(None, _chat_body())
        assert modified
        assert result["messages"][3]["content"] == PRUNED_OUTPUT_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_syncs_from_host(self, session_manager, basic_raw_transcript):
        """Verify the transcript is fetched from the host before rewriting."""
        host = FakeHost(basic_raw_transcript)
        manager = session_manager(host=host)
        await InterceptionLayer(manager, manager.settings).process("ses_test", _chat_body())
        assert host.get_messages_calls == 1
        assert len(manager.peek("ses_test").registry) == 4

    @pytest.mark.asyncio
    async def test_host_failure_uses_cached_state(self, session_manager, transcript, basic_raw_transcript):
        """Verify a failing host falls back to the state already held."""
        host = FakeHost(basic_raw_transcript)
        manager = session_manager(host=host)
        state = await manager.sync("ses_test", transcript(basic_raw_transcript))
        state.apply_prune(["call_a"])
        host.fail_messages = True

        modified, result = await InterceptionLayer(manager, manager.settings).process("ses_test", _chat_body())
        assert modified
        assert result["messages"][3]["content"] == PRUNED_OUTPUT_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_errors_pass_body_through(self, synced, monkeypatch):
        """Verify an internal failure never blocks the request."""
        manager, _ = synced

        def boom(*args, **kwargs):
            raise RuntimeError("broken")

        monkeypatch.setattr(handler_module, "build_guidance", boom)
        body = _chat_body()
        assert await InterceptionLayer(manager, manager.settings).process("ses_test", body) == (False, body)

    @pytest.mark.asyncio
    async def test_gemini_body(self, synced):
        """Verify position-addressed bodies are rewritten through the index."""
        manager, state = synced
        state.apply_prune(["call_b"])
        body = {
            "contents": [
                {"role": "user", "parts": [{"text": "fix the bug"}]},
                {
                    "role": "user",
                    "parts": [
                        {"functionResponse": {"name": "read", "response": {"output": "a"}}},
                        {"functionResponse": {"name": "read", "response": {"output": "b"}}, "thoughtSignature": "s"},
                    ],
                },
            ]
        }
        modified, result = await InterceptionLayer(manager, manager.settings).process("ses_test", body)
        assert modified
        parts = result["contents"][1]["parts"]
        assert parts[0]["functionResponse"]["response"] == {"output": "a"}
        assert parts[1]["functionResponse"]["response"]["content"] == PRUNED_OUTPUT_PLACEHOLDER
        assert parts[1]["thoughtSignature"] == "s"
