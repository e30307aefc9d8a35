# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Tests for pruning notification text and delivery."""

import pytest

from factories import FakeHost
from pruner.models import ModelInfo
from pruner.services.pruning.deduplication import DuplicateGroup
from pruner.services.pruning.notification import (
    Notifier,
    build_detailed_message,
    build_distillation_message,
    build_minimal_message,
    build_model_fallback_message,
    format_group_lines,
    group_by_tool,
)
from pruner.services.pruning.settings import ModelSelectionConfig, NotificationMode
from pruner.services.state.prune_set import SessionStats
from pruner.services.state.registry import ToolCallRecord


def _read(call_id: str, path: str) -> ToolCallRecord:
    return ToolCallRecord(call_id=call_id, tool="read", parameters={"filePath": path})


# ---------------------------------------------------------------------------
# Message builders
# ---------------------------------------------------------------------------


class TestMinimalMessage:
    """Tests for the single-line summary."""

    def test_total_includes_current_turn(self):
        """Verify the header counts committed and in-flight tokens."""
        stats = SessionStats(tokens_pruned_this_turn=200, total_tokens_pruned=1000)
        assert build_minimal_message(stats) == "▣ Pruning | ~1.2K tokens saved total"

    def test_reason_label(self):
        """Verify a known reason adds its label."""
        stats = SessionStats(tokens_pruned_this_turn=300)
        assert build_minimal_message(stats, "noise").endswith("[Noise Removal]")
        assert "[" not in build_minimal_message(stats, "unknown")


class TestGrouping:
    """Tests for grouping pruned ids by tool."""

    def test_group_by_tool(self):
        """Verify keys are grouped per tool in first-seen order."""
        metadata = {
            "a": _read("a", "/repo/a.ts"),
            "b": ToolCallRecord(call_id="b", tool="bash", parameters={"command": "ls"}),
            "c": _read("c", "/repo/c.ts"),
            "d": ToolCallRecord(call_id="d", tool="batch", parameters={"tool_calls": []}),
        }
        groups, unknown = group_by_tool(["a", "b", "c", "d", "zz"], metadata, "/repo")
        assert list(groups.items()) == [("read", ["a.ts", "c.ts"]), ("bash", ["ls"])]
        assert unknown == 1

    def test_group_lines_cap(self):
        """Verify groups list at most five keys and count the rest."""
        metadata = {f"c{i}": _read(f"c{i}", f"/f{i}") for i in range(7)}
        groups, _ = group_by_tool(list(metadata), metadata)
        lines = format_group_lines(groups)
        assert lines[0] == "  read (7):"
        assert len(lines) == 7
        assert lines[-1] == "    ... and 2 more"

    def test_single_item_inline(self):
        """Verify a single-key group renders on one line."""
        metadata = {"a": _read("a", "/repo/a.ts")}
        groups, _ = group_by_tool(["a"], metadata, "/repo")
        assert format_group_lines(groups) == ["  read: a.ts"]


class TestDetailedMessage:
    """Tests for the multi-line summary."""

    def test_analysis_only(self):
        """Verify header, pruned line and grouped tools."""
        stats = SessionStats(tokens_pruned_this_turn=500, total_tokens_pruned=1500)
        text = build_detailed_message(
            stats, ["a"], {"a": _read("a", "/repo/a.ts")}, reason="completion", working_directory="/repo"
        )
        assert text.splitlines() == [
            "▣ Pruning | ~2K tokens saved total",
            "",
            "▣ Pruned tools (~500 tokens) - Task Complete",
            "  read: a.ts",
        ]

    def test_duplicates_and_analysis(self):
        """Verify duplicate and analysis sections are labelled together."""
        stats = SessionStats(tokens_pruned_this_turn=100)
        group = DuplicateGroup(signature="read::x", tool="read", key="/repo/x.ts", call_ids=["d1", "d2", "d3"])
        text = build_detailed_message(
            stats,
            ["a"],
            {"a": _read("a", "/repo/a.ts")},
            duplicate_groups=[group],
            working_directory="/repo",
        )
        lines = text.splitlines()
        assert "Duplicates removed (2):" in lines
        assert "  read: x.ts (2× duplicate)" in lines
        assert "Analysis (1):" in lines

    def test_unknown_metadata(self):
        """Verify ids without records are tallied."""
        text = build_detailed_message(SessionStats(), ["x", "y"], {})
        assert text.endswith("  (2 tools with unknown metadata)")

    def test_distillation(self):
        """Verify extracted findings are listed with arrows."""
        assert build_distillation_message(["auth uses JWT", "db is sqlite"]) == (
            "▣ Extracted\n→ auth uses JWT\n→ db is sqlite"
        )

    def test_model_fallback(self):
        """Verify fallback and skipped wording."""
        selected = ModelInfo(provider_id="openai", model_id="gpt-5-mini")
        failed = ModelInfo(provider_id="xai", model_id="grok-x")
        assert "Using openai/gpt-5-mini" in build_model_fallback_message(selected, failed, skipped=False)
        assert "AI analysis skipped" in build_model_fallback_message(selected, failed, skipped=True)


# ---------------------------------------------------------------------------
# Notifier
# ---------------------------------------------------------------------------


class TestNotifier:
    """Tests for notification delivery through the host."""

    @pytest.mark.asyncio
    async def test_detailed_sent(self, pruning_settings):
        """Verify a detailed notification is posted with the agent."""
        host = FakeHost()
        notifier = Notifier(host, pruning_settings())
        sent = await notifier.notify_pruned(
            "ses_1", SessionStats(tokens_pruned_this_turn=10), ["a"], {"a": _read("a", "/repo/a.ts")}, agent="build"
        )
        assert sent
        assert host.sent[0]["agent"] == "build"
        assert "▣ Pruned tools" in host.sent[0]["text"]

    @pytest.mark.asyncio
    async def test_minimal_sent(self, pruning_settings):
        """Verify minimal mode posts only the header."""
        host = FakeHost()
        notifier = Notifier(host, pruning_settings(notification=NotificationMode.MINIMAL))
        await notifier.notify_pruned("ses_1", SessionStats(), ["a"], {}, reason="noise")
        assert host.sent[0]["text"] == "▣ Pruning | ~0 tokens saved total [Noise Removal]"

    @pytest.mark.asyncio
    async def test_off_and_empty(self, pruning_settings):
        """Verify nothing is sent when off or when nothing was pruned."""
        host = FakeHost()
        off = Notifier(host, pruning_settings(notification=NotificationMode.OFF))
        assert not await off.notify_pruned("ses_1", SessionStats(), ["a"], {})
        assert not await off.notify_distillation("ses_1", ["x"])
        assert not await Notifier(host, pruning_settings()).notify_pruned("ses_1", SessionStats(), [], {})
        assert host.sent == []

    @pytest.mark.asyncio
    async def test_send_failure_swallowed(self, pruning_settings, caplog):
        """Verify a host failure is logged and reported as not sent."""
        host = FakeHost()
        host.fail_send = True
        notifier = Notifier(host, pruning_settings())
        assert not await notifier.send("ses_1", "hello")
        assert "Failed to send notification" in caplog.text

    @pytest.mark.asyncio
    async def test_no_host(self, pruning_settings):
        """Verify sending without a host is a no-op."""
        assert not await Notifier(None, pruning_settings()).send("ses_1", "hello")

    @pytest.mark.asyncio
    async def test_model_fallback_respects_show_errors(self, pruning_settings):
        """Verify fallback notices are suppressed when errors are hidden."""
        host = FakeHost()
        settings = pruning_settings(model_selection=ModelSelectionConfig(show_errors=False))
        notifier = Notifier(host, settings)
        selected = ModelInfo(provider_id="openai", model_id="gpt-5-mini")
        failed = ModelInfo(provider_id="xai", model_id="grok-x")
        assert not await notifier.notify_model_fallback("ses_1", selected, failed, skipped=False)
        assert host.sent == []
