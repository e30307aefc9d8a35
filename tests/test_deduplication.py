# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Tests for signature-based duplicate detection."""

from factories import raw_message, read_call, tool_part
from pruner.services.pruning.deduplication import detect_duplicates, tool_signature
from pruner.services.state.registry import ToolRegistry


def _registry(transcript, parts):
    registry = ToolRegistry()
    registry.sync(transcript([raw_message("m", parts=parts)]))
    return registry


# ---------------------------------------------------------------------------
# tool_signature
# ---------------------------------------------------------------------------


class TestToolSignature:
    """Tests for canonical signature computation."""

    def test_key_order_ignored(self):
        """Verify object key order does not change the signature."""
        assert tool_signature("grep", {"a": 1, "b": {"y": 2, "x": 1}}) == tool_signature(
            "grep", {"b": {"x": 1, "y": 2}, "a": 1}
        )

    def test_null_fields_dropped(self):
        """Verify top-level null values are ignored."""
        assert tool_signature("read", {"filePath": "/a", "offset": None}) == tool_signature(
            "read", {"filePath": "/a"}
        )

    def test_array_order_kept(self):
        """Verify arrays are compared in their original order."""
        assert tool_signature("x", {"v": [1, 2]}) != tool_signature("x", {"v": [2, 1]})

    def test_tool_name_part_of_signature(self):
        """Verify identical parameters on different tools do not match."""
        assert tool_signature("read", {"filePath": "/a"}) != tool_signature("write", {"filePath": "/a"})

    def test_no_parameters(self):
        """Verify a missing payload yields the bare tool name."""
        assert tool_signature("todoread", None) == "todoread"

    def test_empty_parameters_encoded(self):
        """Verify an empty object keeps the "::{}" suffix."""
        assert tool_signature("todoread", {}) == "todoread::{}"
        assert tool_signature("todoread", {"x": None}) == "todoread::{}"


# ---------------------------------------------------------------------------
# detect_duplicates
# ---------------------------------------------------------------------------


class TestDetectDuplicates:
    """Tests for duplicate grouping over the registry."""

    def test_keeps_most_recent(self, transcript):
        """Verify three identical calls yield the first two as candidates."""
        registry = _registry(
            transcript,
            [
                read_call("a", "/repo/x.ts"),
                tool_part("b", "read", {"filePath": "/repo/x.ts", "limit": None}),
                read_call("c", "/repo/x.ts"),
            ],
        )
        result = detect_duplicates(registry, ["a", "b", "c"], [])
        assert result.prune_candidates == ["a", "b"]
        assert result.groups[0].call_ids[-1] == "c"

    def test_simple_duplicate_scenario(self, transcript):
        """Verify two reads of one file and a write yield only the older read."""
        registry = _registry(
            transcript,
            [
                read_call("t1", "a.ts"),
                read_call("t2", "a.ts"),
                tool_part("t3", "write", {"filePath": "b.ts"}),
            ],
        )
        result = detect_duplicates(registry, ["t1", "t2", "t3"], [])
        assert result.prune_candidates == ["t1"]

    def test_protected_tool_not_grouped(self, transcript):
        """Verify a protected tool is neither a candidate nor a group member."""
        registry = _registry(
            transcript,
            [
                read_call("t1", "a.ts"),
                tool_part("t2", "view", {"filePath": "a.ts"}),
                tool_part("t3", "write", {"filePath": "b.ts"}),
            ],
        )
        result = detect_duplicates(registry, ["t1", "t2", "t3"], ["view"])
        assert result.prune_candidates == []
        assert result.groups == []

    def test_protected_duplicates_ignored(self, transcript):
        """Verify duplicates of a protected tool are never candidates."""
        registry = _registry(
            transcript,
            [tool_part("t1", "todowrite", {"todos": []}), tool_part("t2", "todowrite", {"todos": []})],
        )
        assert detect_duplicates(registry, ["t1", "t2"], ["todowrite"]).prune_candidates == []

    def test_only_unpruned_ids_considered(self, transcript):
        """Verify ids outside the input list are not grouped."""
        registry = _registry(
            transcript,
            [read_call("a", "/x"), read_call("b", "/x"), read_call("c", "/x")],
        )
        result = detect_duplicates(registry, ["b", "c"], [])
        assert result.prune_candidates == ["b"]

    def test_unknown_ids_skipped(self, transcript):
        """Verify ids missing from the registry are skipped."""
        registry = _registry(transcript, [read_call("a", "/x")])
        result = detect_duplicates(registry, ["ghost", "a"], [])
        assert result.prune_candidates == []

    def test_group_reporting_fields(self, transcript):
        """Verify groups carry the tool name and parameter key."""
        registry = _registry(transcript, [read_call("a", "/x"), read_call("b", "/x")])
        group = detect_duplicates(registry, ["a", "b"], []).groups[0]
        assert group.tool == "read"
        assert group.key == "/x"
        assert group.call_ids == ["a", "b"]
        assert group.pruned_ids == ["a"]

    def test_does_not_mutate_registry(self, transcript):
        """Verify detection leaves the registry and input list untouched."""
        registry = _registry(transcript, [read_call("a", "/x"), read_call("b", "/x")])
        ids = ["a", "b"]
        detect_duplicates(registry, ids, [])
        assert ids == ["a", "b"]
        assert registry.ids() == ["a", "b"]

    def test_deterministic(self, transcript):
        """Verify repeated runs produce identical output."""
        registry = _registry(
            transcript,
            [read_call("a", "/x"), read_call("b", "/y"), read_call("c", "/x"), read_call("d", "/y")],
        )
        first = detect_duplicates(registry, ["a", "b", "c", "d"], [])
        second = detect_duplicates(registry, ["a", "b", "c", "d"], [])
        assert first.prune_candidates == second.prune_candidates == ["a", "b"]
