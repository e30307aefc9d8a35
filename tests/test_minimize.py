# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Tests for the minimized analysis transcript and prompt."""

from factories import raw_message, read_call, step_start, text_part, tool_part
from pruner.services.prompts.base import ALREADY_PRUNED_SENTINEL, PROTECTED_SENTINEL
from pruner.services.pruning.minimize import build_analysis_prompt, minimize_transcript


class TestMinimizeTranscript:
    """Tests for minimize_transcript."""

    def test_structural_parts_dropped(self, transcript, basic_raw_transcript):
        """Verify step markers never reach the analyzer."""
        result = minimize_transcript(transcript(basic_raw_transcript), [], [])
        part_types = {p["type"] for m in result for p in m["parts"]}
        assert part_types == {"text", "tool"}

    def test_sentinels(self, transcript, basic_raw_transcript):
        """Verify pruned and protected ids are masked."""
        result = minimize_transcript(transcript(basic_raw_transcript), ["CALL_A"], ["call_c"])
        by_id = [p["toolCallID"] for m in result for p in m["parts"] if p["type"] == "tool"]
        assert by_id == [ALREADY_PRUNED_SENTINEL, "call_b", PROTECTED_SENTINEL, "call_d"]

    def test_pruned_output_hidden(self, transcript):
        """Verify an already-pruned output is replaced by the sentinel."""
        messages = transcript([raw_message("m", parts=[read_call("c1", "/a", output="secret")])])
        part = minimize_transcript(messages, ["c1"], [])[0]["parts"][0]
        assert part["output"] == ALREADY_PRUNED_SENTINEL

    def test_input_reduction(self, transcript):
        """Verify mutating tools keep full input and readers keep only the path."""
        messages = transcript(
            [
                raw_message(
                    "m",
                    parts=[
                        tool_part("w", "edit", {"filePath": "/a", "oldString": "x", "newString": "y"}),
                        tool_part("r", "read", {"filePath": "/a", "offset": 10}),
                        tool_part("b", "batch", {"tool_calls": [{"tool": "read"}, {"tool": "grep"}]}),
                    ],
                )
            ]
        )
        parts = minimize_transcript(messages, [], [])[0]["parts"]
        assert parts[0]["input"] == {"filePath": "/a", "oldString": "x", "newString": "y"}
        assert parts[1]["input"] == {"filePath": "/a"}
        assert parts[2]["input"] == {"batch_summary": "2 tool calls", "tools": ["read", "grep"]}

    def test_error_and_reasoning(self, transcript):
        """Verify errors are kept and reasoning is shortened."""
        messages = transcript(
            [
                raw_message(
                    "m",
                    parts=[
                        {"type": "reasoning", "text": "r" * 500},
                        tool_part("e", "bash", {"command": "make"}, status="error", error="exit 2"),
                    ],
                )
            ]
        )
        parts = minimize_transcript(messages, [], [])[0]["parts"]
        assert parts[0] == {"type": "reasoning", "text": "r" * 200, "textLength": 500}
        assert parts[1]["error"] == "exit 2"
        assert "output" not in parts[1]

    def test_ignored_text_and_empty_messages_dropped(self, transcript):
        """Verify ignored text is skipped and empty messages vanish."""
        messages = transcript(
            [
                raw_message("m1", role="user", parts=[text_part("notice", ignored=True)]),
                raw_message("m2", parts=[step_start()]),
                raw_message("m3", role="user", parts=[text_part("hi")]),
            ]
        )
        assert [m["id"] for m in minimize_transcript(messages, [], [])] == ["m3"]


class TestAnalysisPrompt:
    """Tests for build_analysis_prompt."""

    def test_prompt_lists_candidates(self, transcript, basic_raw_transcript):
        """Verify the candidate ids and history are embedded in the prompt."""
        prompt = build_analysis_prompt(transcript(basic_raw_transcript), ["call_b", "call_d"], [], ["call_c"])
        assert "call_b, call_d" in prompt
        assert PROTECTED_SENTINEL in prompt
        assert "fix the bug" in prompt
