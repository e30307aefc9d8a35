# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Shared test fixtures for the context-pruner test suite."""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from factories import FakeCatalog, FakeHost, raw_message, read_call, step_start, text_part, tool_part
from pruner.schemas.transcript import TranscriptMessage, parse_transcript
from pruner.services.pruning.janitor import PruneAnalysis
from pruner.services.pruning.settings import NotificationMode, PruningSettings
from pruner.services.state.session import SessionManager


# ---------------------------------------------------------------------------
# Transcripts
# ---------------------------------------------------------------------------


@pytest.fixture
def transcript():
    """Factory fixture: list of raw messages to parsed transcript."""

    def _factory(raw: List[Dict[str, Any]]) -> List[TranscriptMessage]:
        return parse_transcript(raw)

    return _factory


@pytest.fixture
def basic_raw_transcript() -> List[Dict[str, Any]]:
    """User prompt, then two reads of the same file and a write."""
    return [
        raw_message(
            "msg_1",
            role="user",
            parts=[text_part("fix the bug")],
            created=1000,
            model={"providerID": "openai", "modelID": "gpt-4o"},
            agent="build",
        ),
        raw_message(
            "msg_2",
            parts=[
                step_start(),
                read_call("call_a", "/repo/src/a.ts"),
                read_call("call_b", "/repo/src/a.ts"),
            ],
            created=2000,
        ),
        raw_message(
            "msg_3",
            parts=[
                step_start(),
                tool_part("call_c", "write", {"filePath": "/repo/src/b.ts", "content": "x"}),
                tool_part("call_d", "grep", {"pattern": "TODO", "path": "/repo/src"}),
            ],
            created=3000,
        ),
    ]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def pruning_settings():
    """Factory fixture for PruningSettings with test-friendly defaults."""

    def _factory(**overrides: Any) -> PruningSettings:
        values: Dict[str, Any] = {
            "notification": NotificationMode.DETAILED,
            "working_directory": "/repo",
        }
        values.update(overrides)
        return PruningSettings(**values)

    return _factory


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_host():
    """Factory fixture for FakeHost instances."""

    def _factory(raw_messages=None, session_info=None) -> FakeHost:
        return FakeHost(raw_messages, session_info)

    return _factory


@pytest.fixture
def fake_catalog():
    """Factory fixture for FakeCatalog instances."""

    def _factory(providers=None, failing=None, model=None) -> FakeCatalog:
        return FakeCatalog(providers, failing, model)

    return _factory


@pytest.fixture
def mock_structured_llm():
    """Factory fixture for a chat model whose structured output is fixed."""

    def _factory(ids: Optional[List[str]] = None, reasoning: str = "obsolete") -> MagicMock:
        structured = MagicMock()
        structured.ainvoke = AsyncMock(
            return_value=PruneAnalysis(pruned_tool_call_ids=ids or [], reasoning=reasoning)
        )
        llm = MagicMock()
        llm.with_structured_output = MagicMock(return_value=structured)
        return llm

    return _factory


@pytest.fixture
def session_manager(pruning_settings):
    """Factory fixture for SessionManager instances."""

    def _factory(settings: Optional[PruningSettings] = None, store=None, host=None) -> SessionManager:
        return SessionManager(settings or pruning_settings(), store=store, host=host)

    return _factory
