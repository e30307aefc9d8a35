# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Tests for process settings and their conversion to engine settings."""

from pruner.config import DEFAULT_PROTECTED_TOOLS, Settings
from pruner.services.pruning.settings import NotificationMode, PruningSettings


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


class TestSettings:
    """Tests for the list helpers on Settings."""

    def test_csv_helpers(self):
        """Verify comma-separated values are split and blanks dropped."""
        settings = _settings(
            CORS_ORIGINS="http://a, http://b,",
            PRUNER_PROTECTED_FILE_PATTERNS="*.env, secrets/*",
            PRUNER_ON_IDLE_STRATEGIES="deduplication",
        )
        assert settings.get_cors_origins() == ["http://a", "http://b"]
        assert settings.get_protected_file_patterns() == ["*.env", "secrets/*"]
        assert settings.get_on_idle_strategies() == ["deduplication"]

    def test_default_protected_tools(self):
        """Verify the default protected list is used when unset."""
        assert _settings().get_protected_tools() == DEFAULT_PROTECTED_TOOLS

    def test_provider_keys(self):
        """Verify only configured providers are returned."""
        settings = _settings(OPENAI_API_KEY="sk-1", DASHSCOPE_API_KEY="ds-1", GOOGLE_API_KEY="")
        assert settings.get_provider_keys() == {"openai": "sk-1", "alibaba": "ds-1"}


class TestPruningSettingsFromSettings:
    """Tests for PruningSettings.from_settings."""

    def test_values_mapped(self):
        """Verify process settings reach the nested engine settings."""
        pruning = PruningSettings.from_settings(
            _settings(
                PRUNER_MODEL="openai/gpt-4o-mini",
                PRUNER_STRICT_MODEL_SELECTION=True,
                PRUNER_NOTIFICATION="Minimal",
                PRUNER_NUDGE_FREQUENCY=4,
                PRUNER_TURN_PROTECTION_TURNS=2,
                PRUNER_PROTECTED_TOOLS="task,write",
                WORKING_DIRECTORY="/repo",
            )
        )
        assert pruning.model_selection.model == "openai/gpt-4o-mini"
        assert pruning.model_selection.strict
        assert pruning.notification == NotificationMode.MINIMAL
        assert pruning.nudge.frequency == 4
        assert pruning.turn_protection.enabled
        assert pruning.protected_tools == frozenset({"task", "write"})
        assert pruning.working_directory == "/repo"

    def test_empty_model_is_none(self):
        """Verify an empty model setting means the session model is used."""
        assert PruningSettings.from_settings(_settings()).model_selection.model is None

    def test_unknown_notification_mode(self):
        """Verify an unknown mode falls back to detailed."""
        pruning = PruningSettings.from_settings(_settings(PRUNER_NOTIFICATION="loud"))
        assert pruning.notification == NotificationMode.DETAILED

    def test_unknown_strategies_dropped(self):
        """Verify unknown idle strategies are filtered out."""
        pruning = PruningSettings.from_settings(
            _settings(PRUNER_ON_IDLE_STRATEGIES="deduplication,supersede-writes")
        )
        assert pruning.idle_strategies == ("deduplication",)


class TestFileProtection:
    """Tests for protected file patterns."""

    def test_patterns(self):
        """Verify full paths and basenames are matched."""
        settings = PruningSettings(protected_file_patterns=("*.env", "/repo/secrets/*"))
        assert settings.is_file_protected({"filePath": "/repo/.env"})
        assert settings.is_file_protected({"path": "/repo/secrets/key"})
        assert not settings.is_file_protected({"filePath": "/repo/src/a.ts"})
        assert not settings.is_file_protected("not a mapping")

    def test_no_patterns(self):
        """Verify nothing is protected without patterns."""
        assert not PruningSettings().is_file_protected({"filePath": "/repo/.env"})
