# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Application configuration using pydantic-settings.
"""

import os
from pathlib import Path
from typing import Dict, List

from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Tool constants
# ---------------------------------------------------------------------------

# Tools whose outputs are never pruned unless the operator overrides the list.
DEFAULT_PROTECTED_TOOLS: List[str] = [
    "task",
    "todowrite",
    "todoread",
    "discard",
    "extract",
    "batch",
    "write",
    "edit",
    "plan_enter",
    "plan_exit",
]

# Tools exposed to the acting model for self-directed pruning.
PRUNE_TOOL_NAMES = frozenset({"discard", "extract", "prune"})


def _default_storage_dir() -> str:
    base = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return str(Path(base) / "context-pruner" / "sessions")


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings.

    Attributes:
        APP_NAME (str): Display name of the application.
        DEBUG (bool): Whether to enable debug logging.
        CORS_ORIGINS (str): Comma-separated list of allowed CORS origins.
        HOST_URL (str): Base URL of the host application's session API.
        HOST_TIMEOUT_SECONDS (float): Timeout for host session API calls.
        STORAGE_DIR (str): Directory where per-session pruning state is stored.
        WORKING_DIRECTORY (str): Project directory used to shorten paths in
            notifications.
        PRUNER_MODEL (str): Optional ``provider/model`` used for obsolescence
            analysis. Empty means "use the session model".
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Context Pruner"
    DEBUG: bool = False
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:4096"

    # Host application (session/message RPC)
    HOST_URL: str = "http://localhost:4096"
    HOST_TIMEOUT_SECONDS: float = 10.0

    # Persistence
    STORAGE_DIR: str = _default_storage_dir()
    WORKING_DIRECTORY: str = ""

    # Provider credentials
    OPENAI_API_KEY: str = ""
    GOOGLE_API_KEY: str = ""
    DEEPSEEK_API_KEY: str = ""
    XAI_API_KEY: str = ""
    DASHSCOPE_API_KEY: str = ""
    ZAI_API_KEY: str = ""

    # Pruning
    PRUNER_ENABLED: bool = True
    PRUNER_MODEL: str = ""
    PRUNER_STRICT_MODEL_SELECTION: bool = False
    PRUNER_SHOW_MODEL_ERRORS: bool = True
    PRUNER_NOTIFICATION: str = "detailed"  # off | minimal | detailed
    PRUNER_PROTECTED_TOOLS: str = ",".join(DEFAULT_PROTECTED_TOOLS)
    PRUNER_PROTECTED_FILE_PATTERNS: str = ""
    PRUNER_DEDUPLICATION_ENABLED: bool = True
    PRUNER_GUIDANCE_ENABLED: bool = True
    PRUNER_NUDGE_ENABLED: bool = True
    PRUNER_NUDGE_FREQUENCY: int = 10
    PRUNER_TURN_PROTECTION_TURNS: int = 0
    PRUNER_ON_IDLE_STRATEGIES: str = "deduplication,ai-analysis"
    PRUNER_ANALYSIS_TIMEOUT_SECONDS: float = 60.0
    PRUNER_PROBE_TIMEOUT_SECONDS: float = 10.0
    PRUNER_TOOL_CACHE_SIZE: int = 500
    PRUNER_MIN_MESSAGES: int = 3

    def get_cors_origins(self) -> List[str]:
        """Parse CORS origins as list.

        Returns:
            List[str]: Origin URL strings split from ``CORS_ORIGINS``.
        """
        return _split_csv(self.CORS_ORIGINS)

    def get_protected_tools(self) -> List[str]:
        """Protected tool names as a list."""
        return _split_csv(self.PRUNER_PROTECTED_TOOLS)

    def get_protected_file_patterns(self) -> List[str]:
        """Protected file glob patterns as a list."""
        return _split_csv(self.PRUNER_PROTECTED_FILE_PATTERNS)

    def get_on_idle_strategies(self) -> List[str]:
        """Strategies run by the idle trigger."""
        return _split_csv(self.PRUNER_ON_IDLE_STRATEGIES)

    def get_provider_keys(self) -> Dict[str, str]:
        """Provider id to API key, for providers with credentials configured.

        Returns:
            Dict[str, str]: Only providers whose key is non-empty.
        """
        keys = {
            "openai": self.OPENAI_API_KEY,
            "google": self.GOOGLE_API_KEY,
            "deepseek": self.DEEPSEEK_API_KEY,
            "xai": self.XAI_API_KEY,
            "alibaba": self.DASHSCOPE_API_KEY,
            "zai": self.ZAI_API_KEY,
        }
        return {provider: key for provider, key in keys.items() if key}


settings = Settings()
