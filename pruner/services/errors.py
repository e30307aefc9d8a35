# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Exception types raised inside the pruning engine."""


class PrunerError(Exception):
    """Base class for pruning engine errors."""


class HostError(PrunerError):
    """The host session API failed (transcript fetch, metadata, send)."""


class ModelUnavailableError(PrunerError):
    """A single candidate model could not be obtained."""

    def __init__(self, provider_id: str, model_id: str, reason: str = "") -> None:
        self.provider_id = provider_id
        self.model_id = model_id
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Model {provider_id}/{model_id} unavailable{detail}")


class NoModelAvailableError(PrunerError):
    """Model selection exhausted every candidate."""

    def __init__(self) -> None:
        super().__init__(
            "No available models for analysis. "
            "Please authenticate with at least one provider."
        )


class PersistenceError(PrunerError):
    """Session state could not be written to or read from disk."""
