# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Context pruner - tool-output garbage collection for agentic sessions."""

__version__ = "0.1.0"
