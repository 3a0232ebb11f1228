"""HTTP surface of the agenda service."""
from __future__ import annotations

from .app import create_app
from .scheduler import RefreshScheduler

__all__ = ["RefreshScheduler", "create_app"]
