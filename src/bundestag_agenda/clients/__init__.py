"""Clients for upstream data sources."""
from __future__ import annotations

from .bundestag import BundestagClient

__all__ = ["BundestagClient"]
