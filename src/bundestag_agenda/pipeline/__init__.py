"""Ingestion, change detection and query planning."""
from __future__ import annotations

from .ingest import AgendaSource, IngestPipeline
from .planner import AgendaQuery, QueryPlanner, filter_by_status
from .reconcile import ReconcileResult, diff_items, reconcile

__all__ = [
    "AgendaQuery",
    "AgendaSource",
    "IngestPipeline",
    "QueryPlanner",
    "ReconcileResult",
    "diff_items",
    "filter_by_status",
    "reconcile",
]
