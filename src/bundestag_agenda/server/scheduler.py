"""Periodic refresh of the current week's agenda."""
from __future__ import annotations

import asyncio
import contextlib
from typing import Optional
import logging

from ..pipeline import IngestPipeline

LOGGER = logging.getLogger(__name__)


class RefreshScheduler:
    """Runs :meth:`IngestPipeline.refresh_current_week` every ``interval`` seconds."""

    def __init__(self, pipeline: IngestPipeline, *, interval: float) -> None:
        self._pipeline = pipeline
        self._interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="agenda-refresh")
        LOGGER.info("Scheduled agenda refresh every %s seconds", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            try:
                await self._pipeline.refresh_current_week()
            except Exception:
                LOGGER.exception("Scheduled agenda refresh failed")
            await asyncio.sleep(self._interval)


__all__ = ["RefreshScheduler"]
