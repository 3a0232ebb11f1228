"""HTTP client for the conference-week agenda pages on bundestag.de."""

from __future__ import annotations

import asyncio
from typing import Dict, Optional
import logging

import httpx

from ..errors import UpstreamUnavailable

LOGGER = logging.getLogger(__name__)


class BundestagClient:
    """Fetches the raw HTML of one conference week.

    Failed requests are not retried; callers decide whether a failure aborts
    a request or is skipped until the next refresh.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_concurrency: int = 8,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        headers: Dict[str, str] = {"Accept": "text/html"}
        if user_agent:
            headers["User-Agent"] = user_agent
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    # --- public API -----------------------------------------------------
    async def fetch_agenda_page(self, year: int, week: int) -> str:
        """Return the agenda markup for ISO ``week`` of ``year``."""

        params = {"year": str(year), "week": str(week)}
        async with self._semaphore:
            try:
                response = await self._client.get(self._base_url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                LOGGER.warning("bundestag.de returned status %s for agenda %s/%s", status, year, week)
                raise UpstreamUnavailable(
                    f"bundestag.de hat die Anfrage mit Status {status} abgelehnt.",
                    url=str(exc.request.url),
                    status_code=status,
                ) from exc
            except httpx.HTTPError as exc:
                LOGGER.warning("HTTP error while requesting agenda %s/%s: %s", year, week, exc)
                raise UpstreamUnavailable(
                    f"Die Tagesordnung für KW {week}/{year} konnte nicht abgerufen werden.",
                    url=self._base_url,
                ) from exc
        return response.text

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""

        await self._client.aclose()

    async def __aenter__(self) -> "BundestagClient":  # pragma: no cover - trivial
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        await self.aclose()


__all__ = ["BundestagClient"]
