"""
Agenda API server

FastAPI front door: routes requests to the query planner and renderers,
wraps responses in the edge cache and runs the scheduled refresh.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from importlib import resources as package_resources
from typing import Dict, List, Optional
import json
import logging

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response

from ..caching import CachedResponse, cache_key
from ..config import AppConfig
from ..errors import FutureRangeError, InvalidQueryError, UpstreamUnavailable
from ..pipeline import AgendaQuery
from ..rendering import CalendarOptions, render
from ..runtime import AppResources, create_resources
from .scheduler import RefreshScheduler

LOGGER = logging.getLogger(__name__)


def get_resources(request: Request) -> AppResources:
    return request.app.state.resources


def _cached_response(entry: CachedResponse, *, hit: bool) -> Response:
    headers = {"X-Cache": "HIT" if hit else "MISS"}
    if entry.max_age:
        headers["Cache-Control"] = f"public, max-age={entry.max_age}"
    return Response(content=entry.body, media_type=entry.media_type, headers=headers)


def _documentation_page(prefix: str) -> str:
    template = package_resources.files(__package__).joinpath("static/index.html").read_text(encoding="utf8")
    return template.replace("{{prefix}}", prefix)


async def _serve_agenda(
    request: Request,
    fmt: str,
    query: AgendaQuery,
    calendar_options: Optional[CalendarOptions] = None,
    flags: Optional[Dict[str, bool]] = None,
) -> Response:
    resources = get_resources(request)
    params = {
        "year": query.year,
        "week": query.week,
        "month": query.month,
        "day": query.day,
        "status": query.status,
        **(flags or {}),
    }

    async def _render():
        items = await resources.planner.resolve(query)
        body, media_type = render(fmt, items, calendar_options)
        return body.encode("utf-8"), media_type

    entry, hit = await resources.cache.get_or_render(cache_key(request.url.path, params), _render)
    return _cached_response(entry, hit=hit)


def build_router(prefix: str) -> APIRouter:
    router = APIRouter(prefix=prefix)

    @router.get("/", response_class=HTMLResponse)
    async def documentation() -> Response:
        return HTMLResponse(_documentation_page(prefix))

    @router.get("/ical")
    @router.get("/ics")
    async def agenda_ical(
        request: Request,
        year: Optional[int] = Query(None),
        week: Optional[int] = Query(None, ge=1, le=53),
        month: Optional[int] = Query(None, ge=1, le=12),
        day: Optional[int] = Query(None, ge=1, le=31),
        status: Optional[str] = Query(None),
        na: bool = Query(False),
        na_alarm: bool = Query(False, alias="naAlarm"),
        show_sw: bool = Query(False, alias="showSW"),
    ) -> Response:
        options = get_resources(request).calendar_options(
            roll_calls=na, roll_call_alarm=na_alarm, session_weeks=show_sw
        )
        query = AgendaQuery(year=year, week=week, month=month, day=day, status=status)
        flags = {"na": na, "naAlarm": na_alarm, "showSW": show_sw}
        return await _serve_agenda(request, "ical", query, options, flags)

    def _structured(fmt: str):
        async def endpoint(
            request: Request,
            year: Optional[int] = Query(None),
            week: Optional[int] = Query(None, ge=1, le=53),
            month: Optional[int] = Query(None, ge=1, le=12),
            day: Optional[int] = Query(None, ge=1, le=31),
            status: Optional[str] = Query(None),
        ) -> Response:
            query = AgendaQuery(year=year, week=week, month=month, day=day, status=status)
            return await _serve_agenda(request, fmt, query)

        endpoint.__name__ = f"agenda_{fmt}"
        return endpoint

    for fmt in ("json", "xml", "csv"):
        router.add_api_route(f"/{fmt}", _structured(fmt), methods=["GET"])

    @router.get("/data-list")
    async def data_list(request: Request) -> Response:
        resources = get_resources(request)

        async def _render():
            listing = await collect_data_list(resources)
            return json.dumps(listing).encode("utf-8"), "application/json"

        entry, hit = await resources.cache.get_or_render(cache_key(request.url.path, {}), _render, listing=True)
        return _cached_response(entry, hit=hit)

    @router.get("/purge")
    async def purge(request: Request) -> Response:
        resources = get_resources(request)
        maintenance = resources.config.maintenance
        if not (maintenance.purge_cache or maintenance.purge_store):
            return RedirectResponse(url=f"{prefix}/")
        summary = await purge_everything(
            resources, cache=maintenance.purge_cache, store=maintenance.purge_store
        )
        return JSONResponse(summary)

    return router


async def collect_data_list(resources: AppResources) -> Dict[str, List[int]]:
    """Weeks with stored items per year, newest year first."""

    current_year = resources.pipeline.current_partition().year
    years = list(range(current_year, resources.config.agenda.earliest_year - 1, -1))
    listing = await resources.partitions.non_empty_weeks(years)
    return {str(year): listing[year] for year in years}


async def purge_everything(resources: AppResources, *, cache: bool, store: bool) -> Dict[str, int]:
    summary: Dict[str, int] = {}
    if cache:
        summary["cache_entries"] = await resources.cache.purge()
    if store:
        keys = await resources.store.list()
        for key in keys:
            await resources.store.delete(key)
        summary["store_keys"] = len(keys)
        LOGGER.info("Purged %s keys from the agenda store", len(keys))
    return summary


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FutureRangeError)
    async def _future(request: Request, exc: FutureRangeError) -> Response:
        return PlainTextResponse(exc.args[0], status_code=400)

    @app.exception_handler(InvalidQueryError)
    async def _invalid(request: Request, exc: InvalidQueryError) -> Response:
        return PlainTextResponse(exc.args[0], status_code=400)

    @app.exception_handler(UpstreamUnavailable)
    async def _upstream(request: Request, exc: UpstreamUnavailable) -> Response:
        LOGGER.warning("Upstream unavailable for %s: %s", request.url.path, exc)
        return PlainTextResponse(exc.args[0], status_code=502)


def create_app(config: AppConfig, *, resources: Optional[AppResources] = None) -> FastAPI:
    """Build the FastAPI application.

    Without ``resources`` the dependencies are assembled from ``config`` at
    startup and closed on shutdown.
    """

    prefix = config.server.path_prefix.rstrip("/")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = resources is None
        app.state.resources = resources or create_resources(config)
        scheduler: Optional[RefreshScheduler] = None
        if config.server.enable_scheduler:
            scheduler = RefreshScheduler(app.state.resources.pipeline, interval=config.server.refresh_interval)
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                await scheduler.stop()
            if owned:
                await app.state.resources.close()

    app = FastAPI(title="Bundestag Tagesordnung API", lifespan=lifespan)
    if resources is not None:
        app.state.resources = resources
    _install_error_handlers(app)

    if config.server.log_requests:

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            started = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception:
                LOGGER.error(
                    "%s %s -> ERROR (%.3fs)", request.method, request.url.path, time.perf_counter() - started
                )
                raise
            LOGGER.info(
                "%s %s -> %s (%.3fs)",
                request.method,
                request.url.path,
                response.status_code,
                time.perf_counter() - started,
            )
            return response

    app.include_router(build_router(prefix))
    return app


__all__ = ["collect_data_list", "create_app", "purge_everything"]
