"""Command line interface for running and maintaining the agenda service."""
from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional

from .config import AppConfig, load_config
from .runtime import create_resources

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tagesordnung des Bundestages als iCal/JSON/XML/CSV")
    parser.add_argument("--config", type=Path, help="Path to an explicit configuration file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API with the scheduled refresh")
    serve.add_argument("--host", help="Interface to bind, overrides server.host")
    serve.add_argument("--port", type=int, help="Port to bind, overrides server.port")

    subparsers.add_parser("refresh", help="Fetch the current week once and store any changes")

    purge = subparsers.add_parser("purge", help="Clear cached responses and/or the agenda store")
    purge.add_argument("--cache", action="store_true", help="Delete every indexed cached response")
    purge.add_argument("--store", action="store_true", help="Delete every key in the agenda store")
    return parser


def _configure_logging(config: AppConfig) -> None:
    level = getattr(logging, config.server.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


async def _refresh(config: AppConfig) -> None:
    resources = create_resources(config)
    try:
        result = await resources.pipeline.refresh_current_week()
        if result is not None:
            LOGGER.info("Current week holds %s items (changed: %s)", len(result.items), result.changed)
    finally:
        await resources.close()


async def _purge(config: AppConfig, *, cache: bool, store: bool) -> dict:
    from .server.app import purge_everything

    resources = create_resources(config)
    try:
        return await purge_everything(resources, cache=cache, store=store)
    finally:
        await resources.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    config = load_config(args.config)
    _configure_logging(config)

    if args.command == "serve":
        import uvicorn

        from .server import create_app

        uvicorn.run(
            create_app(config),
            host=args.host or config.server.host,
            port=args.port or config.server.port,
            access_log=False,
            log_level=config.server.log_level.lower(),
        )
        return 0
    if args.command == "refresh":
        asyncio.run(_refresh(config))
        return 0
    if args.command == "purge":
        if not (args.cache or args.store):
            parser.error("purge needs --cache and/or --store")
        summary = asyncio.run(_purge(config, cache=args.cache, store=args.store))
        LOGGER.info("Purge finished: %s", summary)
        return 0
    parser.error(f"Unknown command {args.command}")
    return 2


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
