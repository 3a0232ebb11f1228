"""Configuration helpers for the agenda service."""
from __future__ import annotations

from .settings import (
    AgendaConfig,
    AppConfig,
    CacheConfig,
    MaintenanceConfig,
    ServerConfig,
    StorageConfig,
    UpstreamConfig,
    load_config,
    resolve_config_path,
    save_config,
)

__all__ = [
    "AgendaConfig",
    "AppConfig",
    "CacheConfig",
    "MaintenanceConfig",
    "ServerConfig",
    "StorageConfig",
    "UpstreamConfig",
    "load_config",
    "resolve_config_path",
    "save_config",
]
