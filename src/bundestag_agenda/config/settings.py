"""Application configuration helpers for the agenda service."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar, get_type_hints


_DEFAULT_CONFIG_LOCATIONS = (
    Path("bt-agenda.json"),
    Path.home() / ".config" / "bt-agenda" / "config.json",
)

_ENV_PREFIX = "BTTO_"


@dataclass(frozen=True, slots=True)
class UpstreamConfig:
    """Where and how the agenda pages are fetched from bundestag.de."""

    base_url: str = "https://www.bundestag.de/apps/plenar/plenar/conferenceweekDetail.form"
    article_base_url: str = "https://bundestag.de"
    timeout: float = 30.0
    max_concurrent_fetches: int = 8
    user_agent: str = "bundestag-agenda/0.3 (+https://api.hutt.io/bt-to/)"


@dataclass(frozen=True, slots=True)
class AgendaConfig:
    """Settings that shape the agenda items and the calendar feed."""

    timezone: str = "Europe/Berlin"
    uid_domain: str = "api.hutt.io"
    earliest_year: int = 2020
    calendar_name: str = "Tagesordnung Bundestag"
    calendar_description: str = (
        "Dieses iCal-Feed stellt die aktuelle Tagesordnung des Plenums des Deutschen "
        "Bundestages zur Verfügung. Es aktualisiert sich alle 15min selbst."
    )
    calendar_source_url: str = "https://api.hutt.io/bt-to/ical"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Configuration for the key-value store holding the week partitions."""

    database_url: str = "sqlite:///bt-agenda.db"
    echo_sql: bool = False
    backend: str = "sql"


@dataclass(frozen=True, slots=True)
class CacheConfig:
    """Lifetimes of cached HTTP responses, in seconds."""

    enabled: bool = True
    agenda_max_age: int = 300
    data_list_max_age: int = 3600


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """HTTP server and scheduler settings."""

    host: str = "127.0.0.1"
    port: int = 8080
    path_prefix: str = "/bt-to"
    log_requests: bool = True
    log_level: str = "INFO"
    refresh_interval: int = 900
    enable_scheduler: bool = True


@dataclass(frozen=True, slots=True)
class MaintenanceConfig:
    """Switches for the purge endpoint."""

    purge_cache: bool = False
    purge_store: bool = False


@dataclass(frozen=True, slots=True)
class AppConfig:
    """High level application configuration."""

    upstream: UpstreamConfig = UpstreamConfig()
    agenda: AgendaConfig = AgendaConfig()
    storage: StorageConfig = StorageConfig()
    cache: CacheConfig = CacheConfig()
    server: ServerConfig = ServerConfig()
    maintenance: MaintenanceConfig = MaintenanceConfig()


_SECTIONS: Dict[str, type] = {
    "upstream": UpstreamConfig,
    "agenda": AgendaConfig,
    "storage": StorageConfig,
    "cache": CacheConfig,
    "server": ServerConfig,
    "maintenance": MaintenanceConfig,
}


def _load_from_env(prefix: str) -> Dict[str, Any]:
    """Load configuration entries for ``prefix`` from the environment."""

    data: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if key.startswith(prefix):
            normalized_key = key.removeprefix(prefix)
            data[normalized_key.lower()] = value
    return data


def _merge_dict(target: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    merged = target.copy()
    merged.update({k: v for k, v in updates.items() if v is not None})
    return merged


def _load_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf8") as fh:
        return json.load(fh)


T = TypeVar("T")


def _coerce_value(value: Any, annotation: Any) -> Any:
    """Best-effort conversion of ``value`` to match ``annotation``."""

    if value is None:
        return None

    if annotation is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {"true", "1", "yes", "y", "on"}:
                return True
            if normalized in {"false", "0", "no", "n", "off"}:
                return False
        if isinstance(value, (int, float)):
            return bool(value)
        raise ValueError(f"Cannot convert {value!r} to bool")

    if annotation is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, (float, str)):
            return int(float(value))
        raise ValueError(f"Cannot convert {value!r} to int")

    if annotation is float:
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            return float(value)
        raise ValueError(f"Cannot convert {value!r} to float")

    if annotation is str:
        if isinstance(value, str):
            return value
        return str(value)

    return value


def _dataclass_from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
    """Create dataclass ``cls`` while coercing ``data`` to the proper types."""

    kwargs: Dict[str, Any] = {}
    type_hints = get_type_hints(cls)
    for field in fields(cls):
        if field.name not in data:
            continue
        try:
            annotation = type_hints.get(field.name, field.type)
            kwargs[field.name] = _coerce_value(data[field.name], annotation)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Invalid value for {cls.__name__}.{field.name}: {data[field.name]!r}"
            ) from exc
    return cls(**kwargs)


def resolve_config_path(explicit_path: Optional[Path] = None) -> Path:
    """Return the effective configuration file path.

    If ``explicit_path`` is provided it is returned verbatim. Otherwise the
    first existing default location wins; if none exists the XDG-style
    location (``~/.config/bt-agenda/config.json``) is returned.
    """

    if explicit_path:
        return explicit_path

    for candidate in _DEFAULT_CONFIG_LOCATIONS:
        if candidate.exists():
            return candidate

    return _DEFAULT_CONFIG_LOCATIONS[-1]


def load_config(explicit_path: Optional[Path] = None) -> AppConfig:
    """Create the application configuration.

    Defaults, an optional JSON configuration file and environment variables
    (``BTTO_*``) are combined into one immutable :class:`AppConfig`.
    Environment variable names use the format ``BTTO_SECTION_FIELD``
    (e.g. ``BTTO_CACHE_AGENDA_MAX_AGE``).
    """

    file_data: Dict[str, Any] = {}
    if explicit_path:
        file_data = _load_config_file(explicit_path)
    else:
        for candidate in _DEFAULT_CONFIG_LOCATIONS:
            file_data = _load_config_file(candidate)
            if file_data:
                break

    sections: Dict[str, Any] = {}
    for name, section_cls in _SECTIONS.items():
        data = _merge_dict(asdict(section_cls()), file_data.get(name, {}))
        data = _merge_dict(data, _load_from_env(f"{_ENV_PREFIX}{name.upper()}_"))
        sections[name] = _dataclass_from_dict(section_cls, data)
    return AppConfig(**sections)


def save_config(config: AppConfig, path: Optional[Path] = None) -> Path:
    """Persist ``config`` as JSON and return the target path."""

    target = resolve_config_path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    data = {name: asdict(getattr(config, name)) for name in _SECTIONS}
    with target.open("w", encoding="utf8") as fh:
        json.dump(data, fh, ensure_ascii=False, indent=2, sort_keys=True)
        fh.write("\n")
    return target


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
