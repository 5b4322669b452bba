"""
Configuration loading for mareatigre.

Loads config.toml and applies MAREATIGRE_* environment overrides on top of
the built-in defaults from constants.py.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mareatigre.constants import (
    ALERTS_RSS_URL,
    BACKGROUND_TIMEOUT_SEC,
    CACHE_FRESH_SEC,
    CACHE_STALE_SEC,
    DATA_DIR_DEFAULT,
    DEFAULT_TIMEOUT_SEC,
    HEIGHT_RSS_URL,
    TELEMETRY_BASE_URL,
    TELEMETRY_URL,
)

# Config file path
CONFIG_PATH = Path(__file__).parent.parent / "config.toml"


def _parse_toml_value(raw: str) -> Any:
    """
    Minimal TOML value parser for the subset used in config.toml.
    Supports strings, integers, floats, and booleans.
    """
    raw = raw.strip()
    if not raw:
        return ""
    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        inner = raw[1:-1]
        return inner.replace(r"\\", "\\").replace(r"\"", '"').replace(r"\n", "\n")
    lowered = raw.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        if any(ch in raw for ch in (".", "e", "E")):
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _strip_comment(raw_line: str) -> str:
    """Drop a trailing '#' comment; a '#' inside a quoted string is kept."""
    in_string = False
    escaped = False
    for i, ch in enumerate(raw_line):
        if escaped:
            escaped = False
        elif ch == "\\" and in_string:
            escaped = True
        elif ch == '"':
            in_string = not in_string
        elif ch == "#" and not in_string:
            return raw_line[:i].strip()
    return raw_line.strip()


def load_toml_config(path: Path) -> dict[str, Any]:
    """
    Minimal, dependency-free TOML loader tailored to this project's config.toml.
    It understands:
      - Comment lines starting with '#'
      - Section headers like [section] or [a.b]
      - Simple key = value pairs where value is a scalar.
    A missing or unreadable file results in an empty config so the runtime
    falls back to built-in defaults.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return {}

    root: dict[str, Any] = {}
    current: dict[str, Any] = root

    for raw_line in text.splitlines():
        line = _strip_comment(raw_line)
        if not line:
            continue
        if line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip()
            if not section:
                current = root
                continue
            parts = [p.strip() for p in section.split(".") if p.strip()]
            current = root
            for part in parts:
                child = current.setdefault(part, {})
                if not isinstance(child, dict):
                    child = {}
                current = child
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        current[key] = _parse_toml_value(value)

    return root


@dataclass
class StorageSettings:
    data_dir: str = str(DATA_DIR_DEFAULT)


@dataclass
class HTTPSettings:
    timeout_sec: float = DEFAULT_TIMEOUT_SEC
    background_timeout_sec: float = BACKGROUND_TIMEOUT_SEC


@dataclass
class CacheSettings:
    fresh_sec: float = float(CACHE_FRESH_SEC)
    stale_sec: float = float(CACHE_STALE_SEC)


@dataclass
class LoggingSettings:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class SourceSettings:
    alerts_url: str = ALERTS_RSS_URL
    height_url: str = HEIGHT_RSS_URL
    telemetry_base_url: str = TELEMETRY_BASE_URL
    telemetry_url: str = TELEMETRY_URL


@dataclass
class Settings:
    storage: StorageSettings = field(default_factory=StorageSettings)
    http: HTTPSettings = field(default_factory=HTTPSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    sources: SourceSettings = field(default_factory=SourceSettings)


def _apply_section(target: Any, values: Any) -> None:
    if not isinstance(values, dict):
        return
    for k, v in values.items():
        if not hasattr(target, k):
            continue
        current = getattr(target, k)
        if isinstance(current, float) and isinstance(v, int) and not isinstance(v, bool):
            v = float(v)
        if type(v) is not type(current):
            continue
        setattr(target, k, v)


def _apply_env_overrides(settings: Settings) -> None:
    """Override config values from environment variables."""
    mapping = {
        "MAREATIGRE_DATA_DIR": lambda v: setattr(settings.storage, "data_dir", v),
        "MAREATIGRE_HTTP_TIMEOUT": lambda v: setattr(settings.http, "timeout_sec", float(v)),
        "MAREATIGRE_HTTP_BACKGROUND_TIMEOUT": lambda v: setattr(
            settings.http, "background_timeout_sec", float(v)
        ),
        "MAREATIGRE_CACHE_FRESH": lambda v: setattr(settings.cache, "fresh_sec", float(v)),
        "MAREATIGRE_CACHE_STALE": lambda v: setattr(settings.cache, "stale_sec", float(v)),
        "MAREATIGRE_LOG_LEVEL": lambda v: setattr(settings.logging, "level", v),
        "MAREATIGRE_LOG_FORMAT": lambda v: setattr(settings.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from config.toml + environment overrides."""
    settings = Settings()
    path = Path(config_path) if config_path is not None else CONFIG_PATH
    raw = load_toml_config(path)

    for section in ("storage", "http", "cache", "logging", "sources"):
        _apply_section(getattr(settings, section), raw.get(section))

    # Environment overrides always win
    _apply_env_overrides(settings)
    return settings
