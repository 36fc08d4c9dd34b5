"""Client configuration loading.

Sources, lowest precedence first: a TOML file (``[client]`` table), the
process environment (``AMPED_*``), then explicit overrides from the command
line.  ``.env`` loading happens in the CLI before this module reads the
environment.

Dependencies: errors
Wired in: cli.py → main()
"""

from __future__ import annotations

import math
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from amped.errors import ConfigError

CONFIG_FILE_NAME = "amped.toml"
CONFIG_ENV_VAR = "AMPED_CONFIG"
DEFAULT_CONFIG_DIR = Path("~/.config/mtnac")
_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# setting name → environment variable
_ENV_VARS: dict[str, str] = {
    "base_url": "AMPED_BASE_URL",
    "device_id": "AMPED_DEVICE_ID",
    "key_dir": "AMPED_KEY_DIR",
    "poll_interval": "AMPED_POLL_INTERVAL",
    "poll_max_attempts": "AMPED_POLL_MAX_ATTEMPTS",
    "retry_transient": "AMPED_RETRY_TRANSIENT",
    "http_timeout": "AMPED_HTTP_TIMEOUT",
    "log_level": "AMPED_LOG_LEVEL",
}


@dataclass(frozen=True)
class ClientConfig:
    """Validated settings for one client run."""

    base_url: str
    """Base address of the AMPED API, e.g. ``"https://amped.example.org"``."""

    device_id: int
    """Positive id identifying this device to the server."""

    key_dir: Path = DEFAULT_CONFIG_DIR
    """Directory holding the server and device PEM key files."""

    poll_interval: float = 7.0
    poll_max_attempts: int | None = None
    """``None`` keeps polling until a pending transaction appears."""

    retry_transient: bool = False
    http_timeout: float = 10.0
    log_level: str = "WARNING"


def find_config_file(
    explicit: str | None = None,
    env: Mapping[str, str] | None = None,
    search_dirs: list[Path] | None = None,
) -> Path | None:
    """Locate the TOML config file, or ``None`` when there is none."""
    environ = os.environ if env is None else env
    chosen = explicit or environ.get(CONFIG_ENV_VAR)
    if chosen:
        path = Path(chosen).expanduser()
        if not path.is_file():
            raise ConfigError("config_missing", f"Config file not found: {path}")
        return path
    dirs = search_dirs if search_dirs is not None else [Path.cwd(), DEFAULT_CONFIG_DIR.expanduser()]
    for directory in dirs:
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError("config_invalid", f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError("config_unreadable", f"Cannot read config file {path}") from exc
    section = data.get("client", {})
    if not isinstance(section, dict):
        raise ConfigError("config_invalid", f"[client] in {path} must be a table.")
    return cast(dict[str, Any], section)


def load_config(
    *,
    config_path: str | None = None,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
    search_dirs: list[Path] | None = None,
) -> ClientConfig:
    """Merge file, environment and overrides into a validated ``ClientConfig``."""
    environ = os.environ if env is None else env
    merged: dict[str, Any] = {}
    path = find_config_file(config_path, environ, search_dirs)
    if path is not None:
        merged.update(read_config_file(path))
    for name, var in _ENV_VARS.items():
        raw = environ.get(var)
        if raw not in (None, ""):
            merged[name] = raw
    for name, value in (overrides or {}).items():
        if value is not None:
            merged[name] = value
    unknown = set(merged) - set(_ENV_VARS)
    if unknown:
        raise ConfigError("config_unknown_key", f"Unknown config keys: {sorted(unknown)}")
    return _build(merged)


def _build(raw: dict[str, Any]) -> ClientConfig:
    base_url = raw.get("base_url")
    if not isinstance(base_url, str) or not base_url.strip():
        raise ConfigError("base_url_missing", "base_url must be set (AMPED_BASE_URL).")
    if "device_id" not in raw:
        raise ConfigError("device_id_missing", "device_id must be set (AMPED_DEVICE_ID).")
    device_id = _as_int("device_id", raw["device_id"])
    if device_id <= 0:
        raise ConfigError("device_id_invalid", "device_id must be a positive integer.")

    poll_interval = _as_float("poll_interval", raw.get("poll_interval", 7.0))
    if not math.isfinite(poll_interval) or poll_interval <= 0:
        raise ConfigError("poll_interval_invalid", "poll_interval must be a finite number > 0.")
    http_timeout = _as_float("http_timeout", raw.get("http_timeout", 10.0))
    if not math.isfinite(http_timeout) or http_timeout <= 0:
        raise ConfigError("http_timeout_invalid", "http_timeout must be a finite number > 0.")

    max_attempts: int | None = None
    if raw.get("poll_max_attempts") is not None:
        max_attempts = _as_int("poll_max_attempts", raw["poll_max_attempts"])
        if max_attempts < 1:
            raise ConfigError("poll_max_attempts_invalid", "poll_max_attempts must be >= 1.")

    log_level = str(raw.get("log_level", "WARNING")).upper()
    if log_level not in _VALID_LOG_LEVELS:
        raise ConfigError(
            "log_level_invalid",
            f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}, got {log_level!r}.",
        )

    return ClientConfig(
        base_url=base_url.strip(),
        device_id=device_id,
        key_dir=Path(str(raw.get("key_dir", DEFAULT_CONFIG_DIR))).expanduser(),
        poll_interval=poll_interval,
        poll_max_attempts=max_attempts,
        retry_transient=_as_bool("retry_transient", raw.get("retry_transient", False)),
        http_timeout=http_timeout,
        log_level=log_level,
    )


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name}_invalid", f"{name} must be an integer.")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{name}_invalid", f"{name} must be an integer, got {value!r}.") from exc


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{name}_invalid", f"{name} must be a number.")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name}_invalid", f"{name} must be a number, got {value!r}.") from exc


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{name}_invalid", f"{name} must be a boolean, got {value!r}.")
