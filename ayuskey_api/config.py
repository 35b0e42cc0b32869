"""Client configuration values and helpers.

Values come from environment variables or a user settings file at
``~/.ayuskey/settings.toml``::

    [client]
    origin = "https://example.social"
    token = "..."
    timeout_seconds = 10

    [logging]
    level = "INFO"

Environment variables (quick overrides):
  - AYUSKEY_SETTINGS_PATH: alternative settings file
  - AYUSKEY_ORIGIN: server origin, without ``/api``
  - AYUSKEY_TOKEN: default credential
  - AYUSKEY_TIMEOUT: transport timeout in seconds
  - AYUSKEY_LOG_LEVEL: log level used by :func:`configure_logging`
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN = "http://127.0.0.1:3000"
DEFAULT_TIMEOUT = 10.0
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


@dataclass
class ClientSettings:
    origin: str = DEFAULT_ORIGIN
    token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT


def settings_path() -> Path:
    override = os.getenv("AYUSKEY_SETTINGS_PATH")
    if override:
        return Path(override).expanduser().resolve()
    return (Path.home() / ".ayuskey" / "settings.toml").resolve()


def _read_settings_dict(path: Optional[Path] = None) -> Dict[str, Any]:
    path = path or settings_path()
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as handle:
            return tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return {}


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name)
    return value if isinstance(value, Mapping) else {}


def _coerce_positive_float(value: Any, default: float) -> float:
    try:
        candidate = float(str(value).strip()) if not isinstance(value, (int, float)) else float(value)
    except (TypeError, ValueError):
        return default
    return candidate if candidate > 0 else default


def _value_from_env_or_settings(env: str, section: Mapping[str, Any], key: str) -> Any:
    value = os.getenv(env)
    if value is not None and value.strip():
        return value
    return section.get(key)


def load_client_settings(path: Optional[Path] = None) -> ClientSettings:
    """Return client settings; environment variables win over the file."""

    client_cfg = _section(_read_settings_dict(path), "client")
    origin = str(_value_from_env_or_settings("AYUSKEY_ORIGIN", client_cfg, "origin") or DEFAULT_ORIGIN)
    token = str(_value_from_env_or_settings("AYUSKEY_TOKEN", client_cfg, "token") or "").strip()
    timeout = _coerce_positive_float(
        _value_from_env_or_settings("AYUSKEY_TIMEOUT", client_cfg, "timeout_seconds"),
        DEFAULT_TIMEOUT,
    )
    return ClientSettings(
        origin=origin.strip().rstrip("/"),
        token=token or None,
        timeout=timeout,
    )


def resolve_log_level(level: Optional[str] = None, path: Optional[Path] = None) -> int:
    name = level or os.getenv("AYUSKEY_LOG_LEVEL")
    if not name:
        name = str(_section(_read_settings_dict(path), "logging").get("level") or "INFO")
    value = getattr(logging, name.strip().upper(), None)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: Optional[str] = None) -> None:
    """Basic terminal logging for command line entry points."""

    logging.basicConfig(level=resolve_log_level(level), format=LOG_FORMAT)
    for name in ("httpx", "httpcore", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)
