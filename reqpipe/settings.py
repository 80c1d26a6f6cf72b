from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _project_root() -> Path:
    # Anchor to this file so it works regardless of the process working directory.
    return Path(__file__).resolve().parent.parent


def _settings_path() -> Path:
    # Allow override (relative to the project root); otherwise reqpipe.yaml there
    env = os.getenv("REQPIPE_SETTINGS_PATH", "").strip()
    if env:
        p = Path(env)
        return p if p.is_absolute() else (_project_root() / p)
    return _project_root() / "reqpipe.yaml"


def _load_file() -> Dict[str, Any]:
    p = _settings_path()
    if not p.exists():
        return {}
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("ignoring unreadable settings file %s: %s", p, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("ignoring settings file %s: top level is not a mapping", p)
        return {}
    return data


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value.

    Resolution order:
      1) reqpipe.yaml (or REQPIPE_SETTINGS_PATH)
      2) environment variables: KEY, KEY uppercased, REQPIPE_<KEY uppercased>
    """

    k = (key or "").strip()
    if not k:
        return default

    data = _load_file()
    if k in data and data[k] is not None:
        return data[k]

    for ek in (k, k.upper(), f"REQPIPE_{k.upper()}"):
        v = os.getenv(ek)
        if v is not None and v != "":
            return v

    return default


def get_int(key: str, default: int) -> int:
    v = get_setting(key, default)
    try:
        return int(v)
    except (TypeError, ValueError):
        logger.warning("setting %s=%r is not an integer; using %s", key, v, default)
        return default


def get_float(key: str, default: float) -> float:
    v = get_setting(key, default)
    try:
        return float(v)
    except (TypeError, ValueError):
        logger.warning("setting %s=%r is not a number; using %s", key, v, default)
        return default


def get_bool(key: str, default: bool) -> bool:
    v = get_setting(key, default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    logger.warning("setting %s=%r is not a boolean; using %s", key, v, default)
    return default
