"""Load synthetics engine defaults from ``config/settings.yaml``.

The file groups browser launch flags, screenshot capture, telemetry limits and
the log level. ``RunOptions.from_settings`` turns it into the options of a run.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parents[1] / "config" / "settings.yaml"
DEFAULT_LOG_LEVEL = "INFO"


def load_settings(path: Path | None = None) -> Dict[str, Any]:
    """Return the parsed engine settings as a dictionary."""

    file_path = path or DEFAULT_SETTINGS_PATH
    if not file_path.exists():
        raise FileNotFoundError(f"Missing synthetics settings file at {file_path}")
    with file_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Synthetics settings at {file_path} must be a mapping")
    return data


def settings_log_level(settings: Dict[str, Any]) -> str:
    return str((settings.get("logging") or {}).get("level") or DEFAULT_LOG_LEVEL).upper()


__all__ = ["DEFAULT_SETTINGS_PATH", "load_settings", "settings_log_level"]
