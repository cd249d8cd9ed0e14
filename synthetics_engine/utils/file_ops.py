"""Small helpers for interacting with the filesystem."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, content: str) -> None:
    """Write text to disk, creating parent directories when needed."""

    _ensure_parent(path)
    path.write_text(content, encoding="utf-8")


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    """Serialize a JSON document to disk."""

    write_text(path, json.dumps(payload, ensure_ascii=False))


def read_json(path: Path) -> Dict[str, Any]:
    """Load a JSON document written by :func:`write_json`."""

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
