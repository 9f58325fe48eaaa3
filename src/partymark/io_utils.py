"""orjson-backed JSON helpers for config files, settings values and CLI output."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Save an object as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    path.write_bytes(orjson.dumps(obj, option=opts))


def dumps(obj: Any) -> str:
    """Compact JSON text (settings values)."""
    return orjson.dumps(obj).decode("utf-8")


def loads(s: str | bytes) -> Any:
    return orjson.loads(s)
