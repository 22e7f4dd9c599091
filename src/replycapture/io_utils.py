"""JSON helpers built on orjson.

Stream payloads, config files and capture records all go through here so
the rest of the package never touches a JSON codec directly.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def loads_payload(payload: str | bytes) -> Any:
    """Parse one SSE data payload. Raises ``orjson.JSONDecodeError``."""
    return orjson.loads(payload)


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def dump_json_bytes(obj: Any, *, pretty: bool = True) -> bytes:
    """Serialize ``obj``; non-JSON values fall back to ``str``."""
    opts = orjson.OPT_INDENT_2 if pretty else 0
    return orjson.dumps(obj, option=opts, default=str)


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Save an object as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dump_json_bytes(obj, pretty=pretty) + b"\n")
