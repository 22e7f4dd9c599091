"""Protocol constants for the conversation stream, loadable from JSON or env."""
from __future__ import annotations

import codecs
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from replycapture.io_utils import load_json

CONTENT_PATH = "/message/content/parts/0"

DEFAULT_ENDPOINTS: tuple[str, ...] = (
    "/backend-api/conversation",
    "/backend-api/f/conversation",
    "/backend-anon/f/conversation",
)


@dataclass(frozen=True, slots=True)
class StreamConfig:
    """Wire-level settings shared by every pipeline stage.

    Attributes:
        data_prefix: SSE field prefix for data lines.
        done_sentinel: Payload that marks the end of the reply.
        content_path: Patch path of the primary content slot.
        encoding: Byte encoding of the response body.
        endpoints: URL path fragments that identify conversation requests.
        url_prefixes: Value prefixes that make a product value a URL.
    """

    data_prefix: str = "data: "
    done_sentinel: str = "[DONE]"
    content_path: str = CONTENT_PATH
    encoding: str = "utf-8"
    endpoints: tuple[str, ...] = DEFAULT_ENDPOINTS
    url_prefixes: tuple[str, ...] = ("http://", "https://")

    def __post_init__(self) -> None:
        if not self.data_prefix.strip():
            raise ValueError("data_prefix cannot be empty")
        if not self.done_sentinel:
            raise ValueError("done_sentinel cannot be empty")
        if not self.content_path.startswith("/"):
            raise ValueError(f"content_path must be absolute, got {self.content_path!r}")
        try:
            codecs.lookup(self.encoding)
        except LookupError as exc:
            raise ValueError(f"Unknown encoding: {self.encoding!r}") from exc
        if not self.endpoints:
            raise ValueError("endpoints cannot be empty")
        if not self.url_prefixes:
            raise ValueError("url_prefixes cannot be empty")


DEFAULT_CONFIG = StreamConfig()

_TUPLE_FIELDS = ("endpoints", "url_prefixes")
_KNOWN_FIELDS = frozenset(
    {"data_prefix", "done_sentinel", "content_path", "encoding", *_TUPLE_FIELDS},
)


def stream_config_from_dict(payload: dict[str, Any]) -> StreamConfig:
    """Build a config from a JSON object, rejecting unknown keys."""
    if not isinstance(payload, dict):
        raise ValueError("Stream config payload must be an object")
    unknown = sorted(set(payload) - _KNOWN_FIELDS)
    if unknown:
        raise ValueError(f"Unknown stream config fields: {unknown}")
    kwargs: dict[str, Any] = {}
    for key, value in payload.items():
        if key in _TUPLE_FIELDS:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"{key} must be a list of strings")
            kwargs[key] = tuple(value)
        else:
            if not isinstance(value, str):
                raise ValueError(f"{key} must be a string")
            kwargs[key] = value
    return StreamConfig(**kwargs)


def load_stream_config(path: Path) -> StreamConfig:
    """Load a ``StreamConfig`` from a JSON file."""
    return stream_config_from_dict(load_json(path))


def config_from_env(
    base: StreamConfig = DEFAULT_CONFIG,
    *,
    environ: dict[str, str] | None = None,
) -> StreamConfig:
    """Apply ``REPLY_CAPTURE_*`` environment overrides on top of ``base``."""
    env = os.environ if environ is None else environ
    overrides: dict[str, str] = {}
    encoding = env.get("REPLY_CAPTURE_ENCODING", "").strip()
    if encoding:
        overrides["encoding"] = encoding
    content_path = env.get("REPLY_CAPTURE_CONTENT_PATH", "").strip()
    if content_path:
        overrides["content_path"] = content_path
    return replace(base, **overrides) if overrides else base
