"""Payload parsing and shape classification.

The upstream stream encodes "append text to the reply" in several
generations of JSON shapes, none of them explicitly tagged:

1. ``{"o": "patch", "v": [{p, o, v}, ...]}``            -> PatchBatch
2. ``[{p, o, v}, ...]`` or ``{"v": [{p, o, v}, ...]}``     -> BareOpArray
3. ``{"p": "/message/content/parts/0", "o": "append", "v": "..."}`` -> DirectAppend
4. ``{"v": "..."}``                                      -> RawValue
5. ``{"message": {"content": {"parts": [...]}}}``        -> LegacySnapshot

``classify_operation`` is the single place that maps a parsed payload to
one of these variants; checks run in the order above and the first match
wins. Anything else is a classification miss and returns ``None``.
"""
from __future__ import annotations

import logging
from typing import Any

import orjson

from replycapture.io_utils import loads_payload
from replycapture.types import (
    BareOpArray,
    DirectAppend,
    Err,
    LegacySnapshot,
    Ok,
    Operation,
    PatchBatch,
    RawValue,
    Result,
    SubOp,
)

log = logging.getLogger(__name__)


def parse_payload(payload: str) -> Result[Any, str]:
    """Parse one data payload; malformed JSON is an ``Err``, never raised."""
    try:
        return Ok(loads_payload(payload))
    except orjson.JSONDecodeError as exc:
        log.debug("Skipping malformed payload (%s): %.80r", exc, payload)
        return Err(str(exc))


def _sub_ops(entries: list[Any]) -> tuple[SubOp, ...]:
    ops: list[SubOp] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        path = entry.get("p")
        kind = entry.get("o")
        ops.append(
            SubOp(
                path=path if isinstance(path, str) else None,
                op_kind=kind if isinstance(kind, str) else None,
                value=entry.get("v"),
            ),
        )
    return tuple(ops)


def _message_object(obj: dict[str, Any]) -> dict[str, Any] | None:
    message = obj.get("message")
    if isinstance(message, dict):
        return message
    # Newer streams wrap the first snapshot: {"p": "", "o": "add", "v": {"message": ...}}
    envelope = obj.get("v")
    if isinstance(envelope, dict):
        nested = envelope.get("message")
        if isinstance(nested, dict):
            return nested
    return None


def _legacy_snapshot(obj: dict[str, Any]) -> LegacySnapshot | None:
    message = _message_object(obj)
    if message is None:
        return None
    content = message.get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list):
        return None
    message_id = message.get("id")
    return LegacySnapshot(
        parts=tuple(part for part in parts if isinstance(part, str)),
        message_id=message_id if isinstance(message_id, str) and message_id else None,
    )


def classify_operation(obj: Any) -> Operation | None:
    """Map a parsed payload to its ``Operation`` variant, or ``None``."""
    if isinstance(obj, list):
        ops = _sub_ops(obj)
        return BareOpArray(ops) if ops else None
    if not isinstance(obj, dict):
        return None

    has_path = "p" in obj
    has_kind = "o" in obj
    path = obj.get("p")
    kind = obj.get("o")
    value = obj.get("v")

    if kind == "patch" and isinstance(value, list):
        return PatchBatch(_sub_ops(value))
    if isinstance(value, list) and not has_path and not has_kind:
        return BareOpArray(_sub_ops(value))
    if isinstance(path, str) and kind == "append" and isinstance(value, str):
        return DirectAppend(path=path, value=value)
    if isinstance(value, str) and not has_path and kind in (None, "append"):
        return RawValue(value)
    return _legacy_snapshot(obj)


def _str_field(obj: dict[str, Any], key: str) -> str | None:
    value = obj.get(key)
    return value if isinstance(value, str) and value else None


def payload_identifiers(obj: Any) -> tuple[str | None, str | None]:
    """Return ``(conversation_id, message_id)`` carried directly on a payload.

    Looks at the payload itself, then at a ``v`` object envelope.
    """
    if not isinstance(obj, dict):
        return None, None
    conversation_id = _str_field(obj, "conversation_id")
    message_id = _str_field(obj, "message_id")
    envelope = obj.get("v")
    if isinstance(envelope, dict):
        conversation_id = conversation_id or _str_field(envelope, "conversation_id")
        message_id = message_id or _str_field(envelope, "message_id")
    return conversation_id, message_id
