"""Caller side of the engine: request inspection and record assembly.

The interception layer hands over the parsed request body and a duplicate
of the response stream. This module turns the two into a ``CaptureRecord``
ready for the ingestion layer; it never touches the original response.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterable
from datetime import UTC, datetime
from typing import Any

from replycapture.config import DEFAULT_CONFIG, StreamConfig
from replycapture.engine import reconstruct_stream
from replycapture.entities import extract_products
from replycapture.sanitizer import sanitize
from replycapture.types import (
    CaptureRecord,
    ReconstructionResult,
    product_to_dict,
    raw_operation_to_dict,
)

log = logging.getLogger(__name__)

UNKNOWN = "unknown"
UNEXTRACTED_USER_MESSAGE = "[Could not extract]"


def is_conversation_request(
    method: str,
    url: str,
    config: StreamConfig = DEFAULT_CONFIG,
) -> bool:
    """True for POSTs to a conversation endpoint (GETs only load history)."""
    if (method or "").upper() != "POST":
        return False
    return any(endpoint in (url or "") for endpoint in config.endpoints)


def extract_user_message(request_body: Any) -> str | None:
    """Outbound user text: ``messages[0].content.parts`` joined, or a plain string."""
    if not isinstance(request_body, dict):
        return None
    messages = request_body.get("messages")
    if not isinstance(messages, list) or not messages:
        return None
    first = messages[0]
    if not isinstance(first, dict):
        return None
    content = first.get("content")
    if isinstance(content, dict):
        parts = content.get("parts")
        if isinstance(parts, list):
            return "".join(part for part in parts if isinstance(part, str))
        return None
    if isinstance(content, str):
        return content
    return None


def _body_str(request_body: Any, key: str) -> str | None:
    if not isinstance(request_body, dict):
        return None
    value = request_body.get(key)
    return value if isinstance(value, str) and value else None


def now_ms() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


def build_capture_record(
    request_body: Any,
    result: ReconstructionResult,
    *,
    url: str | None = None,
    timestamp: int | None = None,
    config: StreamConfig = DEFAULT_CONFIG,
) -> CaptureRecord | None:
    """Assemble the downstream record, or ``None`` when nothing was rebuilt."""
    if not result.text:
        return None
    user_message = extract_user_message(request_body)
    return CaptureRecord(
        conversation_id=(
            result.conversation_id
            or _body_str(request_body, "conversation_id")
            or UNKNOWN
        ),
        message_id=result.message_id,
        model=_body_str(request_body, "model") or UNKNOWN,
        user_message=user_message if user_message is not None else UNEXTRACTED_USER_MESSAGE,
        assistant_response=sanitize(result.text),
        products=extract_products(result.text, config),
        raw_operations=result.raw_operations,
        timestamp=now_ms() if timestamp is None else timestamp,
        status=result.status,
        debug={
            "url": url,
            "requestAction": _body_str(request_body, "action"),
            "parentMessageId": _body_str(request_body, "parent_message_id"),
        },
    )


async def capture_response(
    request_body: Any,
    chunks: AsyncIterable[bytes],
    *,
    url: str | None = None,
    config: StreamConfig = DEFAULT_CONFIG,
) -> CaptureRecord | None:
    """Reconstruct a duplicated response stream and build its record."""
    result = await reconstruct_stream(
        chunks,
        conversation_id=_body_str(request_body, "conversation_id"),
        config=config,
    )
    if result.status == "partial":
        log.warning("Capture completed with partial data: %s", result.error)
    record = build_capture_record(request_body, result, url=url, config=config)
    if record is None:
        log.info("No assistant text reconstructed for %s", url or "request")
    return record


def record_to_dict(record: CaptureRecord) -> dict[str, object]:
    """Serialize with the ingestion layer's camelCase keys."""
    return {
        "conversationId": record.conversation_id,
        "messageId": record.message_id,
        "model": record.model,
        "userMessage": record.user_message,
        "assistantResponse": record.assistant_response,
        "products": (
            [product_to_dict(p) for p in record.products]
            if record.products is not None
            else None
        ),
        "rawOperations": [raw_operation_to_dict(op) for op in record.raw_operations],
        "timestamp": record.timestamp,
        "status": record.status,
        "_debug": dict(record.debug) if record.debug is not None else None,
    }
