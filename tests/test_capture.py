"""Tests for request inspection and capture record assembly."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from replycapture.capture import (
    UNEXTRACTED_USER_MESSAGE,
    build_capture_record,
    capture_response,
    extract_user_message,
    is_conversation_request,
    record_to_dict,
)
from replycapture.engine import reconstruct_bytes
from replycapture.io_utils import load_json
from replycapture.types import CaptureRecord, Product, RawOperation, ReconstructionResult

ROOT = Path(__file__).resolve().parents[1]
FIXTURES = ROOT / "tests" / "fixtures"


async def _aiter(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def _result(text: str, **overrides: Any) -> ReconstructionResult:
    fields: dict[str, Any] = {
        "conversation_id": None,
        "message_id": None,
        "text": text,
        "using_append_mode": True,
        "raw_operations": (RawOperation(None, text),) if text else (),
        "status": "complete" if text else "empty",
    }
    fields.update(overrides)
    return ReconstructionResult(**fields)


class TestIsConversationRequest:
    @pytest.mark.parametrize(
        "url",
        [
            "https://chatgpt.com/backend-api/conversation",
            "https://chatgpt.com/backend-api/f/conversation",
            "https://chatgpt.com/backend-anon/f/conversation",
        ],
    )
    def test_post_to_conversation_endpoint(self, url: str) -> None:
        assert is_conversation_request("post", url) is True

    def test_get_is_history_load(self) -> None:
        assert is_conversation_request("GET", "https://chatgpt.com/backend-api/conversation") is False

    def test_other_endpoint(self) -> None:
        assert is_conversation_request("POST", "https://chatgpt.com/backend-api/models") is False


class TestExtractUserMessage:
    def test_parts_joined(self) -> None:
        body = load_json(FIXTURES / "requests" / "conversation_request.json")
        assert extract_user_message(body) == "Recommend a desk mouse"

    def test_plain_string_content(self) -> None:
        assert extract_user_message({"messages": [{"content": "hi"}]}) == "hi"

    def test_non_string_parts_skipped(self) -> None:
        body = {"messages": [{"content": {"parts": ["a", {"asset": 1}, "b"]}}]}
        assert extract_user_message(body) == "ab"

    @pytest.mark.parametrize(
        "body",
        [None, "text", {}, {"messages": []}, {"messages": ["x"]}, {"messages": [{"content": 5}]}],
    )
    def test_unextractable(self, body: Any) -> None:
        assert extract_user_message(body) is None


class TestBuildCaptureRecord:
    def test_defaults_when_request_missing(self) -> None:
        record = build_capture_record(None, _result("Hello"), timestamp=1)
        assert record is not None
        assert record.conversation_id == "unknown"
        assert record.model == "unknown"
        assert record.user_message == UNEXTRACTED_USER_MESSAGE
        assert record.products is None

    def test_request_fields(self) -> None:
        body = load_json(FIXTURES / "requests" / "conversation_request.json")
        record = build_capture_record(body, _result("Hello"), url="https://x/conversation", timestamp=5)
        assert record is not None
        assert record.conversation_id == "conv-request"
        assert record.model == "gpt-4o"
        assert record.user_message == "Recommend a desk mouse"
        assert record.debug == {
            "url": "https://x/conversation",
            "requestAction": "next",
            "parentMessageId": "parent-1",
        }

    def test_stream_conversation_id_wins(self) -> None:
        body = {"conversation_id": "from-request"}
        record = build_capture_record(body, _result("x", conversation_id="from-stream"), timestamp=0)
        assert record is not None
        assert record.conversation_id == "from-stream"

    def test_no_text_no_record(self) -> None:
        assert build_capture_record({}, _result("")) is None

    def test_products_from_unsanitized_text(self) -> None:
        text = 'Pick ["turn0product3","Wireless Mouse"] ["turn0product3","https://example.com/item"] now'
        record = build_capture_record({}, _result(text), timestamp=0)
        assert record is not None
        assert record.assistant_response == "Pick now"
        assert record.products == (
            Product(index=3, name="Wireless Mouse", url="https://example.com/item"),
        )

    def test_timestamp_defaults_to_now(self) -> None:
        record = build_capture_record({}, _result("x"))
        assert record is not None
        assert record.timestamp > 1_600_000_000_000

    def test_duplicate_product_indexes_rejected(self) -> None:
        with pytest.raises(ValueError, match="duplicate product"):
            CaptureRecord(
                conversation_id="c",
                message_id=None,
                model="m",
                user_message="u",
                assistant_response="a",
                products=(Product(index=1), Product(index=1)),
                raw_operations=(),
                timestamp=0,
            )


class TestCaptureResponse:
    def test_fixture_round(self) -> None:
        body = load_json(FIXTURES / "requests" / "conversation_request.json")
        stream = (FIXTURES / "streams" / "products_stream.sse").read_bytes()
        record = asyncio.run(capture_response(body, _aiter(stream[:40], stream[40:])))
        assert record is not None
        assert record.assistant_response == "Two good options:\n\nThe mouse is quiet."
        assert record.products == (
            Product(
                index=1,
                name="Logi Mouse",
                url="https://shop.example.com/mouse",
                turn_ref="turn0product1",
            ),
            Product(index=4, name="Felt Pad", turn_ref="turn0product4"),
        )
        assert record.conversation_id == "conv-request"
        assert len(record.raw_operations) == 5

    def test_scenario_hello_world(self) -> None:
        stream = (
            b'data: {"p": "/message/content/parts/0", "o": "append", "v": "Hello"}\n\n'
            b'data: {"p": "/message/content/parts/0", "o": "append", "v": " world"}\n\n'
            b"data: [DONE]\n\n"
        )
        record = asyncio.run(capture_response({"model": "gpt-4o"}, _aiter(stream)))
        assert record is not None
        assert record.assistant_response == "Hello world"
        assert record.status == "complete"

    def test_empty_stream_gives_no_record(self) -> None:
        assert asyncio.run(capture_response({}, _aiter())) is None

    def test_partial_stream_is_still_recorded(self) -> None:
        async def failing() -> AsyncIterator[bytes]:
            yield b'data: {"v": "Half an ans"}\n\n'
            raise ConnectionAbortedError("tab closed")

        record = asyncio.run(capture_response({}, failing()))
        assert record is not None
        assert record.status == "partial"
        assert record.assistant_response == "Half an ans"

    def test_oversized_product_index_does_not_raise(self) -> None:
        stream = b'data: {"v": "Try this. product' + b"9" * 5000 + b'\\",\\"Mouse\\"]"}\n\n'
        record = asyncio.run(capture_response({}, _aiter(stream)))
        assert record is not None
        assert record.assistant_response == "Try this."
        assert record.products is None


class TestRecordToDict:
    def test_wire_keys(self) -> None:
        result = reconstruct_bytes((FIXTURES / "streams" / "append_stream.sse").read_bytes())
        record = build_capture_record({"model": "gpt-4o"}, result, timestamp=1700000000000)
        assert record is not None
        row = record_to_dict(record)
        assert list(row) == [
            "conversationId",
            "messageId",
            "model",
            "userMessage",
            "assistantResponse",
            "products",
            "rawOperations",
            "timestamp",
            "status",
            "_debug",
        ]
        assert row["conversationId"] == "conv-1"
        assert row["messageId"] == "msg-1"
        assert row["products"] is None
        assert row["rawOperations"][1] == {"path": None, "value": " for your café ☕ desk"}

    def test_product_fields_omitted_when_unknown(self) -> None:
        record = build_capture_record({}, _result('product2","Hub"]'), timestamp=0)
        assert record is not None
        assert record_to_dict(record)["products"] == [{"index": 2, "name": "Hub"}]
