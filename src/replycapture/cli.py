"""Replay a captured SSE response body through the reconstruction engine.

Usage:
    reply-capture captures/reply.sse --request captures/request.json \
      --chunk-size 64 --verbose

Structured JSON output goes to stdout; human messages go to stderr.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import orjson

from replycapture.capture import capture_response, record_to_dict
from replycapture.config import DEFAULT_CONFIG, StreamConfig, config_from_env, load_stream_config
from replycapture.io_utils import dump_json_bytes, load_json, save_json

log = logging.getLogger("reply_capture")

EXIT_OK = 0
EXIT_EMPTY = 1
EXIT_BAD_INPUT = 2


def split_chunks(body: bytes, chunk_size: int) -> list[bytes]:
    """Split ``body`` into fixed-size chunks; ``chunk_size <= 0`` keeps it whole."""
    if chunk_size <= 0 or len(body) <= chunk_size:
        return [body] if body else []
    return [body[i:i + chunk_size] for i in range(0, len(body), chunk_size)]


async def _aiter_chunks(chunks: list[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reply-capture",
        description="Rebuild an assistant reply from a captured SSE response body.",
    )
    parser.add_argument("stream", type=Path, help="Raw response body (SSE bytes)")
    parser.add_argument(
        "--request",
        type=Path,
        default=None,
        help="JSON request body sent with the conversation request",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Request URL, recorded in the debug block",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=0,
        help="Deliver the body in chunks of N bytes (0 = one chunk)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON stream config overriding protocol defaults",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the record to this file instead of stdout",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose logging",
    )
    return parser


def _load_config(path: Path | None) -> StreamConfig:
    base = load_stream_config(path) if path is not None else DEFAULT_CONFIG
    return config_from_env(base)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = _load_config(args.config)
        body = args.stream.read_bytes()
        request_body: Any = load_json(args.request) if args.request is not None else None
    except (OSError, ValueError, orjson.JSONDecodeError) as exc:
        log.error("Cannot read input: %s", exc)
        return EXIT_BAD_INPUT

    chunks = split_chunks(body, args.chunk_size)
    log.info("Replaying %d bytes in %d chunk(s) from %s", len(body), len(chunks), args.stream)
    record = asyncio.run(
        capture_response(request_body, _aiter_chunks(chunks), url=args.url, config=config),
    )
    if record is None:
        log.error("No assistant reply could be reconstructed")
        return EXIT_EMPTY

    payload = record_to_dict(record)
    if args.output is not None:
        save_json(payload, args.output)
        log.info("Wrote record to %s", args.output)
    else:
        sys.stdout.buffer.write(dump_json_bytes(payload))
        sys.stdout.buffer.write(b"\n")
    log.info(
        "Reconstructed %d chars, %d product(s), status=%s",
        len(record.assistant_response),
        len(record.products or ()),
        record.status,
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
