"""Drive one reconstruction run over a response byte stream.

Two ways in:

- push: create a ``StreamReconstructor``, ``feed`` it chunks as they
  arrive, call ``finish`` once at the end;
- pull: ``reconstruct_stream`` (async) or ``reconstruct_chunks`` (sync)
  consume a chunk iterable to exhaustion.

A stream error never escapes the pull functions: reading stops and the run
is finalized with whatever it had, as a ``"partial"`` result.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Iterable

from replycapture.config import DEFAULT_CONFIG, StreamConfig
from replycapture.framing import classify_line
from replycapture.operations import classify_operation, parse_payload
from replycapture.reconciliation import (
    ReconstructionState,
    apply_operation,
    observe_identifiers,
)
from replycapture.transport import LineDecoder, aiter_lines, iter_lines
from replycapture.types import Err, Frame, Ok, ReconstructionResult

log = logging.getLogger(__name__)


class StreamReconstructor:
    """Owns the state of a single reconstruction run.

    Not safe to share between concurrent readers: the line decoder keeps a
    partial-line buffer between ``feed`` calls.
    """

    __slots__ = ("config", "state", "_decoder", "_finished")

    def __init__(
        self,
        *,
        conversation_id: str | None = None,
        config: StreamConfig = DEFAULT_CONFIG,
    ) -> None:
        self.config = config
        self.state = ReconstructionState()
        self.state.set_conversation_id(conversation_id)
        self._decoder = LineDecoder(config.encoding)
        self._finished = False

    def feed(self, chunk: bytes) -> None:
        """Process every line completed by ``chunk``."""
        if self._finished:
            raise ValueError("reconstruction run already finished")
        for line in self._decoder.feed(chunk):
            self.process_line(line)

    def process_line(self, line: str) -> None:
        self.process_frame(classify_line(line, self.config))

    def process_frame(self, frame: Frame) -> None:
        if frame.kind == "done":
            self.state.done_seen = True
        elif frame.kind == "data":
            self.process_payload(frame.payload)

    def process_payload(self, payload: str) -> None:
        state = self.state
        state.frames_seen += 1
        match parse_payload(payload):
            case Err():
                state.parse_errors += 1
            case Ok(value=obj):
                observe_identifiers(state, obj)
                op = classify_operation(obj)
                if op is None:
                    state.ignored_payloads += 1
                    return
                apply_operation(state, op, self.config)

    def finish(self, error: BaseException | None = None) -> ReconstructionResult:
        """Finalize the run exactly once.

        Without an error the decoder is flushed and the trailing partial line
        is processed. With an error decoding stops where it was.
        """
        if self._finished:
            raise ValueError("reconstruction run already finished")
        if error is None:
            for line in self._decoder.flush():
                self.process_line(line)
        self._finished = True
        state = self.state
        result = state.to_result(error=_describe(error) if error is not None else None)
        log.debug(
            "Run finished: status=%s frames=%d parse_errors=%d ignored=%d chars=%d done=%s",
            result.status,
            state.frames_seen,
            state.parse_errors,
            state.ignored_payloads,
            len(result.text),
            state.done_seen,
        )
        return result


def _describe(error: BaseException) -> str:
    message = str(error)
    name = type(error).__name__
    return f"{name}: {message}" if message else name


async def reconstruct_stream(
    chunks: AsyncIterable[bytes],
    *,
    conversation_id: str | None = None,
    config: StreamConfig = DEFAULT_CONFIG,
) -> ReconstructionResult:
    """Consume an async chunk stream one chunk at a time."""
    run = StreamReconstructor(conversation_id=conversation_id, config=config)
    try:
        async for line in aiter_lines(chunks, encoding=config.encoding):
            run.process_line(line)
    except Exception as exc:
        log.warning(
            "Stream read failed after %d frames; keeping partial result: %s",
            run.state.frames_seen,
            exc,
        )
        return run.finish(error=exc)
    return run.finish()


def reconstruct_chunks(
    chunks: Iterable[bytes],
    *,
    conversation_id: str | None = None,
    config: StreamConfig = DEFAULT_CONFIG,
) -> ReconstructionResult:
    """Synchronous twin of ``reconstruct_stream``."""
    run = StreamReconstructor(conversation_id=conversation_id, config=config)
    try:
        for line in iter_lines(chunks, encoding=config.encoding):
            run.process_line(line)
    except Exception as exc:
        log.warning(
            "Stream read failed after %d frames; keeping partial result: %s",
            run.state.frames_seen,
            exc,
        )
        return run.finish(error=exc)
    return run.finish()


def reconstruct_bytes(
    body: bytes,
    *,
    conversation_id: str | None = None,
    config: StreamConfig = DEFAULT_CONFIG,
) -> ReconstructionResult:
    """Reconstruct a fully buffered response body."""
    return reconstruct_chunks([body], conversation_id=conversation_id, config=config)
