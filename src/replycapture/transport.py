"""Byte chunks to complete text lines.

Chunks arrive at arbitrary boundaries: a multi-byte character or a line
can be split across any number of them. ``LineDecoder`` keeps the
incremental decoder state and the trailing partial line between calls, so
one decoder must only ever be fed by one reader.
"""
from __future__ import annotations

import codecs
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator


class LineDecoder:
    """Incremental bytes-to-lines decoder.

    Malformed byte sequences decode to U+FFFD instead of raising. Lines are
    split on ``\\n``; a single trailing ``\\r`` is removed from each line.
    """

    __slots__ = ("_decoder", "_buffer", "_flushed")

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._flushed = False

    @property
    def pending(self) -> str:
        """Buffered text that is not yet a complete line."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Decode one chunk and return every line it completes."""
        if self._flushed:
            raise ValueError("LineDecoder already flushed")
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk, final=False)
        return self._drain()

    def flush(self) -> list[str]:
        """Finalize the decoder; the leftover partial line becomes a line."""
        if self._flushed:
            return []
        self._flushed = True
        self._buffer += self._decoder.decode(b"", final=True)
        lines = self._drain()
        if self._buffer:
            lines.append(_strip_cr(self._buffer))
            self._buffer = ""
        return lines

    def _drain(self) -> list[str]:
        if "\n" not in self._buffer:
            return []
        *complete, self._buffer = self._buffer.split("\n")
        return [_strip_cr(line) for line in complete]


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


def iter_lines(chunks: Iterable[bytes], *, encoding: str = "utf-8") -> Iterator[str]:
    """Yield complete lines from a synchronous chunk iterable.

    Errors raised by ``chunks`` propagate after the lines already yielded.
    """
    decoder = LineDecoder(encoding)
    for chunk in chunks:
        yield from decoder.feed(chunk)
    yield from decoder.flush()


async def aiter_lines(
    chunks: AsyncIterable[bytes],
    *,
    encoding: str = "utf-8",
) -> AsyncIterator[str]:
    """Async twin of ``iter_lines``; awaits one chunk at a time."""
    decoder = LineDecoder(encoding)
    async for chunk in chunks:
        for line in decoder.feed(chunk):
            yield line
    for line in decoder.flush():
        yield line
