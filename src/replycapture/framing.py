"""Line-oriented SSE framing: keep data payloads, drop everything else."""
from __future__ import annotations

from collections.abc import Iterable, Iterator

from replycapture.config import DEFAULT_CONFIG, StreamConfig
from replycapture.types import Frame

_BLANK = Frame("blank")
_COMMENT = Frame("comment")
_DONE = Frame("done")
_OTHER = Frame("other")


def classify_line(line: str, config: StreamConfig = DEFAULT_CONFIG) -> Frame:
    """Classify one decoded line.

    ``data:`` without the trailing space is accepted too; the SSE grammar
    makes the space optional.
    """
    if not line.strip():
        return _BLANK
    if line.startswith(":"):
        return _COMMENT
    prefix = config.data_prefix
    if line.startswith(prefix):
        payload = line[len(prefix):]
    else:
        bare = prefix.rstrip()
        if not line.startswith(bare):
            return _OTHER
        payload = line[len(bare):]
    if payload.strip() == config.done_sentinel:
        return _DONE
    return Frame("data", payload)


def iter_frames(
    lines: Iterable[str],
    config: StreamConfig = DEFAULT_CONFIG,
) -> Iterator[Frame]:
    for line in lines:
        yield classify_line(line, config)


def iter_data_payloads(
    lines: Iterable[str],
    config: StreamConfig = DEFAULT_CONFIG,
) -> Iterator[str]:
    """Yield the payload of every data frame.

    The end sentinel is dropped but does not stop iteration: lines after it
    are still classified.
    """
    for frame in iter_frames(lines, config):
        if frame.kind == "data":
            yield frame.payload
