"""Core types for stream reconstruction.

Every layer of the pipeline shares these types. Operation variants and
result records are frozen; only ``ReconstructionState`` (in
``replycapture.reconciliation``) is mutable, and it is owned by exactly one
reconstruction run.

Type hierarchy:
  Ok[T] / Err[E]        Result type for payload parsing
  Frame                 One classified SSE line
  SubOp                 One entry of a patch batch
  PatchBatch / BareOpArray / DirectAppend / RawValue / LegacySnapshot
                        Operation variants (closed union ``Operation``)
  RawOperation          Audit log entry for an applied text append
  Product               Indexed product reference found in reply text
  ReconstructionResult  Immutable snapshot of a finished run
  CaptureRecord         Record handed to the storage layer
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


type FrameKind = Literal["data", "done", "comment", "blank", "other"]
type RunStatus = Literal["complete", "partial", "empty"]


# ---------------------------------------------------------------------------
# Result ADT
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Success case of Result[T, E].

    Usage::

        match parse_payload(line):
            case Ok(value=obj): ...
            case Err(error=reason): ...
    """
    value: T


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failure case of Result[T, E]; keeps the reason instead of a bare None."""
    error: E


type Result[T, E] = Ok[T] | Err[E]


@dataclass(frozen=True, slots=True)
class Frame:
    """One decoded line, classified by the event framer."""

    kind: FrameKind
    payload: str = ""

    def __post_init__(self) -> None:
        if self.payload and self.kind != "data":
            raise ValueError(f"only data frames carry a payload, got kind {self.kind!r}")


# ---------------------------------------------------------------------------
# Operation variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SubOp:
    """Single ``{p, o, v}`` entry inside a batch."""

    path: str | None
    op_kind: str | None
    value: object


@dataclass(frozen=True, slots=True)
class PatchBatch:
    """Nested batch of sub-operations, ``{"o": "patch", "v": [...]}``."""

    ops: tuple[SubOp, ...]


@dataclass(frozen=True, slots=True)
class BareOpArray:
    """List of sub-operations without batch or path markers."""

    ops: tuple[SubOp, ...]


@dataclass(frozen=True, slots=True)
class DirectAppend:
    """``{"p": path, "o": "append", "v": str}``."""

    path: str
    value: str


@dataclass(frozen=True, slots=True)
class RawValue:
    """``{"v": str}``, a continuation of the current append target."""

    value: str


@dataclass(frozen=True, slots=True)
class LegacySnapshot:
    """Cumulative ``message.content.parts`` resend of the whole reply so far."""

    parts: tuple[str, ...]
    message_id: str | None = None

    def joined(self) -> str:
        return "".join(self.parts)


type Operation = PatchBatch | BareOpArray | DirectAppend | RawValue | LegacySnapshot


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RawOperation:
    """Audit entry for one text append, kept in arrival order."""

    path: str | None
    value: str


@dataclass(frozen=True, slots=True)
class Product:
    """Product reference; identity is ``index``."""

    index: int
    name: str | None = None
    url: str | None = None
    turn_ref: str | None = None

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"index must be >= 0, got {self.index}")


@dataclass(frozen=True, slots=True)
class ReconstructionResult:
    """Immutable view of a reconstruction run once the stream has ended."""

    conversation_id: str | None
    message_id: str | None
    text: str
    using_append_mode: bool
    raw_operations: tuple[RawOperation, ...]
    status: RunStatus
    error: str | None = None
    frames_seen: int = 0
    parse_errors: int = 0

    def __post_init__(self) -> None:
        if self.status == "empty" and self.text:
            raise ValueError("empty result cannot carry text")
        if self.status == "partial" and not self.error:
            raise ValueError("partial result must record the stream error")


@dataclass(frozen=True, slots=True)
class CaptureRecord:
    """Finalized record forwarded to the ingestion layer."""

    conversation_id: str
    message_id: str | None
    model: str
    user_message: str
    assistant_response: str
    products: tuple[Product, ...] | None
    raw_operations: tuple[RawOperation, ...]
    timestamp: int
    status: RunStatus = "complete"
    debug: dict[str, object] | None = None

    def __post_init__(self) -> None:
        if not self.conversation_id:
            raise ValueError("conversation_id cannot be empty")
        if self.timestamp < 0:
            raise ValueError(f"timestamp must be >= 0, got {self.timestamp}")
        if self.products is not None:
            indexes = [product.index for product in self.products]
            if len(indexes) != len(set(indexes)):
                raise ValueError(f"duplicate product indexes: {indexes}")


def product_to_dict(product: Product) -> dict[str, object]:
    """Serialize a product, omitting fields that were never seen."""

    row: dict[str, object] = {"index": product.index}
    if product.name is not None:
        row["name"] = product.name
    if product.url is not None:
        row["url"] = product.url
    if product.turn_ref is not None:
        row["turnRef"] = product.turn_ref
    return row


def raw_operation_to_dict(op: RawOperation) -> dict[str, object]:
    return {"path": op.path, "value": op.value}
