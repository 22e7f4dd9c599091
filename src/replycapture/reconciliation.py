"""Merge operations into one reconstruction state.

Incremental appends and cumulative snapshots can both describe the same
reply. Appends are concatenated in arrival order; a snapshot only replaces
the accumulated text when it is strictly longer, so the text never shrinks
and snapshot text is never concatenated onto append text.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from replycapture.config import DEFAULT_CONFIG, StreamConfig
from replycapture.operations import payload_identifiers
from replycapture.types import (
    BareOpArray,
    DirectAppend,
    LegacySnapshot,
    Operation,
    PatchBatch,
    RawOperation,
    RawValue,
    ReconstructionResult,
    RunStatus,
    SubOp,
)


@dataclass(slots=True)
class ReconstructionState:
    """Mutable state of one reconstruction run. Single owner, single writer."""

    conversation_id: str | None = None
    message_id: str | None = None
    accumulated_text: str = ""
    using_append_mode: bool = False
    raw_operations: list[RawOperation] = field(default_factory=list)
    frames_seen: int = 0
    parse_errors: int = 0
    ignored_payloads: int = 0
    done_seen: bool = False

    def set_conversation_id(self, value: str | None) -> None:
        if value and self.conversation_id is None:
            self.conversation_id = value

    def set_message_id(self, value: str | None) -> None:
        if value and self.message_id is None:
            self.message_id = value

    def append(self, path: str | None, value: str) -> None:
        if not value:
            return
        self.accumulated_text += value
        self.using_append_mode = True
        self.raw_operations.append(RawOperation(path=path, value=value))

    def to_result(self, *, error: str | None = None) -> ReconstructionResult:
        """Freeze the state. Any stream error makes the result partial."""
        status: RunStatus
        if error:
            status = "partial"
        elif self.accumulated_text:
            status = "complete"
        else:
            status = "empty"
        return ReconstructionResult(
            conversation_id=self.conversation_id,
            message_id=self.message_id,
            text=self.accumulated_text,
            using_append_mode=self.using_append_mode,
            raw_operations=tuple(self.raw_operations),
            status=status,
            error=error,
            frames_seen=self.frames_seen,
            parse_errors=self.parse_errors,
        )


def _apply_sub_op(state: ReconstructionState, op: SubOp, config: StreamConfig) -> None:
    if op.path == config.content_path and op.op_kind == "append" and isinstance(op.value, str):
        state.append(op.path, op.value)


def apply_operation(
    state: ReconstructionState,
    op: Operation,
    config: StreamConfig = DEFAULT_CONFIG,
) -> None:
    """Apply one operation to ``state`` in place."""
    match op:
        case PatchBatch(ops=ops) | BareOpArray(ops=ops):
            for sub_op in ops:
                _apply_sub_op(state, sub_op, config)
        case DirectAppend(path=path, value=value):
            if path == config.content_path:
                state.append(path, value)
        case RawValue(value=value):
            state.append(None, value)
        case LegacySnapshot():
            candidate = op.joined()
            if len(candidate) > len(state.accumulated_text):
                state.accumulated_text = candidate
                state.set_message_id(op.message_id)


def observe_identifiers(state: ReconstructionState, obj: Any) -> None:
    """Record conversation/message ids carried directly on a payload."""
    conversation_id, message_id = payload_identifiers(obj)
    state.set_conversation_id(conversation_id)
    state.set_message_id(message_id)
