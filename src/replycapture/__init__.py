"""Rebuild streamed assistant replies from intercepted SSE responses."""

from replycapture.capture import (
    build_capture_record,
    capture_response,
    extract_user_message,
    is_conversation_request,
    record_to_dict,
)
from replycapture.config import DEFAULT_CONFIG, StreamConfig, load_stream_config
from replycapture.engine import (
    StreamReconstructor,
    reconstruct_bytes,
    reconstruct_chunks,
    reconstruct_stream,
)
from replycapture.entities import extract_products
from replycapture.framing import classify_line, iter_data_payloads
from replycapture.operations import classify_operation, parse_payload
from replycapture.reconciliation import ReconstructionState, apply_operation
from replycapture.sanitizer import SANITIZE_PASSES, sanitize
from replycapture.transport import LineDecoder, aiter_lines, iter_lines
from replycapture.types import (
    BareOpArray,
    CaptureRecord,
    DirectAppend,
    LegacySnapshot,
    Operation,
    PatchBatch,
    Product,
    RawOperation,
    RawValue,
    ReconstructionResult,
    SubOp,
)

__all__ = [
    "BareOpArray",
    "CaptureRecord",
    "DEFAULT_CONFIG",
    "DirectAppend",
    "LegacySnapshot",
    "LineDecoder",
    "Operation",
    "PatchBatch",
    "Product",
    "RawOperation",
    "RawValue",
    "ReconstructionResult",
    "ReconstructionState",
    "SANITIZE_PASSES",
    "StreamConfig",
    "StreamReconstructor",
    "SubOp",
    "aiter_lines",
    "apply_operation",
    "build_capture_record",
    "capture_response",
    "classify_line",
    "classify_operation",
    "extract_products",
    "extract_user_message",
    "is_conversation_request",
    "iter_data_payloads",
    "iter_lines",
    "load_stream_config",
    "parse_payload",
    "reconstruct_bytes",
    "reconstruct_chunks",
    "reconstruct_stream",
    "record_to_dict",
    "sanitize",
]
