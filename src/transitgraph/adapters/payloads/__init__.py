"""JSON change payloads: pydantic schema and translation to typed changes."""

from __future__ import annotations

from .schema import (
    PAYLOAD_MODELS,
    ChangeEntry,
    ChangePayloadDocument,
    OperatorPayload,
    RoutePayload,
    RouteStopPatternPayload,
    ScheduleStopPairPayload,
    StopPayload,
)
from .translator import (
    PayloadValidationError,
    decode_entry,
    decode_payload,
    encode_change,
    encode_changes,
    encode_changes_json,
    parse_payload,
)

__all__ = [
    "PAYLOAD_MODELS",
    "ChangeEntry",
    "ChangePayloadDocument",
    "OperatorPayload",
    "PayloadValidationError",
    "RoutePayload",
    "RouteStopPatternPayload",
    "ScheduleStopPairPayload",
    "StopPayload",
    "decode_entry",
    "decode_payload",
    "encode_change",
    "encode_changes",
    "encode_changes_json",
    "parse_payload",
]
