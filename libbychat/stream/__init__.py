"""Stream decoding and turn accumulation."""

from .accumulator import (
    ContentUpdated,
    ReasoningUpdated,
    SystemNotice,
    Turn,
    TurnAccumulator,
    TurnEnded,
    TurnEvent,
    TurnStarted,
)
from .decoder import (
    ErrorSignal,
    EventPayload,
    Frame,
    FrameDecoder,
    Ignorable,
    StreamCarry,
    classify_line,
    decode,
)
from .deltas import Delta, DoneSignal, RawTextDelta, StructuredDelta, parse_delta

__all__ = [
    "ContentUpdated",
    "Delta",
    "DoneSignal",
    "ErrorSignal",
    "EventPayload",
    "Frame",
    "FrameDecoder",
    "Ignorable",
    "RawTextDelta",
    "ReasoningUpdated",
    "StreamCarry",
    "StructuredDelta",
    "SystemNotice",
    "Turn",
    "TurnAccumulator",
    "TurnEnded",
    "TurnEvent",
    "TurnStarted",
    "classify_line",
    "decode",
    "parse_delta",
]
