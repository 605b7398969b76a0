"""Decoding of ``data:`` payloads into deltas.

Payloads are OpenAI-style chat completion chunks::

    {"choices": [{"delta": {"reasoning": "...", "content": "..."},
                  "finish_reason": "stop"}]}

Some producers send plain text heartbeats or partial lines without JSON
framing. Those are not errors: they come back as ``RawTextDelta`` and the
whole payload is shown as content.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

DONE_MARKER = "[DONE]"
FINISH_STOP = "stop"

# Reasoning models disagree on the field name (GLM, DeepSeek use the latter).
REASONING_KEYS = ("reasoning", "reasoning_content")


@dataclass(frozen=True)
class DoneSignal:
    """The ``[DONE]`` terminator."""


@dataclass(frozen=True)
class StructuredDelta:
    """A parsed chat completion chunk."""
    reasoning: Optional[str] = None
    content: Optional[str] = None
    finished: bool = False


@dataclass(frozen=True)
class RawTextDelta:
    """A payload without the structured shape, used as literal content."""
    text: str


Delta = Union[DoneSignal, StructuredDelta, RawTextDelta]


def _text_field(delta: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = delta.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _first_choice(obj: Any) -> Optional[dict]:
    if not isinstance(obj, dict):
        return None
    choices = obj.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    return choice if isinstance(choice, dict) else None


def parse_delta(raw: str) -> Delta:
    """Decode one event payload. Never raises."""
    if raw == DONE_MARKER:
        return DoneSignal()

    try:
        obj = json.loads(raw)
    except (ValueError, RecursionError):
        return RawTextDelta(raw)

    choice = _first_choice(obj)
    if choice is None:
        return RawTextDelta(raw)

    # Only a missing or falsy delta falls back; an empty object still counts.
    delta = choice.get("delta")
    if delta is None or delta in (False, 0, ""):
        return RawTextDelta(raw)
    if not isinstance(delta, dict):
        delta = {}
    return StructuredDelta(
        reasoning=_text_field(delta, *REASONING_KEYS),
        content=_text_field(delta, "content"),
        finished=choice.get("finish_reason") == FINISH_STOP,
    )
