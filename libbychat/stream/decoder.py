"""Incremental line decoder for the chatbot event stream.

The websocket delivers the upstream event stream in arbitrary pieces. Lines
are only classified once their terminating newline has arrived; whatever
follows the last newline is kept as the carry for the next call.

Grammar (one logical line each):
1. ``data: <payload>`` - an event payload
2. ``[error] <message>`` - an error reported by the server
3. anything else (``event:``, ``id:``, ``retry:``, blank lines) - ignored
"""

import codecs
import re
from dataclasses import dataclass
from typing import Union

DATA_PREFIX = "data:"
ERROR_PREFIX = "[error]"

_LINE_SPLIT = re.compile(r"\r?\n")


@dataclass(frozen=True)
class StreamCarry:
    """Unterminated tail of the stream, waiting for its newline."""
    text: str = ""


@dataclass(frozen=True)
class EventPayload:
    """A ``data:`` line; ``raw`` is the trimmed remainder."""
    raw: str


@dataclass(frozen=True)
class ErrorSignal:
    """An ``[error]`` line, kept verbatim (trimmed)."""
    raw: str


@dataclass(frozen=True)
class Ignorable:
    """Any other line, including empty ones."""
    raw: str = ""


Frame = Union[EventPayload, ErrorSignal, Ignorable]


def classify_line(line: str) -> Frame:
    """Classify one complete line (without its line terminator)."""
    trimmed = line.strip()
    if not trimmed:
        return Ignorable()
    if trimmed.startswith(DATA_PREFIX):
        return EventPayload(trimmed[len(DATA_PREFIX):].strip())
    if trimmed.startswith(ERROR_PREFIX):
        return ErrorSignal(trimmed)
    return Ignorable(trimmed)


def decode(carry: StreamCarry, chunk: str) -> tuple[StreamCarry, list[Frame]]:
    """Append a chunk to the carry and classify every completed line.

    Args:
        carry: Carry returned by the previous call (``StreamCarry()`` at start)
        chunk: Newly received text

    Returns:
        The new carry and the frames for all lines completed by this chunk,
        in stream order.
    """
    if not chunk:
        return carry, []
    lines = _LINE_SPLIT.split(carry.text + chunk)
    tail = lines.pop()
    return StreamCarry(tail), [classify_line(line) for line in lines]


class FrameDecoder:
    """Holds the carry for one transport session.

    Text chunks go through ``feed``; binary chunks go through ``feed_bytes``,
    which decodes UTF-8 incrementally so a character split between two
    websocket messages is reassembled instead of replaced.
    """

    def __init__(self):
        self._carry = StreamCarry()
        self._bytes = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def carry(self) -> StreamCarry:
        return self._carry

    def feed(self, chunk: str) -> list[Frame]:
        """Feed a text chunk and return the frames it completes."""
        self._carry, frames = decode(self._carry, chunk)
        return frames

    def feed_bytes(self, chunk: bytes) -> list[Frame]:
        """Feed a binary chunk and return the frames it completes."""
        return self.feed(self._bytes.decode(chunk))

    def reset(self) -> None:
        """Drop any carried text, e.g. when a new connection starts."""
        self._carry = StreamCarry()
        self._bytes.reset()
