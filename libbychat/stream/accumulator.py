"""Turn accumulation state machine.

At most one assistant turn is active at a time. Deltas append to its
reasoning and content buffers; ``[DONE]`` or a ``finish_reason`` of ``stop``
closes it. Each applied frame yields the events the transcript needs, in the
order they must be handled.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .decoder import ErrorSignal, EventPayload, Frame
from .deltas import DoneSignal, RawTextDelta, StructuredDelta, parse_delta


@dataclass
class Turn:
    """One assistant response being streamed in."""
    reasoning_text: str = ""
    content_text: str = ""
    active: bool = True

    def append_reasoning(self, text: str) -> None:
        self.reasoning_text += text

    def append_content(self, text: str) -> None:
        self.content_text += text


@dataclass(frozen=True)
class TurnStarted:
    turn: Turn


@dataclass(frozen=True)
class ReasoningUpdated:
    turn: Turn


@dataclass(frozen=True)
class ContentUpdated:
    turn: Turn


@dataclass(frozen=True)
class TurnEnded:
    turn: Turn


@dataclass(frozen=True)
class SystemNotice:
    """Out-of-band message for the user; does not touch the turn."""
    text: str


TurnEvent = Union[TurnStarted, ReasoningUpdated, ContentUpdated, TurnEnded, SystemNotice]


class TurnAccumulator:
    """Owns the single active ``Turn`` of a transport session."""

    def __init__(self):
        self._turn: Optional[Turn] = None

    @property
    def current(self) -> Optional[Turn]:
        """The active turn, or None between turns."""
        return self._turn

    def apply(self, frame: Frame) -> list[TurnEvent]:
        """Apply one frame and return the resulting events in order."""
        if isinstance(frame, ErrorSignal):
            return [SystemNotice(frame.raw)]
        if not isinstance(frame, EventPayload):
            return []

        delta = parse_delta(frame.raw)
        if isinstance(delta, DoneSignal):
            return self._end()

        events: list[TurnEvent] = []
        turn = self._turn
        if turn is None:
            turn = self._turn = Turn()
            events.append(TurnStarted(turn))

        if isinstance(delta, RawTextDelta):
            reasoning, content, finished = None, delta.text, False
        else:
            reasoning, content, finished = delta.reasoning, delta.content, delta.finished

        if reasoning:
            turn.append_reasoning(reasoning)
            events.append(ReasoningUpdated(turn))
        if content:
            turn.append_content(content)
            events.append(ContentUpdated(turn))
        if finished:
            events.extend(self._end())
        return events

    def abandon(self) -> Optional[Turn]:
        """Forget the active turn without ending it (connection lost)."""
        turn, self._turn = self._turn, None
        return turn

    def _end(self) -> list[TurnEvent]:
        turn = self._turn
        if turn is None:
            return []
        turn.active = False
        self._turn = None
        return [TurnEnded(turn)]
