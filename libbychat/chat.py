"""Chat session: wires the transport, stream decoding and the transcript.

Data flows transport -> FrameDecoder -> TurnAccumulator -> render -> sink.
Each received chunk is decoded, accumulated and rendered synchronously
before the next one is handled.
"""

import threading
from typing import Any, Optional, Union

from . import envelopes
from .logging import ConversationLogger
from .render.markdown import DEFAULT_ORIGIN, render
from .stream import (
    ContentUpdated,
    FrameDecoder,
    ReasoningUpdated,
    SystemNotice,
    TurnAccumulator,
    TurnEnded,
    TurnEvent,
    TurnStarted,
)
from .transcript import TranscriptSink
from .transport import TransportError, TransportSession


class ChatSession:
    """Listener for one transport session.

    Owns the decoder carry and the active turn, so a new ``ChatSession`` is
    needed per connection. User input may arrive on another thread; sink
    access is serialized with a lock.
    """

    def __init__(
        self,
        sink: TranscriptSink,
        origin: str = DEFAULT_ORIGIN,
        logger: Optional[ConversationLogger] = None,
        assistant_name: str = "Libby",
    ):
        self.sink = sink
        self.origin = origin
        self.logger = logger
        self.assistant_name = assistant_name
        self.decoder = FrameDecoder()
        self.accumulator = TurnAccumulator()
        self.transport: Optional[TransportSession] = None
        self._handle: Any = None
        self._lock = threading.RLock()

    @property
    def connected(self) -> bool:
        return self.transport is not None

    # Transport listener

    def on_open(self, session: TransportSession) -> None:
        with self._lock:
            self.transport = session
            self._notice(f"Connected to {self.assistant_name}")
            session.send(envelopes.session_start())

    def on_message(self, data: Union[str, bytes]) -> None:
        with self._lock:
            if isinstance(data, bytes):
                frames = self.decoder.feed_bytes(data)
            else:
                frames = self.decoder.feed(data)
            for frame in frames:
                if self.logger:
                    self.logger.log_stream_event(type(frame).__name__, frame.raw)
                for event in self.accumulator.apply(frame):
                    self._dispatch(event)

    def on_close(self, reason: str) -> None:
        with self._lock:
            self.transport = None
            # The active turn is left as last rendered, not completed.
            if self.accumulator.abandon() is not None and self._handle is not None:
                self.sink.abandon_turn(self._handle)
            self._handle = None
            self._notice(reason)

    # User input

    def submit(self, text: str) -> bool:
        """Send a user message. Returns False if it was blank or not sent."""
        envelope = envelopes.user_input(text)
        if envelope is None:
            return False
        with self._lock:
            if self.transport is None:
                self._notice("Not connected")
                return False
            message = envelope["ChatbotUserInput"]["text"]
            self.sink.show_user_message(message)
            if self.logger:
                self.logger.log_user_input(message)
            try:
                self.transport.send(envelope)
            except TransportError as e:
                self._notice(str(e))
                return False
        return True

    # Internals

    def _dispatch(self, event: TurnEvent) -> None:
        if isinstance(event, SystemNotice):
            self._notice(event.text)
            if self.logger:
                self.logger.log_error(event.text)
        elif isinstance(event, TurnStarted):
            self._handle = self.sink.begin_assistant_turn()
        elif isinstance(event, ReasoningUpdated):
            self.sink.update_reasoning(self._handle, event.turn.reasoning_text)
        elif isinstance(event, ContentUpdated):
            self.sink.update_content(self._handle, render(event.turn.content_text, self.origin))
        elif isinstance(event, TurnEnded):
            self.sink.end_turn(self._handle)
            self._handle = None
            if self.logger:
                self.logger.log_turn(event.turn.content_text, event.turn.reasoning_text)

    def _notice(self, text: str) -> None:
        self.sink.show_system_notice(text)
        if self.logger:
            self.logger.log_notice(text)
