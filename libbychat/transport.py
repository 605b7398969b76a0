"""Websocket transport to the node manager's private chatbot endpoint.

Wraps the ``websockets`` synchronous client. ``run()`` blocks for the life of
the connection and reports everything to a listener:

    on_open(session)   connected, envelopes may be sent
    on_message(data)   one received message (str, or bytes for binary frames)
    on_close(reason)   connection finished or could not be established

There is no retry or reconnect; a closed session stays closed.
"""

import threading
from typing import Optional, Protocol, Union
from urllib.parse import urlsplit

from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException
from websockets.sync.client import ClientConnection, connect

from .envelopes import encode

DEFAULT_WS_PATH = "/websocket/private_ws"


def private_ws_url(origin: str, path: str = DEFAULT_WS_PATH) -> str:
    """Websocket URL for ``path`` on the same host as ``origin``."""
    parts = urlsplit(origin)
    scheme = "wss://" if parts.scheme == "https" else "ws://"
    return scheme + parts.netloc + path


class TransportListener(Protocol):
    def on_open(self, session: "TransportSession") -> None: ...

    def on_message(self, data: Union[str, bytes]) -> None: ...

    def on_close(self, reason: str) -> None: ...


class TransportError(Exception):
    """Raised when sending on a session that is not connected."""
    pass


class TransportSession:
    """One websocket connection and its receive loop."""

    def __init__(
        self,
        url: str,
        listener: TransportListener,
        origin: Optional[str] = None,
        open_timeout: float = 10.0,
    ):
        self.url = url
        self.listener = listener
        self.origin = origin
        self.open_timeout = open_timeout
        self._ws: Optional[ClientConnection] = None
        self._send_lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    def run(self) -> None:
        """Connect and deliver messages until the connection ends."""
        try:
            self._ws = connect(
                self.url,
                origin=self.origin,
                open_timeout=self.open_timeout,
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            self.listener.on_close(f"Connection failed: {e}")
            return

        reason = "Disconnected"
        try:
            self.listener.on_open(self)
            while True:
                self.listener.on_message(self._ws.recv())
        except ConnectionClosedOK:
            pass
        except ConnectionClosed as e:
            reason = f"Disconnected: {e}"
        except Exception as e:
            # A failing listener ends the session like any other close.
            reason = f"Disconnected: {e}"
        finally:
            ws, self._ws = self._ws, None
            ws.close()
        self.listener.on_close(reason)

    def send(self, envelope: dict) -> None:
        """Serialize and send one envelope."""
        ws = self._ws
        if ws is None:
            raise TransportError("Not connected")
        with self._send_lock:
            try:
                ws.send(encode(envelope))
            except ConnectionClosed as e:
                raise TransportError(f"Connection closed: {e}") from e

    def close(self) -> None:
        """Close the connection; ``run()`` then reports the close."""
        ws = self._ws
        if ws is not None:
            ws.close()
