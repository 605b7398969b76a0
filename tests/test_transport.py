"""Tests for the websocket transport session."""

from unittest.mock import MagicMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, InvalidURI

from libbychat.transport import TransportError, TransportSession, private_ws_url


def test_private_ws_url():
    assert private_ws_url("http://10.0.0.1:9123") == "ws://10.0.0.1:9123/websocket/private_ws"
    assert private_ws_url("https://lqos.example/") == "wss://lqos.example/websocket/private_ws"
    assert private_ws_url("http://h", "/other") == "ws://h/other"


@pytest.fixture
def ws():
    return MagicMock()


@pytest.fixture
def connect(ws):
    with patch("libbychat.transport.connect", return_value=ws) as mock_connect:
        yield mock_connect


def test_run_delivers_messages_until_close(connect, ws):
    listener = MagicMock()
    ws.recv.side_effect = ["data: a\n", b"data: b\n", ConnectionClosedOK(None, None)]

    session = TransportSession("ws://h/p", listener, origin="http://h", open_timeout=3)
    session.run()

    connect.assert_called_once_with("ws://h/p", origin="http://h", open_timeout=3)
    listener.on_open.assert_called_once_with(session)
    assert [c.args[0] for c in listener.on_message.call_args_list] == ["data: a\n", b"data: b\n"]
    listener.on_close.assert_called_once_with("Disconnected")
    ws.close.assert_called_once()
    assert not session.is_open


def test_abnormal_close_reason(connect, ws):
    listener = MagicMock()
    ws.recv.side_effect = ConnectionClosedError(None, None)

    TransportSession("ws://h/p", listener).run()

    reason = listener.on_close.call_args.args[0]
    assert reason.startswith("Disconnected: ")


@pytest.mark.parametrize("error", [OSError("refused"), TimeoutError("slow"), InvalidURI("x", "bad")])
def test_connect_failure_is_reported(error):
    listener = MagicMock()
    with patch("libbychat.transport.connect", side_effect=error):
        TransportSession("ws://h/p", listener).run()

    listener.on_open.assert_not_called()
    assert listener.on_close.call_args.args[0].startswith("Connection failed: ")


def test_send_from_on_open(connect, ws):
    listener = MagicMock()
    listener.on_open.side_effect = lambda session: session.send({"Chatbot": {"browser_ts_ms": 1}})
    ws.recv.side_effect = ConnectionClosedOK(None, None)

    TransportSession("ws://h/p", listener).run()

    ws.send.assert_called_once_with('{"Chatbot":{"browser_ts_ms":1}}')


def test_send_when_not_connected():
    session = TransportSession("ws://h/p", MagicMock())
    with pytest.raises(TransportError):
        session.send({"ChatbotUserInput": {"text": "hi"}})


def test_close_before_connect_is_noop():
    session = TransportSession("ws://h/p", MagicMock())
    session.close()
    assert not session.is_open


def test_listener_failure_still_closes(connect, ws):
    listener = MagicMock()
    listener.on_message.side_effect = RuntimeError("sink broke")
    ws.recv.return_value = "data: a\n"

    session = TransportSession("ws://h/p", listener)
    session.run()

    listener.on_close.assert_called_once_with("Disconnected: sink broke")
    ws.close.assert_called_once()
    assert not session.is_open
