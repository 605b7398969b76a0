from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from libbychat import __version__
from libbychat import config as config_module
from libbychat.logging import ConversationLogger
from libbychat.main import main
from libbychat.repl import ChatREPL


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.yaml")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LIBBYCHAT_ORIGIN", raising=False)


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_invalid_origin_exits(isolated):
    result = CliRunner().invoke(main, ["--origin", "ftp://nowhere"])
    assert result.exit_code == 1
    assert "Origin must be an http(s) URL" in result.output


def test_invalid_timeout_exits(isolated, tmp_path):
    (tmp_path / ".libbychat.yaml").write_text("open_timeout: abc\n")
    result = CliRunner().invoke(main, [])
    assert result.exit_code == 1
    assert "open_timeout must be a positive number" in result.output


def test_repl_commands():
    chat = MagicMock()
    repl = ChatREPL(chat, console=MagicMock())

    assert repl.handle_input("/exit") is True
    assert repl.handle_input("QUIT") is True
    assert repl.handle_input("   ") is False
    assert repl.handle_input("/help") is False
    chat.submit.assert_not_called()

    assert repl.handle_input("  how busy is the network? ") is False
    chat.submit.assert_called_once_with("how busy is the network?")


def test_repl_log_command(tmp_path):
    console = MagicMock()
    logger = ConversationLogger("ws://h/p", log_dir=tmp_path)
    logger.log_user_input("hi")
    repl = ChatREPL(MagicMock(), console=console, logger=logger)

    repl.handle_input("/log")
    message = console.print.call_args.args[0]
    assert str(logger.log_path) in message
    assert "(2 entries)" in message
