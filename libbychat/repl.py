"""Interactive input loop for libbychat."""

from pathlib import Path
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory
from prompt_toolkit.lexers import PygmentsLexer
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.styles import Style as PromptStyle
from pygments.lexers.markup import MarkdownLexer
from rich.console import Console

from .chat import ChatSession
from .config import CONFIG_DIR
from .logging import ConversationLogger

HISTORY_FILE = CONFIG_DIR / "history"


class ChatREPL:
    """Reads user messages and submits them to the chat session.

    Stream output is printed by the receive thread; the prompt is kept
    below it with ``patch_stdout``.
    """

    def __init__(
        self,
        chat: ChatSession,
        console: Optional[Console] = None,
        logger: Optional[ConversationLogger] = None,
        history_path: Optional[Path] = None,
    ):
        self.chat = chat
        self.console = console or Console()
        self.logger = logger
        self.history_path = history_path or HISTORY_FILE
        self.session = None
        self.commands = {
            "/help": self.cmd_help,
            "/log": self.cmd_log,
            "exit": self.cmd_exit,
            "/exit": self.cmd_exit,
            "quit": self.cmd_exit,
            "/quit": self.cmd_exit,
        }

    def _setup_session(self) -> PromptSession:
        """Configure prompt_toolkit session."""
        style = PromptStyle.from_dict({
            'prompt': '#00aa00 bold',
        })

        command_completer = WordCompleter(
            ['/help', '/log', '/exit', '/quit'],
            ignore_case=True
        )

        self.history_path.parent.mkdir(parents=True, exist_ok=True)

        return PromptSession(
            history=FileHistory(str(self.history_path)),
            lexer=PygmentsLexer(MarkdownLexer),
            style=style,
            completer=command_completer,
        )

    def handle_input(self, user_input: str) -> bool:
        """Process one line of input. Returns True to quit."""
        user_input = user_input.strip()
        if not user_input:
            return False

        cmd = user_input.split()[0].lower()
        if cmd in self.commands:
            return bool(self.commands[cmd](user_input))

        self.chat.submit(user_input)
        return False

    def run(self) -> None:
        """Start the input loop."""
        self.session = self._setup_session()
        with patch_stdout():
            while True:
                try:
                    user_input = self.session.prompt("You> ")
                    if self.handle_input(user_input):
                        break
                except KeyboardInterrupt:
                    self.console.print("[dim]Use 'exit' to quit[/]")
                    continue
                except EOFError:
                    break

        self.console.print("[green]Goodbye![/]")

    def cmd_help(self, args: str) -> None:
        """Show help message."""
        self.console.print("""
[bold]Commands:[/]
  /help     Show this help
  /log      Show the conversation log file
  /exit     Disconnect and quit

Anything else is sent to the assistant. Press Enter to send.
""")

    def cmd_log(self, args: str) -> None:
        """Show log file location and entry count."""
        if self.logger is None:
            self.console.print("[dim]Logging disabled[/]")
        else:
            count = len(self.logger.read_entries())
            self.console.print(f"[dim]Log: {self.logger.log_path} ({count} entries)[/]")

    def cmd_exit(self, args: str) -> bool:
        """Exit the REPL."""
        return True
