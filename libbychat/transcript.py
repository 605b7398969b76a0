"""Transcript sinks: where the conversation is shown.

A sink receives already-rendered events from the chat session and owns all
presentation. Assistant turns are addressed through the opaque handle
returned by ``begin_assistant_turn``.
"""

import html
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from .render.markdown import escape_html
from .utils.atomic_writer import AtomicFileWriter


class TranscriptSink(ABC):
    """Abstract presentation of one conversation."""

    @abstractmethod
    def show_user_message(self, text: str) -> None:
        pass

    @abstractmethod
    def begin_assistant_turn(self) -> Any:
        """Open a new assistant message and return its handle."""
        pass

    @abstractmethod
    def update_reasoning(self, handle: Any, text: str) -> None:
        pass

    @abstractmethod
    def update_content(self, handle: Any, markup: str) -> None:
        pass

    @abstractmethod
    def end_turn(self, handle: Any) -> None:
        pass

    @abstractmethod
    def show_system_notice(self, text: str) -> None:
        pass

    def abandon_turn(self, handle: Any) -> None:
        """Stop updating a turn that will never end (connection lost)."""
        pass


# Terminal styles for the generated HTML elements
_TAG = re.compile(r"<(/?)(\w+)[^>]*>")
_TAG_STYLES = {
    "strong": "bold",
    "em": "italic",
    "code": "cyan",
    "a": "underline blue",
    "h1": "bold underline",
    "h2": "bold",
    "h3": "bold",
    "th": "bold",
}


def markup_to_text(markup: str) -> Text:
    """Convert rendered markup back into styled terminal text."""
    text = Text()
    styles: list[str] = []
    pos = 0
    for match in _TAG.finditer(markup):
        if match.start() > pos:
            text.append(html.unescape(markup[pos:match.start()]), style=" ".join(styles))
        pos = match.end()
        closing, tag = match.group(1), match.group(2)
        style = _TAG_STYLES.get(tag)
        if tag == "br":
            text.append("\n")
        elif closing:
            if style in styles:
                del styles[len(styles) - 1 - styles[::-1].index(style)]
            if tag == "tr":
                text.append(" |\n")
            elif tag in ("pre", "table"):
                text.append("\n")
        else:
            if tag in ("th", "td"):
                text.append(" | ")
            elif tag in ("pre", "table"):
                text.append("\n")
            if style:
                styles.append(style)
    if pos < len(markup):
        text.append(html.unescape(markup[pos:]), style=" ".join(styles))
    return text


@dataclass
class _LiveTurn:
    live: Live
    reasoning: str = ""
    markup: str = ""
    when: float = 0.0


class ConsoleTranscript(TranscriptSink):
    """Shows the conversation in the terminal with a live panel per turn.

    Updates are throttled like a streaming markdown window; the final
    state is always drawn when the turn ends.
    """

    min_delay = 1.0 / 20  # 20fps max update rate

    def __init__(self, console: Optional[Console] = None, assistant_name: str = "Libby"):
        self.console = console or Console()
        self.assistant_name = assistant_name

    def show_user_message(self, text: str) -> None:
        self.console.print(f"[bold green]You>[/] [on grey23]{escape(text)}[/]")

    def show_system_notice(self, text: str) -> None:
        self.console.print(f"[dim]{escape(text)}[/]")

    def begin_assistant_turn(self) -> _LiveTurn:
        live = Live(
            self._panel("", ""),
            console=self.console,
            refresh_per_second=20,
            auto_refresh=False,
        )
        live.start()
        return _LiveTurn(live=live)

    def update_reasoning(self, handle: _LiveTurn, text: str) -> None:
        handle.reasoning = text
        self._refresh(handle)

    def update_content(self, handle: _LiveTurn, markup: str) -> None:
        handle.markup = markup
        self._refresh(handle)

    def end_turn(self, handle: _LiveTurn) -> None:
        self._refresh(handle, final=True)
        handle.live.stop()

    def abandon_turn(self, handle: _LiveTurn) -> None:
        self.end_turn(handle)

    def _refresh(self, handle: _LiveTurn, final: bool = False) -> None:
        now = time.monotonic()
        if not final and now - handle.when < self.min_delay:
            return
        handle.when = now
        handle.live.update(self._panel(handle.reasoning, handle.markup), refresh=True)

    def _panel(self, reasoning: str, markup: str) -> Panel:
        parts = []
        if reasoning:
            parts.append(Text(reasoning, style="dim italic"))
        parts.append(markup_to_text(markup))
        return Panel(
            Group(*parts),
            title=f"[bold blue]{escape(self.assistant_name)}[/]",
            title_align="left",
            border_style="blue",
        )


PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; max-width: 50em; margin: 1em auto; }}
.msg {{ display: flex; margin: 0.5em 0; }}
.msg.me {{ justify-content: flex-end; }}
.bubble {{ padding: 0.5em 0.8em; border-radius: 0.6em; background: #f1f3f5; }}
.msg.me .bubble {{ background: #d0ebff; }}
.muted {{ color: #6c757d; }}
.meta {{ font-size: 0.8em; }}
.reason {{ color: #6c757d; font-style: italic; white-space: pre-wrap; }}
table {{ border-collapse: collapse; }}
th, td {{ border: 1px solid #ced4da; padding: 0.2em 0.5em; }}
</style>
</head>
<body>
<div id="chatLog">
{body}
</div>
</body>
</html>
"""


@dataclass
class _Bubble:
    kind: str  # "user", "assistant", "system"
    text: str = ""
    reasoning: str = ""
    markup: str = ""

    def to_html(self, assistant_name: str) -> str:
        if self.kind == "user":
            return f'<div class="msg me"><div class="bubble">{escape_html(self.text)}</div></div>'
        if self.kind == "system":
            return f'<div class="msg"><div class="bubble muted">{escape_html(self.text)}</div></div>'
        return (
            '<div class="msg bot"><div>'
            f'<div class="meta muted">{escape_html(assistant_name)}</div>'
            '<div class="bubble">'
            f'<div class="reason">{escape_html(self.reasoning)}</div>'
            f'<div class="content">{self.markup}</div>'
            "</div></div></div>"
        )


class HtmlTranscript(TranscriptSink):
    """Keeps the conversation as chat bubbles in a standalone HTML page.

    The page is rewritten atomically on every new message and at most every
    ``min_delay`` seconds while a turn streams in.
    """

    min_delay = 0.5

    def __init__(self, path: Path, assistant_name: str = "Libby"):
        self.path = Path(path)
        self.assistant_name = assistant_name
        self.bubbles: list[_Bubble] = []
        self._last_write = 0.0
        self.error: Optional[OSError] = None

    def show_user_message(self, text: str) -> None:
        self.bubbles.append(_Bubble("user", text=text))
        self.flush()

    def show_system_notice(self, text: str) -> None:
        self.bubbles.append(_Bubble("system", text=text))
        self.flush()

    def begin_assistant_turn(self) -> _Bubble:
        bubble = _Bubble("assistant")
        self.bubbles.append(bubble)
        self.flush()
        return bubble

    def update_reasoning(self, handle: _Bubble, text: str) -> None:
        handle.reasoning = text
        self._maybe_flush()

    def update_content(self, handle: _Bubble, markup: str) -> None:
        handle.markup = markup
        self._maybe_flush()

    def end_turn(self, handle: _Bubble) -> None:
        self.flush()

    def abandon_turn(self, handle: _Bubble) -> None:
        self.flush()

    def to_html(self) -> str:
        body = "\n".join(b.to_html(self.assistant_name) for b in self.bubbles)
        return PAGE_TEMPLATE.format(title=escape_html(f"Chat with {self.assistant_name}"), body=body)

    def flush(self) -> None:
        """Write the page now.

        The first write error is kept in ``error`` and stops further writes;
        the conversation itself carries on.
        """
        if self.error is not None:
            return
        try:
            AtomicFileWriter.write(self.path, self.to_html())
        except OSError as e:
            self.error = e
            return
        self._last_write = time.monotonic()

    def _maybe_flush(self) -> None:
        if time.monotonic() - self._last_write >= self.min_delay:
            self.flush()


class MultiTranscript(TranscriptSink):
    """Forwards every event to several sinks."""

    def __init__(self, *sinks: TranscriptSink):
        self.sinks = sinks

    def show_user_message(self, text: str) -> None:
        for sink in self.sinks:
            sink.show_user_message(text)

    def show_system_notice(self, text: str) -> None:
        for sink in self.sinks:
            sink.show_system_notice(text)

    def begin_assistant_turn(self) -> tuple:
        return tuple(sink.begin_assistant_turn() for sink in self.sinks)

    def update_reasoning(self, handle: tuple, text: str) -> None:
        for sink, h in zip(self.sinks, handle):
            sink.update_reasoning(h, text)

    def update_content(self, handle: tuple, markup: str) -> None:
        for sink, h in zip(self.sinks, handle):
            sink.update_content(h, markup)

    def end_turn(self, handle: tuple) -> None:
        for sink, h in zip(self.sinks, handle):
            sink.end_turn(h)

    def abandon_turn(self, handle: tuple) -> None:
        for sink, h in zip(self.sinks, handle):
            sink.abandon_turn(h)
