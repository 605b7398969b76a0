"""libbychat CLI entry point."""

import threading

import click
from rich.console import Console

from . import __version__
from .chat import ChatSession
from .config import Config
from .logging import init_logger
from .transcript import ConsoleTranscript, HtmlTranscript, MultiTranscript
from .transport import TransportSession

console = Console()


@click.command()
@click.option("--origin", "-o", default="", help="Node manager URL, e.g. https://lqos.example:9123")
@click.option("--path", "ws_path", default="", help="Private websocket path")
@click.option("--html", "html_path", default="", type=click.Path(dir_okay=False), help="Also write an HTML transcript here")
@click.option("--debug", "-d", is_flag=True, help="Log every stream frame")
@click.version_option(version=__version__)
def main(origin: str, ws_path: str, html_path: str, debug: bool):
    """libbychat - chat with Libby from the terminal."""

    config = Config.load()
    if origin:
        config.origin = origin
    if ws_path:
        config.ws_path = ws_path
    if html_path:
        config.html_transcript = html_path
    if debug:
        config.debug = True

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Error: {error}[/]")
        raise SystemExit(1)

    logger = init_logger(config.ws_url, debug=config.debug)

    console.print(f"[bold green]libbychat v{__version__}[/]")
    console.print(f"[dim]Endpoint: {config.ws_url}[/]")
    if config.html_transcript:
        console.print(f"[dim]Transcript: {config.html_transcript}[/]")
    console.print(f"[dim]Logs: {logger.log_path}[/]")
    console.print()

    sink = ConsoleTranscript(console, assistant_name=config.assistant_name)
    html_sink = None
    if config.html_transcript:
        html_sink = HtmlTranscript(config.html_transcript, config.assistant_name)
        sink = MultiTranscript(sink, html_sink)

    chat = ChatSession(
        sink,
        origin=config.origin,
        logger=logger,
        assistant_name=config.assistant_name,
    )
    transport = TransportSession(
        config.ws_url,
        chat,
        origin=config.origin,
        open_timeout=config.open_timeout,
    )
    receiver = threading.Thread(target=transport.run, name="libbychat-recv", daemon=True)
    receiver.start()

    from .repl import ChatREPL
    repl = ChatREPL(chat, console=console, logger=logger)
    try:
        repl.run()
    finally:
        transport.close()
        receiver.join(timeout=2.0)
        if html_sink is not None and html_sink.error is not None:
            console.print(f"[red]Transcript not written: {html_sink.error}[/]")
            logger.log_error(f"Transcript not written: {html_sink.error}")


if __name__ == "__main__":
    main()
