"""Conversation logging for debugging and analysis."""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

# Log directory
LOG_DIR = Path.home() / ".libbychat" / "logs"


def ensure_log_dir() -> Path:
    """Create logs directory if it doesn't exist."""
    if not LOG_DIR.exists():
        LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR


class ConversationLogger:
    """Logs user inputs, assistant turns and notices to a JSONL file."""

    def __init__(self, endpoint: str = "unknown", log_dir: Optional[Path] = None):
        self.endpoint = endpoint
        self.session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        directory = log_dir if log_dir is not None else ensure_log_dir()
        self.log_file = Path(directory) / f"session_{self.session_id}.jsonl"
        self.enabled = True
        self.debug = False

        self._write_entry({
            "type": "session_start",
            "endpoint": self.endpoint,
            "timestamp": datetime.now().isoformat(),
        })

    def log_user_input(self, message: str) -> None:
        """Log user input."""
        if not self.enabled:
            return
        self._write_entry({
            "type": "user",
            "content": message,
            "timestamp": datetime.now().isoformat(),
        })

    def log_turn(self, content: str, reasoning: str = "") -> None:
        """Log a completed assistant turn."""
        if not self.enabled:
            return
        entry = {
            "type": "assistant",
            "content": content,
            "timestamp": datetime.now().isoformat(),
        }
        if reasoning:
            entry["reasoning"] = reasoning
        self._write_entry(entry)

    def log_notice(self, text: str) -> None:
        """Log a system notice shown to the user."""
        if not self.enabled:
            return
        self._write_entry({
            "type": "notice",
            "content": text,
            "timestamp": datetime.now().isoformat(),
        })

    def log_stream_event(self, event_type: str, content: str, meta: dict = None) -> None:
        """Log an individual stream frame. Only written in debug mode."""
        if not self.enabled or not self.debug:
            return
        entry = {
            "type": "stream_event",
            "event_type": event_type,
            "content": content[:500] if content else "",  # Truncate
            "timestamp": datetime.now().isoformat(),
        }
        if meta:
            entry["meta"] = meta
        self._write_entry(entry)

    def log_error(self, error: str) -> None:
        """Log error."""
        if not self.enabled:
            return
        self._write_entry({
            "type": "error",
            "error": error,
            "timestamp": datetime.now().isoformat(),
        })

    def read_entries(self) -> list[dict]:
        """Return all entries written so far in this session."""
        if not self.log_file.exists():
            return []
        with open(self.log_file, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    def _write_entry(self, entry: dict) -> None:
        """Write a log entry to file."""
        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError:
            pass  # Logging must not break the chat

    @property
    def log_path(self) -> Path:
        """Return path to current log file."""
        return self.log_file


def init_logger(endpoint: str, debug: bool = False) -> ConversationLogger:
    """Initialize logger for a connection endpoint."""
    logger = ConversationLogger(endpoint)
    logger.debug = debug
    return logger
