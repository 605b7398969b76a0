"""Configuration and environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import yaml

from .render.markdown import DEFAULT_ORIGIN
from .transport import DEFAULT_WS_PATH, private_ws_url

# Global config directory
CONFIG_DIR = Path.home() / ".libbychat"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
LOCAL_CONFIG_NAME = ".libbychat.yaml"

CONFIG_TEMPLATE = """# libbychat configuration

# Node manager web UI address. The websocket URL and link resolution
# are both derived from it (https -> wss).
origin: "http://localhost:9123"

# Path of the private websocket on the node manager
ws_path: "/websocket/private_ws"

# Name shown above assistant messages
assistant_name: "Libby"

# Seconds to wait for the websocket handshake
open_timeout: 10.0

# Optional HTML transcript written while chatting (empty = disabled)
html_transcript: ""

debug: false
"""


def ensure_config_dir() -> Path:
    """Create config directory if it doesn't exist."""
    if not CONFIG_DIR.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR


def ensure_config_file() -> Path:
    """Create template config file if it doesn't exist."""
    ensure_config_dir()
    if not CONFIG_FILE.exists():
        CONFIG_FILE.write_text(CONFIG_TEMPLATE)
    return CONFIG_FILE


@dataclass
class Config:
    """Application configuration."""

    origin: str = DEFAULT_ORIGIN
    ws_path: str = DEFAULT_WS_PATH
    assistant_name: str = "Libby"
    open_timeout: float = 10.0
    html_transcript: str = ""
    debug: bool = False

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from file and environment variables.

        Config priority (later overrides earlier):
        1. ~/.libbychat/config.yaml (global)
        2. .libbychat.yaml (local directory)
        3. Environment variables
        """
        config_data = {}

        # Ensure global config exists (creates template on first run)
        ensure_config_file()

        config_paths = [
            str(CONFIG_FILE),
            os.path.join(os.getcwd(), LOCAL_CONFIG_NAME),
        ]

        for path in config_paths:
            if os.path.exists(path):
                try:
                    with open(path, "r") as f:
                        file_data = yaml.safe_load(f) or {}
                    if isinstance(file_data, dict):
                        config_data.update(file_data)
                except (OSError, yaml.YAMLError):
                    pass  # Ignore unreadable config files

        valid_fields = {k: v for k, v in config_data.items() if hasattr(cls, k)}
        config = cls(**valid_fields)
        try:
            config.open_timeout = float(config.open_timeout)
        except (TypeError, ValueError):
            pass  # Reported by validate()
        config.debug = bool(config.debug)

        # Override with environment variables (highest priority)
        env_origin = os.getenv("LIBBYCHAT_ORIGIN", "")
        if env_origin:
            config.origin = env_origin

        env_path = os.getenv("LIBBYCHAT_WS_PATH", "")
        if env_path:
            config.ws_path = env_path

        if os.getenv("LIBBYCHAT_DEBUG"):
            config.debug = os.getenv("LIBBYCHAT_DEBUG", "").lower() == "true"

        return config

    @property
    def ws_url(self) -> str:
        """Websocket URL of the private chatbot endpoint."""
        return private_ws_url(self.origin, self.ws_path)

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []
        parts = urlsplit(str(self.origin))
        if parts.scheme not in ("http", "https") or not parts.netloc:
            errors.append(
                f"Origin must be an http(s) URL, got {self.origin!r}. "
                f"Edit {CONFIG_FILE} or set LIBBYCHAT_ORIGIN"
            )
        if not str(self.ws_path).startswith("/"):
            errors.append(f"Websocket path must start with '/', got {self.ws_path!r}")
        try:
            timeout = float(self.open_timeout)
        except (TypeError, ValueError):
            timeout = 0.0
        if not timeout > 0:
            errors.append(f"open_timeout must be a positive number, got {self.open_timeout!r}")
        return errors
