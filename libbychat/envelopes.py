"""Outbound messages sent to the node manager over the private websocket."""

import json
import time
from typing import Optional


def session_start(now_ms: Optional[int] = None) -> dict:
    """Envelope announcing a new chat session, sent once after connecting."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return {"Chatbot": {"browser_ts_ms": int(now_ms)}}


def user_input(text: str) -> Optional[dict]:
    """Envelope for a submitted user message, or None if it is blank."""
    text = text.strip()
    if not text:
        return None
    return {"ChatbotUserInput": {"text": text}}


def encode(envelope: dict) -> str:
    """Serialize one envelope for a single websocket send."""
    return json.dumps(envelope, ensure_ascii=False, separators=(",", ":"))
