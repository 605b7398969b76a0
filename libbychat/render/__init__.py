"""Markup rendering for assistant content."""

from .markdown import DEFAULT_ORIGIN, STAGES, pipeline, render, safe_url

__all__ = ["DEFAULT_ORIGIN", "STAGES", "pipeline", "render", "safe_url"]
