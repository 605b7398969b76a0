"""Utility helpers."""

from .atomic_writer import AtomicFileWriter

__all__ = ["AtomicFileWriter"]
