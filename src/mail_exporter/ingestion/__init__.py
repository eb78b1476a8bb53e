"""Message parsing components."""

from .parser import EmailParser

__all__ = ["EmailParser"]
