"""Request handlers."""

from .chat import ChatHandler

__all__ = ["ChatHandler"]
