"""Messaging platform adapters."""

from .base import IncomingMessage, MessageChannel

__all__ = ["IncomingMessage", "MessageChannel"]
