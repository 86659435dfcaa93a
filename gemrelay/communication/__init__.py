"""Outbound message handling shared by every channel."""

from .outbound import DISCORD_MAX_LENGTH, split_message

__all__ = ["DISCORD_MAX_LENGTH", "split_message"]
