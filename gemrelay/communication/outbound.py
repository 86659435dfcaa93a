"""Outbound message processing before delivery."""

# Discord rejects messages longer than this many characters.
DISCORD_MAX_LENGTH = 2000


def split_message(text: str, max_length: int = DISCORD_MAX_LENGTH) -> list[str]:
    """Split a reply into consecutive chunks of at most ``max_length`` characters.

    The split is purely positional: no whitespace is trimmed and no
    boundary is moved, so ``"".join(split_message(text)) == text``.

    Args:
        text: Message text to split
        max_length: Maximum length per chunk (default: 2000 for Discord)

    Returns:
        List of message chunks, empty for empty text
    """
    if max_length <= 0:
        raise ValueError("max_length must be positive")
    return [text[i:i + max_length] for i in range(0, len(text), max_length)]
