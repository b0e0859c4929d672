"""Helpers for building transcript messages."""

from .state import Message


def make_user_message(content: str) -> Message:
    """Create a finalized user message."""
    return Message(role="user", content=content)


def make_assistant_message(content: str = "", streaming: bool = False) -> Message:
    """Create an assistant message, optionally open for streamed deltas."""
    return Message(role="assistant", content=content, streaming=streaming)
