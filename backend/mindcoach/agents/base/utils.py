"""Shared helpers for the agent roles."""

import functools
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Type, TypeVar

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .state import Message

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ROLE_TO_MESSAGE: Dict[str, Type[BaseMessage]] = {
    "user": HumanMessage,
    "assistant": AIMessage,
    "system": SystemMessage,
}


def messages_to_langchain(messages: List[Any]) -> List[BaseMessage]:
    """
    Convert transcript entries to LangChain messages.

    Accepts ``Message`` models, ``{"role", "content"}`` dicts and LangChain
    messages. Unknown roles and bare values are sent as user turns.
    """
    converted: List[BaseMessage] = []
    for item in messages:
        if isinstance(item, BaseMessage):
            converted.append(item)
            continue
        if isinstance(item, Message):
            role, content = item.role, item.content
        elif isinstance(item, dict):
            role, content = str(item.get("role", "")).lower(), item.get("content", "")
        else:
            role, content = "user", str(item)
        converted.append(_ROLE_TO_MESSAGE.get(role, HumanMessage)(content=content))
    return converted


def content_to_text(content: Any) -> str:
    """Flatten string or content-block message content to plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            block if isinstance(block, str) else str(block.get("text", ""))
            for block in content
            if isinstance(block, str) or (isinstance(block, dict) and block.get("type") == "text")
        )
    return str(content)


def log_agent_action(role: str):
    """Log start, duration and failure of an async agent-role call."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            started = time.perf_counter()
            logger.debug(f"[{role}] {func.__name__} started")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(f"[{role}] {func.__name__} failed: {e}")
                raise
            logger.info(f"[{role}] {func.__name__} done in {time.perf_counter() - started:.2f}s")
            return result

        return wrapper

    return decorator


def truncate_text(text: str, max_length: int = 1000, suffix: str = "...") -> str:
    """Shorten ``text`` for log lines."""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
