"""Structured output codec: free-form model text to validated typed values.

Extraction is attempted in a fixed order and the first candidate that both
parses as JSON and validates against the schema wins:

1. the whole trimmed text
2. the interior of the first fenced code block
3. the span from the first opening bracket/brace to the last matching closer

The codec is liberal about framing only. Required fields are never invented;
a candidate missing one simply fails validation.
"""

import json
import logging
import re
from functools import lru_cache
from typing import Any, Iterator, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import DecodeError
from .utils import truncate_text

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE_RE = re.compile(r"```[ \t]*[A-Za-z0-9_+-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)
_CLOSERS = {"{": "}", "[": "]"}


@lru_cache(maxsize=None)
def _adapter(schema: Any) -> TypeAdapter:
    return TypeAdapter(schema)


def _fenced_interior(text: str) -> Optional[str]:
    match = _FENCE_RE.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def _bracket_span(text: str) -> Optional[str]:
    starts = [index for index in (text.find("{"), text.find("[")) if index != -1]
    if not starts:
        return None
    start = min(starts)
    end = text.rfind(_CLOSERS[text[start]])
    if end <= start:
        return None
    return text[start:end + 1]


def _candidates(text: str) -> Iterator[str]:
    stripped = text.strip()
    yield stripped
    fenced = _fenced_interior(stripped)
    if fenced is not None:
        yield fenced
    span = _bracket_span(stripped)
    if span is not None:
        yield span


def decode(text: str, schema: Type[T]) -> T:
    """
    Decode model text against a schema.

    Args:
        text: Raw model output
        schema: A pydantic model class or any type understood by TypeAdapter

    Returns:
        The validated value

    Raises:
        DecodeError: When no candidate both parses and validates
    """
    adapter = _adapter(schema)
    reason = "no structured content found"
    for candidate in _candidates(text or ""):
        if not candidate:
            continue
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as exc:
            reason = f"invalid JSON: {exc.msg}"
            continue
        try:
            return adapter.validate_python(data)
        except ValidationError as exc:
            reason = f"schema mismatch: {exc.errors()[0].get('msg', 'invalid')}"
            continue

    logger.warning(f"Decode failed ({reason}): {truncate_text(text or '', 200)}")
    raise DecodeError(text or "", reason)


def encode(value: Any) -> str:
    """Render a value as camelCase JSON text that ``decode`` accepts."""
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    return _adapter(type(value)).dump_json(value, by_alias=True).decode("utf-8")
