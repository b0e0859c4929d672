"""Newline-delimited JSON streaming of coach turns."""

from .accumulator import StreamAccumulator
from .transport import NDJSON_MEDIA_TYPE, StreamChannel, StreamEvent, ndjson_lines

__all__ = ["NDJSON_MEDIA_TYPE", "StreamAccumulator", "StreamChannel", "StreamEvent", "ndjson_lines"]
