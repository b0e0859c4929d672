"""Server side of the streaming protocol.

A producer task writes ``StreamEvent`` values into a bounded channel; the
HTTP response drains the channel and frames one JSON object per line.
Closing the channel cancels the producer, which in turn closes the
upstream model stream.
"""

import asyncio
import json
import logging
from typing import AsyncIterator, Optional

from pydantic import ConfigDict

from mindcoach.agents.base.state import CamelModel, Phase
from mindcoach.core.config import get_settings

logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"


class StreamEvent(CamelModel):
    """One line of the stream: a content delta, or the terminal marker."""

    model_config = ConfigDict(frozen=True)

    content: str = ""
    done: bool = False
    suggested_phase: Optional[Phase] = None
    error: Optional[str] = None

    def to_line(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False) + "\n"


class StreamChannel:
    """Bounded producer/consumer channel for one streamed turn."""

    def __init__(self, producer: AsyncIterator[StreamEvent], maxsize: Optional[int] = None):
        self._producer = producer
        self._queue: asyncio.Queue = asyncio.Queue(
            maxsize if maxsize is not None else get_settings().STREAM_CHANNEL_SIZE
        )
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._pump())

    async def _pump(self) -> None:
        saw_done = False
        try:
            async for event in self._producer:
                await self._queue.put(event)
                if event.done:
                    saw_done = True
                    break
        except asyncio.CancelledError:
            logger.info("Stream producer cancelled")
            raise
        except Exception as exc:
            logger.error(f"Stream producer failed: {exc}")
            await self._queue.put(StreamEvent(done=True, error="Stream interrupted, please retry"))
            return
        finally:
            aclose = getattr(self._producer, "aclose", None)
            if aclose is not None:
                await aclose()

        if not saw_done:
            await self._queue.put(StreamEvent(done=True))

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Drain events in arrival order, stopping after the terminal one."""
        self.start()
        while not self._closed:
            event = await self._queue.get()
            yield event
            if event.done:
                break

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self.events()

    async def close(self) -> None:
        """Stop the producer if it is still running."""
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass


async def ndjson_lines(channel: StreamChannel) -> AsyncIterator[str]:
    """Frame channel events as NDJSON; closes the channel however iteration ends."""
    try:
        async for event in channel:
            yield event.to_line()
    finally:
        await channel.close()
