"""
Tests for the NDJSON streaming protocol on both sides of the wire.
"""

import asyncio
import json

import pytest

from mindcoach.agents.base.state import Phase
from mindcoach.session.machine import SessionStateMachine
from mindcoach.streaming import StreamAccumulator, StreamChannel, StreamEvent, ndjson_lines


async def _events(*events):
    for event in events:
        yield event


def _lines(*events) -> bytes:
    return "".join(event.to_line() for event in events).encode("utf-8")


@pytest.mark.asyncio
class TestStreamChannel:
    async def test_preserves_order_and_stops_after_done(self):
        channel = StreamChannel(_events(
            StreamEvent(content="Hel"),
            StreamEvent(content="lo"),
            StreamEvent(done=True, suggested_phase=Phase.WARMUP),
            StreamEvent(content="ignored"),
        ), maxsize=1)
        received = [event async for event in channel]
        await channel.close()
        assert [event.content for event in received] == ["Hel", "lo", ""]
        assert received[-1].suggested_phase == Phase.WARMUP

    async def test_adds_done_when_producer_ends_early(self):
        channel = StreamChannel(_events(StreamEvent(content="only")))
        received = [event async for event in channel]
        assert received[-1].done
        assert received[-1].error is None

    async def test_producer_failure_becomes_error_event(self):
        async def failing():
            yield StreamEvent(content="part")
            raise RuntimeError("boom")

        received = [event async for event in StreamChannel(failing())]
        assert received[0].content == "part"
        assert received[-1].done
        assert received[-1].error == "Stream interrupted, please retry"

    async def test_close_cancels_producer(self):
        closed = asyncio.Event()

        async def endless():
            try:
                while True:
                    yield StreamEvent(content=".")
                    await asyncio.sleep(0)
            finally:
                closed.set()

        channel = StreamChannel(endless(), maxsize=2)
        async for _ in channel:
            break
        await channel.close()
        assert channel.closed
        assert closed.is_set()

    async def test_ndjson_framing(self):
        channel = StreamChannel(_events(StreamEvent(content="Hi"), StreamEvent(done=True)))
        lines = [line async for line in ndjson_lines(channel)]
        assert all(line.endswith("\n") for line in lines)
        assert json.loads(lines[0]) == {"content": "Hi", "done": False}
        assert json.loads(lines[1])["done"] is True
        assert channel.closed


class TestStreamAccumulator:
    def setup_method(self):
        self.machine = SessionStateMachine()
        self.session = self.machine.create()

    def test_reconstructs_text_across_split_chunks(self):
        reply = "Great, let's start with a memory warm-up."
        payload = _lines(*[StreamEvent(content=reply[i:i + 5]) for i in range(0, len(reply), 5)],
                         StreamEvent(done=True))
        accumulator = StreamAccumulator(self.session, self.machine)
        for start in range(0, len(payload), 11):
            accumulator.feed(payload[start:start + 11])
        accumulator.finish()
        assert accumulator.content == reply
        assert self.session.transcript[-1].content == reply
        assert not self.session.transcript[-1].streaming

    def test_multibyte_characters_split_between_chunks(self):
        payload = _lines(StreamEvent(content="café ☕"), StreamEvent(done=True))
        split = payload.index("☕".encode("utf-8")) + 1
        accumulator = StreamAccumulator(self.session, self.machine)
        accumulator.feed(payload[:split])
        accumulator.feed(payload[split:])
        assert accumulator.content == "café ☕"
        assert accumulator.done

    def test_malformed_line_is_skipped(self):
        accumulator = StreamAccumulator(self.session, self.machine)
        accumulator.feed(b'{"content": "a"}\nnot json\n{"content": "b"}\n')
        assert accumulator.content == "ab"

    def test_phase_applied_only_on_done(self):
        accumulator = StreamAccumulator(self.session, self.machine)
        accumulator.feed(_lines(StreamEvent(content="Warm-up time!")))
        assert self.session.phase == Phase.START
        accumulator.feed(_lines(StreamEvent(done=True, suggested_phase=Phase.WARMUP)))
        assert self.session.phase == Phase.WARMUP
        assert accumulator.transition.to_phase == Phase.WARMUP

    def test_events_after_done_are_ignored(self):
        accumulator = StreamAccumulator(self.session, self.machine)
        accumulator.feed(_lines(StreamEvent(content="x"), StreamEvent(done=True), StreamEvent(content="y")))
        assert accumulator.content == "x"

    def test_trailing_line_without_newline(self):
        accumulator = StreamAccumulator(self.session, self.machine)
        accumulator.feed(b'{"content": "tail"}')
        assert accumulator.content == ""
        accumulator.finish()
        assert accumulator.content == "tail"
        assert accumulator.done

    def test_error_is_recorded(self):
        accumulator = StreamAccumulator(self.session, self.machine)
        accumulator.feed(_lines(StreamEvent(done=True, error="Stream interrupted, please retry")))
        assert accumulator.error == "Stream interrupted, please retry"
