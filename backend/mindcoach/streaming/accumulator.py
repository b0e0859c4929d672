"""Client side of the streaming protocol.

Bytes arrive in arbitrary chunks. Complete lines are parsed independently,
deltas are appended to the open assistant message in arrival order, and the
suggested phase is applied only when the terminal event arrives.
"""

import codecs
import json
import logging
from typing import List, Optional, Union

from pydantic import ValidationError

from mindcoach.agents.base.state import Message
from mindcoach.session.machine import SessionStateMachine, Transition
from mindcoach.session.state import Session

from .transport import StreamEvent

logger = logging.getLogger(__name__)


class StreamAccumulator:
    """Rebuilds one streamed assistant turn into a Session."""

    def __init__(
        self,
        session: Session,
        machine: Optional[SessionStateMachine] = None,
        message: Optional[Message] = None,
    ):
        self.session = session
        self.machine = machine or SessionStateMachine()
        self.message = message or self.machine.begin_assistant_message(session)
        self.done = False
        self.error: Optional[str] = None
        self.transition: Optional[Transition] = None
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")()

    @property
    def content(self) -> str:
        return self.message.content

    def feed(self, chunk: Union[bytes, str]) -> List[StreamEvent]:
        """Consume a raw chunk and apply every complete line it finishes."""
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return [event for event in map(self._parse_line, lines) if event is not None and self.apply(event)]

    def finish(self) -> None:
        """Flush a trailing unterminated line and close the message."""
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer.strip():
            event = self._parse_line(self._buffer)
            if event is not None:
                self.apply(event)
        self._buffer = ""
        if not self.done:
            self.message.finalize()
            self.done = True

    def _parse_line(self, line: str) -> Optional[StreamEvent]:
        line = line.strip()
        if not line:
            return None
        try:
            return StreamEvent.model_validate(json.loads(line))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning(f"Skipping malformed stream line: {exc}")
            return None

    def apply(self, event: StreamEvent) -> bool:
        """Apply one event; returns False once the turn is already finished."""
        if self.done:
            return False
        if not event.done:
            self.message.append(event.content)
            return True

        if event.content:
            self.message.append(event.content)
        self.message.finalize()
        self.done = True
        self.error = event.error
        if event.suggested_phase is not None and event.suggested_phase != self.session.phase:
            self.transition = self.machine.advance(self.session, event.suggested_phase)
        return True
