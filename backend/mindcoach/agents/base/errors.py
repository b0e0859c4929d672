"""Typed failures raised by the gateway, codec and agent roles."""

from typing import Optional


class AgentError(Exception):
    """Base class for agent-role failures."""


class TransportError(AgentError):
    """The model endpoint was unreachable or answered with a non-success status."""

    def __init__(self, status: Optional[int], body: str = ""):
        self.status = status
        self.body = body
        if status is None:
            message = f"LLM endpoint unreachable: {body}"
        else:
            message = f"LLM endpoint returned HTTP {status}: {body}"
        super().__init__(message)


class DecodeError(AgentError):
    """Model text could not be turned into the expected structured value."""

    def __init__(self, text: str, reason: str = "no structured content found"):
        self.text = text
        self.reason = reason
        super().__init__(f"Could not decode model output: {reason}")
