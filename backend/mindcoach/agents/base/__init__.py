"""Shared building blocks for the agent roles."""

from .codec import decode, encode
from .errors import AgentError, DecodeError, TransportError
from .gateway import GatewayEvent, ModelGateway, SamplingParams
from .state import (
    AbilityProfile,
    AbilityTag,
    AgentContext,
    Message,
    Phase,
    RecentPerformance,
)

__all__ = [
    "AbilityProfile",
    "AbilityTag",
    "AgentContext",
    "AgentError",
    "DecodeError",
    "GatewayEvent",
    "Message",
    "ModelGateway",
    "Phase",
    "RecentPerformance",
    "SamplingParams",
    "TransportError",
    "decode",
    "encode",
]
