"""Reflection Coach role."""

from .agent import ReflectionAgent
from .state import ReflectionResult, SessionAggregate

__all__ = ["ReflectionAgent", "ReflectionResult", "SessionAggregate"]
