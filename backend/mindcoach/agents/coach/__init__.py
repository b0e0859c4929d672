"""Dialogue Coach role."""

from .agent import CoachAgent
from .classifier import KeywordPhaseClassifier, PhaseClassifier, PhaseSignal

__all__ = ["CoachAgent", "KeywordPhaseClassifier", "PhaseClassifier", "PhaseSignal"]
