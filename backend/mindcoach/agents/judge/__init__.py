"""Answer Judge role."""

from .agent import JudgeAgent
from .state import EvaluationResult, ScoreLabel, label_for_score

__all__ = ["EvaluationResult", "JudgeAgent", "ScoreLabel", "label_for_score"]
