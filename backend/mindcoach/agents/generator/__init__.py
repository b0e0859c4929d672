"""Exercise Generator role."""

from .agent import GeneratorAgent
from .state import Exercise, ExerciseRequest, Rubric, default_rubric

__all__ = ["Exercise", "ExerciseRequest", "GeneratorAgent", "Rubric", "default_rubric"]
