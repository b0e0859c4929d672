"""Build the Reflection Coach's view of a session."""

from datetime import datetime
from typing import List

from mindcoach.agents.base.state import AbilityTag
from mindcoach.agents.reflection.state import SessionAggregate, TaskHighlight

from .state import Session


def _elapsed_seconds(started_at: str) -> float:
    try:
        started = datetime.fromisoformat(started_at)
    except ValueError:
        return 0.0
    return max(0.0, (datetime.utcnow() - started).total_seconds())


def build_session_aggregate(session: Session) -> SessionAggregate:
    """Task count, average, duration and per-task highlights of scored work."""
    highlights: List[TaskHighlight] = []
    abilities: List[AbilityTag] = []
    for record in session.scored_tasks:
        exercise = record.exercise
        score = record.evaluation.overall_score if record.evaluation else 0
        highlights.append(TaskHighlight(
            exercise_type=exercise.exercise_type,
            difficulty=exercise.difficulty,
            score=score,
            time_spent=record.time_spent_seconds,
            was_challenge=score < 70 or exercise.difficulty >= 4,
        ))
        for ability in exercise.target_abilities:
            if ability not in abilities:
                abilities.append(ability)

    timed = [record.time_spent_seconds for record in session.scored_tasks if record.time_spent_seconds]
    duration = sum(timed) if timed else _elapsed_seconds(session.started_at)

    return SessionAggregate(
        task_count=session.counters.completed_tasks,
        average_score=round(session.counters.average_score, 1),
        total_duration_seconds=duration,
        highlights=highlights,
        abilities_worked=abilities,
    )
