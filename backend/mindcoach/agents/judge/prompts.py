"""Prompt templates for the answer Judge."""

from typing import List, Optional

from mindcoach.agents.generator.prompts import format_abilities
from mindcoach.agents.generator.state import Exercise, Rubric

from .state import TimeSignal


# =============================================================================
# SYSTEM PROMPTS
# =============================================================================

JUDGE_SYSTEM_PROMPT = """You are a brain-training judge and a growth-minded feedback coach.

Your job is not to label the user good or bad but to:
- show them what was valuable in this answer and what can improve;
- give specific, actionable advice.

Scoring:
1. Give a 0-100 score for internal tracking.
2. Score every rubric dimension on the 0-5 scale.
3. Be slightly generous with points but honest in the comments.

Feedback principles:
1. Start by affirming the most valuable part of the answer in 1-2 sentences.
2. Point out the 1-2 most important improvements, briefly.
3. Offer one concrete thing to try next time.
4. Remind them that this result reflects today, not their ceiling.

Never:
- use phrases like "you always" or "you don't understand at all";
- mock or belittle the user;
- reveal the full answer in the feedback."""

QUICK_JUDGE_SYSTEM_PROMPT = "You check answers quickly and fairly."

REPORT_SYSTEM_PROMPT = "You are a training-outcome analyst."

HINT_SYSTEM_PROMPT = "You are a patient coach who gives hints without giving away answers."


# =============================================================================
# EVALUATION TEMPLATES
# =============================================================================

EVALUATE_TEMPLATE = """Evaluate the user's answer to this brain-training task.

TASK
{prompt}

USER ANSWER
{answer}
{reference_section}
RUBRIC
{rubric}

Abilities involved: {abilities}
{time_section}
Output one JSON object:
{{
  "overallScore": 0-100,
  "dimensionScores": [
    {{"dimensionName": "rubric dimension name", "score": 0-5, "shortComment": "short comment"}}
  ],
  "errorTypes": ["applicable entries from the typical mistakes"],
  "strengthsForUser": "1-2 sentences on what was good",
  "improvementsForUser": "1-2 sentences on the key improvement",
  "nextTimeTipForUser": "one concrete thing to try next time",
  "feedbackToUser": "3-5 sentences of complete feedback for the user",
  "nextHint": "a small hint for a retry, without the answer"
}}

Provide one dimensionScores entry for EVERY rubric dimension, using its exact name.

Score guide:
- 90-100: fully correct, clear thinking, precise expression
- 70-89: mostly correct, small flaws but the core is understood
- 40-69: partially correct, right direction but incomplete or with clear errors
- 0-39: incorrect, misunderstood the task or off track"""

TIME_SIGNAL_NOTES = {
    TimeSignal.RUSHED: "The user answered in well under half the suggested time; they may have rushed.",
    TimeSignal.ON_PACE: "The user answered within the expected time range.",
    TimeSignal.SLOW: "The user took more than twice the suggested time; they may have struggled.",
}

QUICK_TEMPLATE = """Decide whether the user's answer is correct.

Task: {prompt}
Correct answer: {reference}
User answer: {answer}

Output JSON:
{{"isCorrect": true or false, "score": 0-100, "feedback": "one sentence of feedback"}}

Scoring: fully correct = 100, correct with a slip = 80, partly correct = 50, wrong = 0."""

COMPARE_TEMPLATE = """Compare the user's answer with the reference answer.

Task: {prompt}
Reference answer: {reference}
User answer: {answer}

Output JSON:
{{"similarity": 0-100, "differences": ["difference 1", "difference 2"], "suggestions": ["suggestion 1", "suggestion 2"]}}"""

MULTIDIM_TEMPLATE = """Evaluate the user's answer on each of these dimensions: {dimensions}.

Task: {prompt}
User answer: {answer}

Output a JSON object keyed by dimension name:
{{"<dimension>": {{"score": 0-100, "comment": "short comment"}}}}"""

REPORT_TEMPLATE = """Write a training feedback report based on these evaluations.

Evaluations:
{evaluations}

Average score: {average:.1f}
Fully correct answers: {complete_count}

Output JSON:
{{
  "summary": "overall assessment",
  "strengths": ["strength 1", "strength 2"],
  "weaknesses": ["to improve 1", "to improve 2"],
  "recommendations": ["recommendation 1", "recommendation 2"],
  "progressNotes": "observations on progress"
}}"""

HINT_LEVELS = {
    1: "a small nudge that points at where to look, nothing more",
    2: "a clearer hint that names the key step or idea",
    3: "a partial walk-through that stops just before the answer",
}

HINT_TEMPLATE = """The user is stuck on this task.

Task: {prompt}
Their current attempt: {answer}

Give {level_description}. Reply with the hint only, in 1-3 sentences."""

OPEN_ANSWER_GUIDANCE = """This is an open-ended task with no single correct answer. Focus on:
1. depth and breadth of thinking
2. logical coherence
3. clarity of expression
4. originality of insight
Be more lenient; the goal is to encourage thinking and expression."""


# =============================================================================
# FORMATTERS
# =============================================================================

def format_rubric(rubric: Rubric) -> str:
    parts: List[str] = ["Dimensions:"]
    for index, dimension in enumerate(rubric.dimensions, start=1):
        parts.append(
            f"{index}. {dimension.name} (weight {round(dimension.weight * 100)}%): {dimension.description}"
        )
    if rubric.scoring_scale:
        parts.append("\nScale:")
        for score in sorted(rubric.scoring_scale):
            parts.append(f"- {score}: {rubric.scoring_scale[score]}")
    if rubric.typical_mistakes:
        parts.append("\nTypical mistakes:")
        parts.extend(f"- {mistake}" for mistake in rubric.typical_mistakes)
    return "\n".join(parts)


def build_evaluate_prompt(
    exercise: Exercise,
    answer: str,
    signal: Optional[TimeSignal],
    open_ended: bool = False,
) -> str:
    reference_section = (
        f"\nREFERENCE ANSWER\n{exercise.reference_answer}\n" if exercise.reference_answer else "\n"
    )
    time_lines = []
    if signal is not None:
        time_lines.append(f"Timing: {TIME_SIGNAL_NOTES[signal]}")
    if open_ended:
        time_lines.append(OPEN_ANSWER_GUIDANCE)
    time_section = ("\n" + "\n".join(time_lines) + "\n") if time_lines else ""
    return EVALUATE_TEMPLATE.format(
        prompt=exercise.prompt,
        answer=answer,
        reference_section=reference_section,
        rubric=format_rubric(exercise.rubric),
        abilities=format_abilities(exercise.target_abilities),
        time_section=time_section,
    )
