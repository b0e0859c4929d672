"""Prompt templates for the Reflection Coach."""

from typing import List, Optional, Sequence

from mindcoach.agents.base.state import AgentContext
from mindcoach.agents.coach.prompts import format_profile

from .state import HistoricalData, ReflectionResult, SessionAggregate


REFLECTION_SYSTEM_PROMPT = """You are a learning and thinking coach focused on metacognition
and self-regulated learning.

Your goal is not to teach content but to teach how to learn: how to monitor
yourself and how to improve.

Principles:
1. Guide with questions so the user discovers things themselves.
2. Make vague feelings concrete: turn them into specific strategies.
3. Every suggestion must be something the user can do right away.
4. Reframe problems as opportunities to improve."""

METACOGNITION_SYSTEM_PROMPT = "You are an expert in assessing metacognitive skill."

MOTIVATION_SYSTEM_PROMPT = "You are a warm and energising motivation coach."


REFLECTION_TEMPLATE = """Write the reflection and summary for this training session.

USER
Name: {user_name}
{profile_line}
SESSION DATA
- Tasks completed: {task_count}
- Duration: {minutes} minutes
- Average score: {average_score:.0f}
- Task performance:
{task_lines}
{previous_section}
Output one JSON object:
{{
  "summary": "session summary",
  "highlights": ["highlight"],
  "challenges": ["challenge"],
  "cognitiveInsights": ["insight about how the user thinks"],
  "recommendations": ["recommendation"],
  "nextStep": "the single next step",
  "metacognitivePrompts": ["open question for the user to reflect on"]
}}

Make it insightful and specific to this session."""

DIALOGUE_TEMPLATE = """You are guiding the user through a reflection on their training.

The user said: {user_input}

Based on their reply:
1. Respond with empathy.
2. If they show an insight, acknowledge and extend it.
3. Ask one guiding metacognitive question.

Reply in JSON:
{{"response": "your reply", "metacognitiveQuestion": "guiding question (optional)", "insightDetected": "insight you noticed (optional)"}}"""

PLAN_TEMPLATE = """Create a personalised learning plan.

USER
Name: {user_name}
{profile_line}
{history_section}
Output JSON:
{{
  "shortTermGoals": ["1-2 week goal"],
  "mediumTermGoals": ["1-2 month goal"],
  "focusAreas": ["area"],
  "suggestedSchedule": {{"sessionsPerWeek": 3, "minutesPerSession": 15, "bestTimes": ["morning"]}},
  "milestones": [{{"target": "target", "deadline": "deadline", "metric": "how to measure"}}]
}}

Make the plan realistic and actionable."""

QUESTIONS_TEMPLATE = """Write 5 self-assessment questions that help the user reflect on their cognitive training.
{focus_line}
Return a JSON array: ["question 1", "question 2", "question 3", "question 4", "question 5"]

The questions should guide the user to think about their process, spot
progress and challenges, and build metacognition."""

ANALYZE_TEMPLATE = """Analyse the user's metacognitive level.

The user's reflections:
{reflections}

Return JSON:
{{"level": "beginner|developing|proficient|advanced", "indicators": ["indicator"], "suggestions": ["suggestion"]}}

Levels:
- beginner: rarely reflects, little awareness of their own thinking
- developing: starting to notice their thinking, but not systematically
- proficient: monitors and regulates their learning effectively
- advanced: understands their cognitive traits deeply and adapts strategies flexibly"""

MOTIVATION_TEMPLATE = """Write a motivational message for {user_name}.
{streak_line}{achievements_line}
Keep it short, sincere and energising. Reply with the message only, no JSON."""


def _profile_line(context: AgentContext) -> str:
    if not context.ability_profile:
        return ""
    return f"Ability profile: {format_profile(context.ability_profile)}\n"


def build_reflection_prompt(
    aggregate: SessionAggregate,
    context: AgentContext,
    previous: Optional[Sequence[ReflectionResult]] = None,
) -> str:
    task_lines: List[str] = []
    for index, task in enumerate(aggregate.highlights, start=1):
        spent = f", {task.time_spent:.0f}s" if task.time_spent else ""
        marker = " (challenging)" if task.was_challenge else ""
        task_lines.append(
            f"  {index}. {task.exercise_type.value} (difficulty {task.difficulty}) - {task.score} points{spent}{marker}"
        )

    previous_section = ""
    if previous:
        recent = list(previous)[-3:]
        previous_section = "\nRECENT REFLECTIONS\n" + "\n".join(f"- {item.summary}" for item in recent) + "\n"

    return REFLECTION_TEMPLATE.format(
        user_name=context.user_name,
        profile_line=_profile_line(context),
        task_count=aggregate.task_count,
        minutes=round(aggregate.total_duration_seconds / 60),
        average_score=aggregate.average_score,
        task_lines="\n".join(task_lines) or "  (no scored tasks)",
        previous_section=previous_section,
    )


def build_plan_prompt(context: AgentContext, history: Optional[HistoricalData] = None) -> str:
    history_section = ""
    if history:
        history_section = (
            "TRAINING HISTORY\n"
            f"- Sessions completed: {history.sessions_completed}\n"
            f"- Average score per ability: {history.average_scores}\n"
            f"- Usual training times: {', '.join(history.preferred_times) or 'unknown'}\n"
            f"- Consistency: {history.consistency_rate:.0f}%\n"
        )
    return PLAN_TEMPLATE.format(
        user_name=context.user_name,
        profile_line=_profile_line(context),
        history_section=history_section,
    )
