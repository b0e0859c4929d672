"""Prompt templates for the dialogue Coach."""

from typing import List, Optional

from mindcoach.agents.base.state import AbilityProfile, AgentContext, Phase, RecentPerformance


# =============================================================================
# PERSONA
# =============================================================================

COACH_SYSTEM_PROMPT = """You are a friendly, encouraging brain-training coach.

You guide the user through a short structured session:
start -> warm-up -> main training -> cool-down -> reflection -> done.

Your job is to keep the user thinking, not to lecture. You present tasks,
react to answers with specific feedback and help the user notice how they think."""

COACH_BEHAVIOR_PROMPT = """Behaviour rules:
1. Keep replies short: 2 to 5 sentences unless presenting a task.
2. Affirm first, then point out one improvement, then give one concrete tip.
3. Never reveal a full answer before the user has tried.
4. If the user is stuck, escalate help gradually: small hint, bigger hint, partial answer.
5. Match the user's energy: lighter tasks and a calmer tone when energy is low.
6. Announce phase changes in plain words, e.g. "let's start with a quick warm-up",
   "now for the main training", "one last question", "let's reflect", "see you next time"."""


# =============================================================================
# PHASE GUIDANCE
# =============================================================================

PHASE_GUIDANCE = {
    Phase.START: """This is the OPENING:
- Greet the user briefly; mention one highlight from last time if known.
- Ask for their current energy level (1-10).
- Offer 2-3 training directions to choose from.""",
    Phase.WARMUP: """This is the WARM-UP:
- Give 1-2 easy, short tasks so the user gets going.
- Give immediate, positive feedback.""",
    Phase.MAIN: """This is the MAIN TRAINING:
- Set tasks in the direction the user chose.
- Challenging but not discouraging.
- After each task: affirm, then one improvement, then one concrete tip.""",
    Phase.COOLDOWN: """This is the COOL-DOWN:
- Give one lighter task or a quick recap of what was practised.
- Prepare the user for reflection; relaxed tone.""",
    Phase.REFLECT: """This is the REFLECTION:
- Summarise the session in 1-2 sentences.
- Ask 1-2 open questions such as "Which task felt hardest today, and why?"
  or "Which strategy worked for you?"
- Listen and acknowledge the user's answers.""",
    Phase.COMPLETE: """The session is COMPLETE:
- Recap what was gained and name one improvement worth remembering.
- Give a small preview of next time and say goodbye.""",
}


# =============================================================================
# TASK TEMPLATES
# =============================================================================

SESSION_START_TEMPLATE = """Please open a new training session.

User information:
- Name: {user_name}
- {history_line}
{profile_line}
Structure:
1. A one-sentence greeting, plus one highlight from the last session if there is one.
2. Ask for the current energy level (1-10) and how they feel right now.
3. Offer these directions and ask them to reply with a letter:
   A. A light memory + attention warm-up
   B. Some harder logical reasoning
   C. Something random and fun"""

CHOICE_NOTES = {
    "A": "The user chose the memory / warm-up direction.",
    "B": "The user chose the logical reasoning direction.",
    "C": "The user chose random / fun training.",
}

PRESENT_EXERCISE_TEMPLATE = """Present the following task to the user.

Task information:
- Abilities trained: {abilities}
- Difficulty: {difficulty}/5
- {time_hint}

Task:
{prompt}

In your coach voice: say in one sentence what this task trains, give the task
verbatim, mention the time suggestion if any, and end by inviting the user to
reply with their answer and reasoning."""

FEEDBACK_TEMPLATE = """Turn this evaluation into friendly feedback for the user.

Evaluation:
- Overall: {label} ({score} points)
- Strengths: {strengths}
- To improve: {improvements}
- Next time: {tip}

Give an overall impression without quoting the score, affirm the strengths,
mention the improvement, give the tip, and end with a short question."""


# =============================================================================
# FORMATTERS
# =============================================================================

def format_profile(profile: AbilityProfile) -> str:
    return (
        f"attention {profile.attention:.0f} | memory {profile.memory:.0f} | "
        f"logic {profile.logic:.0f} | expression {profile.expression:.0f} | "
        f"metacognition {profile.metacognition:.0f}"
    )


def format_recent_performance(performance: RecentPerformance) -> List[str]:
    lines = [f"- Recent performance: average score {performance.average_score:.0f}"]
    if performance.consecutive_correct >= 3:
        lines.append(
            f"  * {performance.consecutive_correct} correct in a row, consider raising the difficulty"
        )
    if performance.consecutive_wrong >= 3:
        lines.append(
            f"  * {performance.consecutive_wrong} wrong in a row, consider easing off or switching task type"
        )
    return lines


def build_context_section(context: AgentContext) -> str:
    parts = [f"- User name: {context.user_name or 'User'}"]
    if context.energy_level is not None:
        parts.append(f"- Energy level: {context.energy_level}/10")
    if context.user_goal:
        parts.append(f"- Goal for today: {context.user_goal}")
    if context.last_session_summary:
        parts.append(f"- Last session: {context.last_session_summary}")
    if context.ability_profile:
        parts.append(f"- Ability profile: {format_profile(context.ability_profile)}")
    if context.recent_performance:
        parts.extend(format_recent_performance(context.recent_performance))
    return "\n".join(parts)


def build_coach_system_prompt(context: AgentContext, phase: Optional[Phase] = None) -> str:
    """Persona + behaviour rules + user context + guidance for the phase."""
    guidance = PHASE_GUIDANCE.get(phase or context.current_phase, PHASE_GUIDANCE[Phase.START])
    return (
        f"{COACH_SYSTEM_PROMPT}\n\n{COACH_BEHAVIOR_PROMPT}\n\n"
        f"---\nCURRENT CONTEXT\n{build_context_section(context)}\n\n"
        f"---\nPHASE GUIDANCE\n{guidance}"
    )


def build_session_start_prompt(context: AgentContext) -> str:
    history_line = (
        f"Last session: {context.last_session_summary}"
        if context.last_session_summary
        else "New user, no previous sessions"
    )
    profile_line = (
        f"- Ability profile: {format_profile(context.ability_profile)}\n"
        if context.ability_profile
        else ""
    )
    return SESSION_START_TEMPLATE.format(
        user_name=context.user_name,
        history_line=history_line,
        profile_line=profile_line,
    )
