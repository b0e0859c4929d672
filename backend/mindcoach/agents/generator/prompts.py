"""Prompt templates for the exercise Generator."""

from typing import List, Optional

from mindcoach.agents.base.state import AbilityTag

from .state import ExerciseStyle, ExerciseType


# =============================================================================
# SYSTEM PROMPT
# =============================================================================

GENERATOR_SYSTEM_PROMPT = """You are a brain-training exercise designer.

When writing exercises follow these principles:

1. The task must require thinking:
   - Avoid pure recall ("what is the exact definition of ...?").
   - Prefer explaining, reasoning, estimating and giving examples.

2. Give it a setting:
   - Place the task in a small everyday or work scenario where possible,
     e.g. "You are discussing a product plan with a colleague..."
   - If the user's interests are known, embed the task in that context.

3. Difficulty and length:
   - The prompt should fit on one phone screen.
   - Difficulty runs 1 to 5 where 3 means "takes some effort but is doable".

4. Output:
   - Output JSON.
   - The prompt must be clear with a moderate amount of information.
   - Do not rely on obscure knowledge; test the thinking process.
   - Never reveal the answer or the explanation inside the prompt."""


ABILITY_NAMES = {
    AbilityTag.ATTENTION: "attention / focus",
    AbilityTag.MEMORY: "memory / working memory",
    AbilityTag.LOGIC: "logical reasoning",
    AbilityTag.EXPRESSION: "verbal expression",
    AbilityTag.METACOGNITION: "metacognition / reflection",
}

STYLE_NAMES = {
    ExerciseStyle.ABSTRACT: "abstract puzzle",
    ExerciseStyle.REAL_LIFE: "real-life scenario",
    ExerciseStyle.PLAYFUL: "light and playful",
    ExerciseStyle.PROFESSIONAL: "work related",
    ExerciseStyle.ACADEMIC: "academic / knowledge based",
}

TYPE_NAMES = {
    ExerciseType.NUMBER_SPAN: "number span",
    ExerciseType.DIGIT_OPERATION: "digit operation",
    ExerciseType.LOGIC_PUZZLE: "logic puzzle",
    ExerciseType.ANALOGY: "analogy",
    ExerciseType.DEDUCTION: "deduction",
    ExerciseType.STROOP: "Stroop interference task",
    ExerciseType.SELECTIVE_ATTENTION: "selective attention",
    ExerciseType.READING_RECALL: "reading recall",
    ExerciseType.EXPRESSION: "verbal expression",
    ExerciseType.EXPLANATION: "concept explanation",
    ExerciseType.METACOG_REFLECTION: "metacognitive reflection",
    ExerciseType.CREATIVE: "creative divergent thinking",
    ExerciseType.GENERAL: "general",
}


# =============================================================================
# GENERATION TEMPLATE
# =============================================================================

GENERATE_EXERCISE_TEMPLATE = """Create one brain-training exercise with these parameters:

Target abilities: {abilities}
Difficulty: {difficulty}/5 (1 = very easy, 3 = moderate challenge, 5 = very hard)
Style: {style}
Exercise type: {exercise_type}
{theme_line}{context_line}Time limited: {time_limited}
{type_guidance}
Output one JSON object with these fields:
{{
  "prompt": "the task shown to the user, without the answer",
  "referenceAnswer": "reference answer or key points",
  "explanation": "worked explanation used when scoring",
  "suggestedTimeSeconds": integer seconds,
  "difficulty": actual difficulty 1-5,
  "targetAbilities": ["ability tags from: attention, memory, logic, expression, metacognition"],
  "exerciseType": "type identifier",
  "rubric": {{
    "dimensions": [
      {{"name": "dimension name", "description": "what to look for", "weight": 0.0-1.0}}
    ],
    "scoringScale": {{"0": "...", "1": "...", "2": "...", "3": "...", "4": "...", "5": "..."}},
    "typicalMistakes": ["common mistake 1", "common mistake 2"]
  }}
}}

Notes:
- The prompt must be self-contained; the user sees only that field.
- Keep the difficulty at the requested level.
- For memory tasks the prompt must contain the material to remember.
- Output only the JSON, no other text."""


EXERCISE_TYPE_TEMPLATES = {
    ExerciseType.NUMBER_SPAN: """Number span task:
- Give a sequence of digits to memorise (difficulty 1 = 4 digits, difficulty 5 = 9 digits).
- Ask the user to transform it before repeating (reverse it, add 2 to each digit, split odd/even...).
- Higher difficulty means a more complex transformation.""",
    ExerciseType.LOGIC_PUZZLE: """Logic puzzle:
- Build a small scenario that needs several reasoning steps.
- Give a set of conditions or clues and ask for the conclusion.
- Higher difficulty means more conditions and longer chains.""",
    ExerciseType.ANALOGY: """Analogy task:
- Format: A is to B as C is to ?, or find the shared rule between items.
- Higher difficulty means a subtler relation.""",
    ExerciseType.EXPRESSION: """Verbal expression task:
- Give something to explain or describe to a stated audience (a child, a layperson).
- Limit the length and judge clarity, accuracy and structure.""",
    ExerciseType.EXPLANATION: """Concept explanation task:
- Pick an everyday concept or one from the user's field.
- Ask for a simple explanation, optionally with a metaphor or example.""",
    ExerciseType.METACOG_REFLECTION: """Metacognitive reflection task:
- Not a knowledge question; guide the user to examine their own thinking.
- e.g. "Looking back at how you solved the last task, which step took longest and why?\"""",
}


# =============================================================================
# FORMATTERS
# =============================================================================

def format_abilities(abilities: List[AbilityTag]) -> str:
    return ", ".join(ABILITY_NAMES.get(ability, ability.value) for ability in abilities)


def build_generate_prompt(
    abilities: List[AbilityTag],
    difficulty: int,
    style: Optional[ExerciseStyle] = None,
    exercise_type: Optional[ExerciseType] = None,
    theme: Optional[str] = None,
    user_context: Optional[str] = None,
    time_limited: bool = False,
) -> str:
    """Render the single-exercise generation prompt."""
    guidance = EXERCISE_TYPE_TEMPLATES.get(exercise_type) if exercise_type else None
    return GENERATE_EXERCISE_TEMPLATE.format(
        abilities=format_abilities(abilities),
        difficulty=difficulty,
        style=STYLE_NAMES[style] if style else "mixed",
        exercise_type=TYPE_NAMES[exercise_type] if exercise_type else "choose one that fits the abilities",
        theme_line=f"Theme: {theme}\n" if theme else "",
        context_line=f"User background: {user_context}\n" if user_context else "",
        time_limited="yes, include a suggested time" if time_limited else "no",
        type_guidance=f"\n{guidance}\n" if guidance else "",
    )
