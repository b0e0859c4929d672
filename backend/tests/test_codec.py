"""
Tests for the structured output codec.
"""

from typing import Dict, List

import pytest

from mindcoach.agents.base.codec import decode, encode
from mindcoach.agents.base.errors import DecodeError
from mindcoach.agents.generator.state import ExerciseDraft
from mindcoach.agents.judge.state import EvaluationResult

from conftest import evaluation_json, exercise_json


class TestDecodeFallbackOrder:
    """Framing fallbacks: whole text, fenced block, bracket span."""

    def test_plain_json(self):
        draft = decode(exercise_json(), ExerciseDraft)
        assert draft.prompt.startswith("Remember these numbers")
        assert draft.difficulty == 2

    def test_fenced_block_with_language_tag(self):
        text = f"Here is your exercise:\n```json\n{exercise_json()}\n```\nGood luck!"
        draft = decode(text, ExerciseDraft)
        assert draft.reference_answer == "9 1 8 3"

    def test_fenced_block_without_language_tag(self):
        text = f"```\n{exercise_json()}\n```"
        assert decode(text, ExerciseDraft).difficulty == 2

    def test_bracket_span_inside_prose(self):
        text = f"Sure! {exercise_json()} Let me know if you want another."
        assert decode(text, ExerciseDraft).target_abilities is not None

    def test_list_schema_from_bracket_span(self):
        text = 'Questions:\n["What went well?", "What was hard?"]\nThanks'
        assert decode(text, List[str]) == ["What went well?", "What was hard?"]

    def test_first_bracket_type_decides_span(self):
        text = 'note [draft] {"a": {"score": 80}}'
        with pytest.raises(DecodeError):
            decode(text, Dict[str, Dict[str, int]])

    def test_no_structure_raises_with_text(self):
        text = "I'm sorry, I can't create an exercise right now."
        with pytest.raises(DecodeError) as exc_info:
            decode(text, ExerciseDraft)
        assert exc_info.value.text == text

    def test_empty_text_raises(self):
        with pytest.raises(DecodeError):
            decode("", ExerciseDraft)

    def test_missing_required_field_is_not_invented(self):
        with pytest.raises(DecodeError) as exc_info:
            decode('{"difficulty": 3, "targetAbilities": ["logic"]}', ExerciseDraft)
        assert "schema mismatch" in exc_info.value.reason

    def test_missing_score_raises(self):
        with pytest.raises(DecodeError):
            decode('{"feedbackToUser": "Great"}', EvaluationResult)


class TestEncodeIdempotence:
    """Re-decoding already-valid structured text yields the same value."""

    def test_evaluation_result(self):
        first = decode(evaluation_json(score=82), EvaluationResult)
        second = decode(encode(first), EvaluationResult)
        assert second == first

    def test_exercise_draft(self):
        first = decode(f"```json\n{exercise_json()}\n```", ExerciseDraft)
        assert decode(encode(first), ExerciseDraft) == first

    def test_encode_uses_camel_case(self):
        text = encode(decode(evaluation_json(), EvaluationResult))
        assert '"overallScore"' in text
        assert "overall_score" not in text
