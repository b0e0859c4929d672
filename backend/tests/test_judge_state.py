"""
Tests for evaluation result types: score clamping, labels and time signal.
"""

import pytest

from mindcoach.agents.judge.state import (
    DEFAULT_NEXT_TIP,
    DEFAULT_STRENGTHS,
    EvaluationResult,
    ScoreLabel,
    TimeSignal,
    label_for_score,
    time_signal,
)


class TestLabels:
    @pytest.mark.parametrize("score,label", [
        (100, ScoreLabel.COMPLETE),
        (90, ScoreLabel.COMPLETE),
        (89, ScoreLabel.MOSTLY_CORRECT),
        (70, ScoreLabel.MOSTLY_CORRECT),
        (69, ScoreLabel.PARTIALLY_CORRECT),
        (40, ScoreLabel.PARTIALLY_CORRECT),
        (39, ScoreLabel.INCORRECT),
        (0, ScoreLabel.INCORRECT),
    ])
    def test_thresholds(self, score, label):
        assert label_for_score(score) == label

    def test_label_ignores_model_label(self):
        result = EvaluationResult.model_validate({"overallScore": 45, "label": "complete"})
        assert result.label == ScoreLabel.PARTIALLY_CORRECT


class TestClamping:
    def test_score_above_range_is_clamped(self):
        result = EvaluationResult.model_validate({"overallScore": 130})
        assert result.overall_score == 100
        assert result.label == ScoreLabel.COMPLETE

    def test_negative_score_is_clamped(self):
        assert EvaluationResult.model_validate({"overallScore": -5}).overall_score == 0

    def test_percent_string_is_accepted(self):
        assert EvaluationResult.model_validate({"overallScore": "85%"}).overall_score == 85

    def test_dimension_score_out_of_range_is_rejected(self):
        with pytest.raises(ValueError):
            EvaluationResult.model_validate({
                "overallScore": 80,
                "dimensionScores": [{"dimensionName": "correctness", "score": 7}],
            })


class TestDefaults:
    def test_blank_texts_get_defaults(self):
        result = EvaluationResult.model_validate({
            "overallScore": 75,
            "strengthsForUser": "  ",
        })
        assert result.strengths_for_user == DEFAULT_STRENGTHS
        assert result.next_time_tip_for_user == DEFAULT_NEXT_TIP

    def test_default_feedback_by_band(self):
        high = EvaluationResult(overall_score=95).with_default_feedback()
        low = EvaluationResult(overall_score=10).with_default_feedback()
        assert high.feedback_to_user
        assert low.feedback_to_user
        assert high.feedback_to_user != low.feedback_to_user

    def test_model_feedback_is_kept(self):
        result = EvaluationResult(overall_score=60, feedback_to_user="Close!").with_default_feedback()
        assert result.feedback_to_user == "Close!"


class TestTimeSignal:
    @pytest.mark.parametrize("elapsed,suggested,expected", [
        (20, 60, TimeSignal.RUSHED),
        (30, 60, TimeSignal.ON_PACE),
        (120, 60, TimeSignal.ON_PACE),
        (121, 60, TimeSignal.SLOW),
    ])
    def test_thresholds(self, elapsed, suggested, expected):
        assert time_signal(elapsed, suggested) == expected

    def test_unknown_time_gives_no_signal(self):
        assert time_signal(None, 60) is None
        assert time_signal(30, None) is None
