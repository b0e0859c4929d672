"""
Tests for the Answer Judge role.
"""

import json

import pytest

from mindcoach.agents.base.errors import DecodeError
from mindcoach.agents.judge import EvaluationResult, JudgeAgent, ScoreLabel
from mindcoach.agents.judge.agent import COMPARE_FALLBACK, HINT_FALLBACK, QUICK_FALLBACK, REPORT_FALLBACK

from conftest import FakeGateway, evaluation_json, make_exercise


@pytest.mark.asyncio
class TestEvaluate:
    async def test_scores_every_dimension(self):
        judge = JudgeAgent(FakeGateway([evaluation_json(score=95)]))
        result = await judge.evaluate(make_exercise(), "32", 40)
        assert result.overall_score == 95
        assert result.label == ScoreLabel.COMPLETE
        assert result.feedback_to_user == "Nicely done!"

    async def test_missing_dimension_is_a_decode_error(self):
        payload = json.loads(evaluation_json())
        payload["dimensionScores"] = payload["dimensionScores"][:2]
        judge = JudgeAgent(FakeGateway([json.dumps(payload)]))
        with pytest.raises(DecodeError) as excinfo:
            await judge.evaluate(make_exercise(), "32")
        assert "completeness" in excinfo.value.reason

    async def test_dimension_score_out_of_range_is_a_decode_error(self):
        payload = json.loads(evaluation_json())
        payload["dimensionScores"][0]["score"] = 9
        judge = JudgeAgent(FakeGateway([json.dumps(payload)]))
        with pytest.raises(DecodeError):
            await judge.evaluate(make_exercise(), "32")

    async def test_overall_score_is_clamped(self):
        judge = JudgeAgent(FakeGateway([evaluation_json(score=130)]))
        result = await judge.evaluate(make_exercise(), "32")
        assert result.overall_score == 100

    async def test_blank_feedback_gets_score_band_default(self):
        judge = JudgeAgent(FakeGateway([evaluation_json(score=20, feedbackToUser="")]))
        result = await judge.evaluate(make_exercise(), "7")
        assert result.label == ScoreLabel.INCORRECT
        assert result.feedback_to_user.startswith("This one was tough")

    async def test_rushed_answer_is_noted_in_prompt(self):
        gateway = FakeGateway([evaluation_json()])
        await JudgeAgent(gateway).evaluate(make_exercise(suggested_time_seconds=60), "32", 10)
        assert "rushed" in gateway.last_prompt

    async def test_no_timing_note_without_elapsed_time(self):
        gateway = FakeGateway([evaluation_json()])
        await JudgeAgent(gateway).evaluate(make_exercise(), "32")
        assert "Timing:" not in gateway.last_prompt


@pytest.mark.asyncio
class TestSecondaryActions:
    async def test_quick_accepts_legacy_keys(self):
        reply = json.dumps({"overallScore": 100, "isCorrect": True, "briefFeedback": "Correct"})
        quick = await JudgeAgent(FakeGateway([reply])).quick(make_exercise(), "32")
        assert quick.score == 100
        assert quick.is_correct is True
        assert quick.feedback == "Correct"

    async def test_quick_fallback(self):
        quick = await JudgeAgent(FakeGateway(["not json at all"])).quick(make_exercise(), "32")
        assert quick == QUICK_FALLBACK

    @pytest.mark.parametrize("reply", ["{}", '{"isCorrect": true, "feedback": "Looks right"}'])
    async def test_quick_without_score_falls_back(self, reply):
        quick = await JudgeAgent(FakeGateway([reply])).quick(make_exercise(), "32")
        assert quick == QUICK_FALLBACK

    async def test_compare_fallback(self):
        comparison = await JudgeAgent(FakeGateway(["???"])).compare(make_exercise(), "30")
        assert comparison == COMPARE_FALLBACK

    async def test_multidimensional_fills_skipped_dimensions(self):
        reply = json.dumps({"clarity": {"score": 80, "comment": "Clear"}})
        assessments = await JudgeAgent(FakeGateway([reply])).multidimensional(
            make_exercise(), "32", ["clarity", "depth"]
        )
        assert assessments["clarity"].score == 80
        assert assessments["depth"].score == 50
        assert assessments["depth"].comment == "Unable to evaluate"

    async def test_report_without_evaluations_makes_no_call(self):
        gateway = FakeGateway()
        report = await JudgeAgent(gateway).report([])
        assert report == REPORT_FALLBACK
        assert gateway.calls == []

    async def test_report_summarises_scores(self):
        reply = json.dumps({"summary": "Strong session", "strengths": ["Recall"]})
        gateway = FakeGateway([reply])
        report = await JudgeAgent(gateway).report([
            EvaluationResult(overall_score=95),
            EvaluationResult(overall_score=55),
        ])
        assert report.summary == "Strong session"
        assert "75" in gateway.last_prompt

    async def test_hint_level_is_bounded(self):
        gateway = FakeGateway(["Look at how each number relates to the one before."])
        hint = await JudgeAgent(gateway).hint(make_exercise(), "30", level=7)
        assert hint.startswith("Look at")

    async def test_blank_hint_falls_back(self):
        hint = await JudgeAgent(FakeGateway(["   "])).hint(make_exercise())
        assert hint == HINT_FALLBACK
