"""
Tests for the Reflection Coach role and the session aggregate it reads.
"""

import json

import pytest

from mindcoach.agents.base.errors import DecodeError
from mindcoach.agents.base.state import AbilityTag, AgentContext, Phase
from mindcoach.agents.judge.state import EvaluationResult
from mindcoach.agents.reflection import ReflectionAgent, ReflectionResult, SessionAggregate
from mindcoach.agents.reflection.agent import MOTIVATION_FALLBACK, fallback_reflection
from mindcoach.agents.reflection.state import (
    DEFAULT_METACOGNITION_ANALYSIS,
    DEFAULT_SELF_ASSESSMENT_QUESTIONS,
    MetacognitionLevel,
)
from mindcoach.session.aggregate import build_session_aggregate
from mindcoach.session.machine import SessionStateMachine

from conftest import FakeGateway, make_exercise, reflection_json


@pytest.fixture
def context() -> AgentContext:
    return AgentContext(user_name="Ada", current_phase=Phase.REFLECT)


class TestSessionAggregate:
    def test_scored_tasks_only(self):
        machine = SessionStateMachine()
        session = machine.create(phase=Phase.MAIN)
        for exercise, score in (
            (make_exercise(difficulty=2, target_abilities=[AbilityTag.MEMORY]), 95),
            (make_exercise(difficulty=4), 85),
            (make_exercise(difficulty=2), 40),
        ):
            machine.issue(session, exercise)
            machine.answer(session, "answer", 30)
            machine.record_evaluation(session, EvaluationResult(overall_score=score))
        machine.issue(session, make_exercise())

        aggregate = build_session_aggregate(session)
        assert aggregate.task_count == 3
        assert aggregate.average_score == pytest.approx(73.3)
        assert aggregate.total_duration_seconds == 90
        assert [item.was_challenge for item in aggregate.highlights] == [False, True, True]
        assert aggregate.abilities_worked == [AbilityTag.MEMORY, AbilityTag.LOGIC]

    def test_empty_session(self):
        aggregate = build_session_aggregate(SessionStateMachine().create())
        assert aggregate.task_count == 0
        assert aggregate.highlights == []


@pytest.mark.asyncio
class TestGenerate:
    async def test_structured_reflection(self, context):
        gateway = FakeGateway([reflection_json()])
        result = await ReflectionAgent(gateway).generate(SessionAggregate(task_count=2, average_score=88), context)
        assert result.summary.startswith("You finished two tasks")
        assert result.next_step == "Try a focused logic session"
        assert gateway.calls[0]["params"].json_mode is True

    async def test_previous_reflections_reach_prompt(self, context):
        gateway = FakeGateway([reflection_json()])
        previous = [ReflectionResult(summary="Last time you struggled with attention tasks.")]
        await ReflectionAgent(gateway).generate(SessionAggregate(), context, previous)
        assert "struggled with attention" in gateway.last_prompt

    async def test_legacy_next_steps_and_string_lists(self, context):
        reply = json.dumps({"summary": "Good", "nextSteps": ["Rest", "Return"], "highlights": "Quick recall"})
        result = await ReflectionAgent(FakeGateway([reply])).generate(SessionAggregate(), context)
        assert result.next_step == "Rest Return"
        assert result.highlights == ["Quick recall"]

    async def test_malformed_output_raises(self, context):
        with pytest.raises(DecodeError):
            await ReflectionAgent(FakeGateway(["What a session!"])).generate(SessionAggregate(), context)


class TestFallbackReflection:
    def test_fallback_mentions_task_count(self):
        result = fallback_reflection(SessionAggregate(task_count=3, average_score=71.6))
        assert "3 task(s)" in result.summary
        assert "72" in result.summary


@pytest.mark.asyncio
class TestDialogueAndExtras:
    async def test_dialogue_structured(self, context):
        reply = json.dumps({"response": "That sounds hard.", "metacognitiveQuestion": "What did you notice?"})
        turn = await ReflectionAgent(FakeGateway([reply])).dialogue("I rushed", context)
        assert turn.metacognitive_question == "What did you notice?"

    async def test_dialogue_plain_text(self, context):
        turn = await ReflectionAgent(FakeGateway(["Tell me more about that."])).dialogue("I rushed", context)
        assert turn.response == "Tell me more about that."
        assert turn.metacognitive_question is None

    async def test_questions_default(self, context):
        questions = await ReflectionAgent(FakeGateway(["no list here"])).questions(context)
        assert questions == DEFAULT_SELF_ASSESSMENT_QUESTIONS

    async def test_questions_from_model(self, context):
        gateway = FakeGateway([json.dumps(["What surprised you?", ""])])
        questions = await ReflectionAgent(gateway).questions(context, focus="memory")
        assert questions == ["What surprised you?"]
        assert "Focus: memory" in gateway.last_prompt

    async def test_analyze(self, context):
        reply = json.dumps({"level": "proficient", "indicators": ["Names strategies"]})
        analysis = await ReflectionAgent(FakeGateway([reply])).analyze(["I chunked the digits"], context)
        assert analysis.level == MetacognitionLevel.PROFICIENT

    async def test_analyze_default(self, context):
        analysis = await ReflectionAgent(FakeGateway(["hmm"])).analyze([], context)
        assert analysis == DEFAULT_METACOGNITION_ANALYSIS

    async def test_plan_requires_structure(self, context):
        with pytest.raises(DecodeError):
            await ReflectionAgent(FakeGateway(["Train more."])).plan(context)

    async def test_motivate_fallback(self, context):
        assert await ReflectionAgent(FakeGateway([""])).motivate(context, streak=3) == MOTIVATION_FALLBACK
