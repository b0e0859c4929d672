"""
Tests for the Coach role and its keyword phase classifier.
"""

import pytest

from mindcoach.agents.base.errors import TransportError
from mindcoach.agents.base.state import AgentContext, Phase, RecentPerformance
from mindcoach.agents.coach import CoachAgent, KeywordPhaseClassifier
from mindcoach.agents.coach.agent import interpret_choice
from mindcoach.agents.judge.state import EvaluationResult

from conftest import FakeGateway, make_exercise


@pytest.fixture
def classifier() -> KeywordPhaseClassifier:
    return KeywordPhaseClassifier()


class TestKeywordPhaseClassifier:
    def test_warmup_phrase_from_start(self, classifier):
        signal = classifier.classify("Great, let's start with a quick warm-up!", Phase.START)
        assert signal.suggested_phase == Phase.WARMUP

    def test_case_insensitive(self, classifier):
        signal = classifier.classify("LET'S DO A WARM UP", Phase.START)
        assert signal.suggested_phase == Phase.WARMUP

    def test_only_immediate_next_phase_is_considered(self, classifier):
        # "challenge" belongs to main, two steps ahead of start
        signal = classifier.classify("Ready for a real challenge?", Phase.START)
        assert signal.suggested_phase is None

    def test_main_from_warmup(self, classifier):
        signal = classifier.classify("Nice! Now let's officially start the main training.", Phase.WARMUP)
        assert signal.suggested_phase == Phase.MAIN

    def test_cooldown_from_main(self, classifier):
        signal = classifier.classify("Here's the last one for today.", Phase.MAIN)
        assert signal.suggested_phase == Phase.COOLDOWN

    def test_reflect_from_cooldown_needs_reflection_keyword(self, classifier):
        signal = classifier.classify("Let's reflect on which task felt hardest.", Phase.COOLDOWN)
        assert signal.suggested_phase == Phase.REFLECT
        assert signal.should_reflect is True

    def test_reflection_keyword_outside_late_phases(self, classifier):
        signal = classifier.classify("We will review this later.", Phase.WARMUP)
        assert signal.should_reflect is False

    def test_complete_from_reflect(self, classifier):
        signal = classifier.classify("Great work today, see you next time!", Phase.REFLECT)
        assert signal.suggested_phase == Phase.COMPLETE

    def test_no_keywords_no_transition(self, classifier):
        signal = classifier.classify("How are you feeling today?", Phase.START)
        assert signal.suggested_phase is None
        assert signal.should_generate_exercise is False

    def test_exercise_hint(self, classifier):
        signal = classifier.classify("Here's one for you, give it a try.", Phase.MAIN)
        assert signal.should_generate_exercise is True

    def test_word_boundaries(self, classifier):
        signal = classifier.classify("That was previewed earlier.", Phase.COOLDOWN)
        assert signal.should_reflect is False


class TestInterpretChoice:
    @pytest.mark.parametrize("choice,letter", [
        ("A", "A"),
        ("b)", "B"),
        ("c.", "C"),
        ("I'd like the memory one", "A"),
        ("Some logic please", "B"),
        ("Surprise me with something random", "C"),
        ("Not sure yet", None),
    ])
    def test_choices(self, choice, letter):
        assert interpret_choice(choice) == letter


@pytest.mark.asyncio
class TestCoachAgent:
    async def test_reply_is_classified(self):
        gateway = FakeGateway(["Hi Ada! Let's start with a quick warm-up."])
        coach = CoachAgent(gateway)
        context = AgentContext(user_name="Ada", current_phase=Phase.START)

        result = await coach.reply("Hello", [], context)

        assert result.content == "Hi Ada! Let's start with a quick warm-up."
        assert result.suggested_phase == Phase.WARMUP
        assert "Ada" in gateway.calls[0]["system_prompt"]

    async def test_system_prompt_carries_streak_advisory(self):
        gateway = FakeGateway(["Keep going."])
        context = AgentContext(
            current_phase=Phase.MAIN,
            recent_performance=RecentPerformance(average_score=90, consecutive_correct=3, tasks_completed=3),
        )
        await CoachAgent(gateway).reply("next", [], context)
        assert "3 correct in a row" in gateway.calls[0]["system_prompt"]

    async def test_choice_adds_system_note(self):
        gateway = FakeGateway(["Memory it is! Let's begin with a warm-up."])
        await CoachAgent(gateway).handle_choice("A", [], AgentContext())
        assert "[System note:" in gateway.last_prompt

    async def test_transport_error_propagates(self):
        gateway = FakeGateway([TransportError(500, "boom")])
        with pytest.raises(TransportError):
            await CoachAgent(gateway).reply("hi", [], AgentContext())

    async def test_stream_yields_deltas_then_done(self):
        gateway = FakeGateway([["Let's ", "warm ", "up!"]])
        events = [event async for event in CoachAgent(gateway).stream("hi", [], AgentContext())]
        assert [event.delta for event in events if not event.done] == ["Let's ", "warm ", "up!"]
        assert events[-1].done is True

    async def test_present_exercise_and_feedback(self):
        gateway = FakeGateway(["Here's one: what comes next?", "Great job!"])
        coach = CoachAgent(gateway)
        await coach.present_exercise(make_exercise(), AgentContext())
        assert "2, 4, 8, 16" in gateway.last_prompt

        await coach.present_feedback(EvaluationResult(overall_score=92), AgentContext())
        assert "92" in gateway.last_prompt
