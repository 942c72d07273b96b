from __future__ import annotations

from uuid import uuid4

import pytest

from learnpath.core.errors import ValidationFailed
from learnpath.services.onboarding import (
    GREETING,
    GenerateRoadmap,
    OnboardingState,
    OnboardingStep,
    Reply,
    advance,
    start,
)


def _walk(*answers: str):
    state, _ = start()
    effect = None
    for text in answers:
        state, effect = advance(state, text)
    return state, effect


def test_start_greets_at_topic_step() -> None:
    state, reply = start()
    assert state.step is OnboardingStep.TOPIC
    assert reply.message == GREETING


def test_each_answer_moves_one_step() -> None:
    steps = []
    state, _ = start()
    for text in ("Python", "2 weeks", "Notes", "Intermediate", "Exam"):
        state, _ = advance(state, text)
        steps.append(state.step)
    assert steps == [
        OnboardingStep.DURATION,
        OnboardingStep.PREFERENCE,
        OnboardingStep.SKILL_LEVEL,
        OnboardingStep.GOAL,
        OnboardingStep.COMPLETE,
    ]


def test_questions_offer_choices() -> None:
    _, effect = _walk("Python", "1 week")
    assert isinstance(effect, Reply)
    assert effect.choices == ("Videos", "Notes", "Interactive")


def test_goal_answer_requests_generation() -> None:
    state, effect = _walk("  Machine Learning ", "4 weeks", "interactive", "advanced", "placement")
    assert isinstance(effect, GenerateRoadmap)
    assert (effect.topic, effect.duration, effect.preference) == (
        "Machine Learning",
        "4 weeks",
        "Interactive",
    )
    req = effect.to_request(uuid4())
    assert req.skill_level == "Advanced"
    assert req.goal == "Placement"
    assert state.step is OnboardingStep.COMPLETE


def test_known_duration_is_normalized_and_free_text_kept() -> None:
    state, _ = _walk("Python", "1 WEEK")
    assert state.duration == "1 week"
    state, _ = _walk("Python", "10 days")
    assert state.duration == "10 days"


def test_invalid_choice_leaves_state_usable() -> None:
    state, _ = _walk("Python", "1 week")
    with pytest.raises(ValidationFailed, match="preference must be one of"):
        advance(state, "Audiobooks")
    nxt, _ = advance(state, "Videos")
    assert nxt.step is OnboardingStep.SKILL_LEVEL


def test_blank_message_rejected() -> None:
    with pytest.raises(ValidationFailed, match="must not be empty"):
        advance(OnboardingState(), "  ")


def test_complete_state_rejects_input() -> None:
    with pytest.raises(ValidationFailed, match="already complete"):
        advance(OnboardingState(step=OnboardingStep.COMPLETE), "again")


def test_state_is_immutable() -> None:
    state = OnboardingState()
    with pytest.raises(AttributeError):
        state.topic = "x"  # type: ignore[misc]
