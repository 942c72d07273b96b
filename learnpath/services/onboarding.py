"""Onboarding dialogue as an explicit state machine.

    TOPIC → DURATION → PREFERENCE → SKILL_LEVEL → GOAL → COMPLETE

``advance(state, text)`` is pure: it returns the next state plus an
effect for the caller to carry out.  Every step but the last yields a
``Reply`` (the next question); answering the goal yields
``GenerateRoadmap`` with everything collected.  The state is a plain
value, so the client can hold it between messages and no server-side
session is needed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from uuid import UUID

from learnpath.core.errors import ValidationFailed
from learnpath.services.roadmap_service import RoadmapRequest


class OnboardingStep(str, Enum):
    TOPIC = "topic"
    DURATION = "duration"
    PREFERENCE = "preference"
    SKILL_LEVEL = "skill_level"
    GOAL = "goal"
    COMPLETE = "complete"


DURATION_CHOICES = ("1 week", "2 weeks", "4 weeks")
PREFERENCE_CHOICES = ("Videos", "Notes", "Interactive")
SKILL_LEVEL_CHOICES = ("Beginner", "Intermediate", "Advanced")
GOAL_CHOICES = ("Exam", "Project", "Placement", "Other")

GREETING = (
    "Hi! I'm your AI learning assistant. I'll help you create a personalized "
    "learning roadmap. What would you like to learn? "
    "(e.g., Web Development, Python, Data Science)"
)
GENERATING_MESSAGE = (
    "Perfect! I'm now generating your personalized learning roadmap. "
    "This might take a moment..."
)

_QUESTIONS: dict[OnboardingStep, tuple[str, tuple[str, ...]]] = {
    OnboardingStep.DURATION: (
        "Great choice! How much time do you have available for this learning journey?",
        DURATION_CHOICES,
    ),
    OnboardingStep.PREFERENCE: (
        "What's your preferred learning style?",
        PREFERENCE_CHOICES,
    ),
    OnboardingStep.SKILL_LEVEL: (
        "What's your current skill level?",
        SKILL_LEVEL_CHOICES,
    ),
    OnboardingStep.GOAL: ("What's your main learning goal?", GOAL_CHOICES),
}


@dataclass(frozen=True, slots=True)
class OnboardingState:
    step: OnboardingStep = OnboardingStep.TOPIC
    topic: str = ""
    duration: str = ""
    preference: str = ""
    skill_level: str = ""
    goal: str = ""


@dataclass(frozen=True, slots=True)
class Reply:
    message: str
    choices: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GenerateRoadmap:
    message: str
    topic: str
    duration: str
    preference: str
    skill_level: str
    goal: str

    def to_request(self, user_id: UUID) -> RoadmapRequest:
        return RoadmapRequest(
            user_id=user_id,
            topic=self.topic,
            duration=self.duration,
            goal=self.goal,
            skill_level=self.skill_level,
            preference=self.preference,
        )


Effect = Reply | GenerateRoadmap


def start() -> tuple[OnboardingState, Reply]:
    return OnboardingState(), Reply(message=GREETING)


def _ask(step: OnboardingStep) -> Reply:
    message, choices = _QUESTIONS[step]
    return Reply(message=message, choices=choices)


def _pick(text: str, choices: tuple[str, ...], field: str) -> str:
    for choice in choices:
        if choice.lower() == text.lower():
            return choice
    raise ValidationFailed(f"{field} must be one of: {', '.join(choices)}")


def advance(state: OnboardingState, text: str) -> tuple[OnboardingState, Effect]:
    answer = text.strip()
    if not answer:
        raise ValidationFailed("Message must not be empty")

    step = state.step
    if step is OnboardingStep.TOPIC:
        nxt = replace(state, step=OnboardingStep.DURATION, topic=answer)
        return nxt, _ask(OnboardingStep.DURATION)
    if step is OnboardingStep.DURATION:
        # Free-text durations are allowed; known ones are normalized.
        try:
            duration = _pick(answer, DURATION_CHOICES, "duration")
        except ValidationFailed:
            duration = answer
        nxt = replace(state, step=OnboardingStep.PREFERENCE, duration=duration)
        return nxt, _ask(OnboardingStep.PREFERENCE)
    if step is OnboardingStep.PREFERENCE:
        preference = _pick(answer, PREFERENCE_CHOICES, "preference")
        nxt = replace(state, step=OnboardingStep.SKILL_LEVEL, preference=preference)
        return nxt, _ask(OnboardingStep.SKILL_LEVEL)
    if step is OnboardingStep.SKILL_LEVEL:
        level = _pick(answer, SKILL_LEVEL_CHOICES, "skill level")
        nxt = replace(state, step=OnboardingStep.GOAL, skill_level=level)
        return nxt, _ask(OnboardingStep.GOAL)
    if step is OnboardingStep.GOAL:
        goal = _pick(answer, GOAL_CHOICES, "goal")
        nxt = replace(state, step=OnboardingStep.COMPLETE, goal=goal)
        return nxt, GenerateRoadmap(
            message=GENERATING_MESSAGE,
            topic=nxt.topic,
            duration=nxt.duration,
            preference=nxt.preference,
            skill_level=nxt.skill_level,
            goal=nxt.goal,
        )
    raise ValidationFailed("Onboarding is already complete")
