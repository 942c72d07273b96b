"""Onboarding chat endpoints.

The client holds the dialogue state and sends it back with every message;
the server keeps nothing between calls.  Answering the last question
generates the roadmap in the same request.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from learnpath.api.dependencies import get_store
from learnpath.api.schemas import CamelModel, CourseOut, MilestoneOut
from learnpath.middleware.request_context import bind_user
from learnpath.repos.store import Store
from learnpath.services import onboarding
from learnpath.services.content_client import ContentClient, get_content_client
from learnpath.services.roadmap_service import generate_roadmap

router = APIRouter(prefix="/v1/onboarding", tags=["onboarding"])

READY_MESSAGE = "Your personalized roadmap is ready! Let's start learning."


class StateModel(CamelModel):
    step: onboarding.OnboardingStep = onboarding.OnboardingStep.TOPIC
    topic: str = ""
    duration: str = ""
    preference: str = ""
    skill_level: str = ""
    goal: str = ""

    @staticmethod
    def of(state: onboarding.OnboardingState) -> StateModel:
        return StateModel(
            step=state.step,
            topic=state.topic,
            duration=state.duration,
            preference=state.preference,
            skill_level=state.skill_level,
            goal=state.goal,
        )

    def to_state(self) -> onboarding.OnboardingState:
        return onboarding.OnboardingState(
            step=self.step,
            topic=self.topic,
            duration=self.duration,
            preference=self.preference,
            skill_level=self.skill_level,
            goal=self.goal,
        )


class MessageIn(CamelModel):
    user_id: UUID
    state: StateModel
    message: str


class OnboardingOut(CamelModel):
    state: StateModel
    messages: list[str]
    choices: list[str] = []
    course: CourseOut | None = None
    milestones: list[MilestoneOut] | None = None


@router.post("/start", response_model=OnboardingOut, response_model_exclude_none=True)
async def start() -> OnboardingOut:
    state, reply = onboarding.start()
    return OnboardingOut(
        state=StateModel.of(state),
        messages=[reply.message],
        choices=list(reply.choices),
    )


@router.post(
    "/messages", response_model=OnboardingOut, response_model_exclude_none=True
)
async def message(
    body: MessageIn,
    store: Annotated[Store, Depends(get_store)],
    client: Annotated[ContentClient, Depends(get_content_client)],
) -> OnboardingOut:
    bind_user(body.user_id)
    state, effect = onboarding.advance(body.state.to_state(), body.message)

    if isinstance(effect, onboarding.Reply):
        return OnboardingOut(
            state=StateModel.of(state),
            messages=[effect.message],
            choices=list(effect.choices),
        )

    generated = await generate_roadmap(
        effect.to_request(body.user_id), store=store, client=client
    )
    return OnboardingOut(
        state=StateModel.of(state),
        messages=[effect.message, READY_MESSAGE],
        course=CourseOut.of(generated.course),
        milestones=[MilestoneOut.of(m) for m in generated.milestones],
    )
