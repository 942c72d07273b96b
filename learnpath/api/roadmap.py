"""POST /v1/generate-roadmap: topic + duration in, persisted course out."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from learnpath.api.dependencies import get_store
from learnpath.api.schemas import CamelModel, CourseOut, MilestoneOut
from learnpath.middleware.request_context import bind_user
from learnpath.repos.store import Store
from learnpath.services.content_client import ContentClient, get_content_client
from learnpath.services.roadmap_service import RoadmapRequest, generate_roadmap

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["roadmap"])


class GenerateRoadmapIn(CamelModel):
    user_id: UUID
    topic: str = ""
    duration: str = ""
    goal: str = ""
    skill_level: str = ""
    preference: str = ""


class GenerateRoadmapOut(CamelModel):
    success: bool = True
    course: CourseOut
    milestones: list[MilestoneOut]


@router.post("/generate-roadmap", response_model=GenerateRoadmapOut)
async def create_roadmap(
    body: GenerateRoadmapIn,
    store: Annotated[Store, Depends(get_store)],
    client: Annotated[ContentClient, Depends(get_content_client)],
) -> GenerateRoadmapOut:
    bind_user(body.user_id)
    generated = await generate_roadmap(
        RoadmapRequest(
            user_id=body.user_id,
            topic=body.topic,
            duration=body.duration,
            goal=body.goal,
            skill_level=body.skill_level,
            preference=body.preference,
        ),
        store=store,
        client=client,
    )
    return GenerateRoadmapOut(
        course=CourseOut.of(generated.course),
        milestones=[MilestoneOut.of(m) for m in generated.milestones],
    )
