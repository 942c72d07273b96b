"""Dashboard and course-view reads.

GET /v1/users/{user_id}/courses          courses with completion percentage
GET /v1/courses/{course_id}?userId=...   one course with milestones + progress
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from learnpath.api.dependencies import get_store
from learnpath.api.schemas import CamelModel, CourseOut, MilestoneOut, ProgressOut
from learnpath.core.errors import NotFound
from learnpath.models.progress import ProgressRecord
from learnpath.repos.store import Store

router = APIRouter(prefix="/v1", tags=["courses"])


class CourseSummaryOut(CourseOut):
    progress_percent: int


class CourseDetailOut(CamelModel):
    course: CourseOut
    milestones: list[MilestoneOut]
    progress: list[ProgressOut]


def progress_percent(records: list[ProgressRecord], milestone_count: int) -> int:
    if milestone_count == 0:
        return 0
    completed = sum(1 for r in records if r.status == "completed")
    return round(100 * completed / milestone_count)


@router.get("/users/{user_id}/courses", response_model=list[CourseSummaryOut])
async def list_courses(
    user_id: UUID,
    store: Annotated[Store, Depends(get_store)],
) -> list[CourseSummaryOut]:
    out = []
    for course in await store.courses.list_for_user(user_id):
        milestones = await store.courses.list_milestones(course.id)
        records = await store.progress.list_for_course(user_id, course.id)
        out.append(
            CourseSummaryOut(
                **CourseOut.of(course).model_dump(),
                progress_percent=progress_percent(records, len(milestones)),
            )
        )
    return out


@router.get("/courses/{course_id}", response_model=CourseDetailOut)
async def get_course(
    course_id: UUID,
    user_id: Annotated[UUID, Query(alias="userId")],
    store: Annotated[Store, Depends(get_store)],
) -> CourseDetailOut:
    course = await store.courses.get_for_user(course_id, user_id)
    if course is None:
        raise NotFound("Course not found")
    milestones = await store.courses.list_milestones(course_id)
    records = await store.progress.list_for_course(user_id, course_id)
    by_milestone = {r.milestone_id: r for r in records}
    return CourseDetailOut(
        course=CourseOut.of(course),
        milestones=[MilestoneOut.of(m) for m in milestones],
        progress=[
            ProgressOut.of(by_milestone[m.id]) for m in milestones if m.id in by_milestone
        ],
    )
