"""POST /v1/submit-quiz: grade a milestone quiz and advance progress."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import StrictInt

from learnpath.api.dependencies import get_completion_hook, get_store
from learnpath.api.schemas import CamelModel
from learnpath.middleware.request_context import bind_user
from learnpath.repos.store import Store
from learnpath.services.quiz_service import CourseCompletedHook, submit_quiz

router = APIRouter(prefix="/v1", tags=["quiz"])


class SubmitQuizIn(CamelModel):
    user_id: UUID
    course_id: UUID
    milestone_id: UUID
    # -1 and null both mean "not answered"; booleans are not indices
    answers: list[StrictInt | None]


class SubmitQuizOut(CamelModel):
    success: bool = True
    passed: bool
    score: float
    correct_answers: int
    total_questions: int
    course_completed: bool
    already_completed: bool


@router.post("/submit-quiz", response_model=SubmitQuizOut)
async def submit(
    body: SubmitQuizIn,
    store: Annotated[Store, Depends(get_store)],
    on_course_completed: Annotated[CourseCompletedHook, Depends(get_completion_hook)],
) -> SubmitQuizOut:
    bind_user(body.user_id)
    result = await submit_quiz(
        user_id=body.user_id,
        course_id=body.course_id,
        milestone_id=body.milestone_id,
        answers=body.answers,
        store=store,
        on_course_completed=on_course_completed,
    )
    return SubmitQuizOut(
        passed=result.passed,
        score=result.score,
        correct_answers=result.correct_answers,
        total_questions=result.total_questions,
        course_completed=result.course_completed,
        already_completed=result.already_completed,
    )
