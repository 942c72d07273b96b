"""Quiz grading and milestone progression.

State machine per (user, course):

    milestone k:  locked ──(k-1 passed)──▶ active ──(quiz ≥ 75%)──▶ completed

Passing the last milestone flips the course active → completed and hands
certificate issuance to a background task.  Completing the current record
is the only write that can fail the request; unlocking the successor and
completing the course are best-effort and only logged on failure.

Policies for the cases the state machine leaves open:
  - locked milestone      → rejected with MilestoneLocked, nothing graded
  - completed milestone   → graded and reported, no state change
  - two concurrent passes → the conditional active → completed update
                            lets exactly one of them run the side effects
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from uuid import UUID

from learnpath.core.errors import (
    MilestoneLocked,
    NotFound,
    PersistenceError,
    ValidationFailed,
)
from learnpath.core.metrics import QUIZ_SUBMISSIONS
from learnpath.models.course import QuizQuestion
from learnpath.repos.store import Store

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 75.0

CourseCompletedHook = Callable[[UUID, UUID], Awaitable[object]]


@dataclass(frozen=True, slots=True)
class Grade:
    correct_answers: int
    total_questions: int
    score: float
    passed: bool


@dataclass(frozen=True, slots=True)
class QuizResult:
    passed: bool
    score: float
    correct_answers: int
    total_questions: int
    course_completed: bool = False
    already_completed: bool = False


def validate_answers(answers: Sequence[int | None], total_questions: int) -> list[int]:
    """Reject incomplete submissions: every question needs a non-negative index."""
    if len(answers) > total_questions:
        raise ValidationFailed(
            f"Too many answers: got {len(answers)} for {total_questions} questions"
        )
    if len(answers) < total_questions or any(a is None or a < 0 for a in answers):
        raise ValidationFailed("Please answer all questions before submitting")
    return [int(a) for a in answers]  # type: ignore[arg-type]


def grade(quiz: Sequence[QuizQuestion], answers: Sequence[int]) -> Grade:
    total = len(quiz)
    correct = sum(1 for q, a in zip(quiz, answers) if a == q.correct)
    score = correct / total * 100
    return Grade(
        correct_answers=correct,
        total_questions=total,
        score=score,
        passed=score >= PASS_THRESHOLD,
    )


async def submit_quiz(
    *,
    user_id: UUID,
    course_id: UUID,
    milestone_id: UUID,
    answers: Sequence[int | None],
    store: Store,
    on_course_completed: CourseCompletedHook,
    now: int | None = None,
) -> QuizResult:
    milestone = await store.courses.get_milestone(milestone_id)
    if milestone is None or milestone.course_id != course_id:
        raise NotFound("Milestone not found")
    if not milestone.quiz:
        raise NotFound("Milestone or quiz not found")

    course = await store.courses.get_for_user(course_id, user_id)
    if course is None:
        raise NotFound("Course not found")

    record = await store.progress.get(user_id, milestone_id)
    if record is None:
        raise NotFound("Progress record not found")

    checked = validate_answers(answers, len(milestone.quiz))

    if record.status == "locked":
        logger.warning(
            "Quiz rejected for locked milestone=%s user=%s", milestone_id, user_id
        )
        raise MilestoneLocked("Milestone is locked")

    result = grade(milestone.quiz, checked)
    logger.info(
        "Quiz graded milestone=%s user=%s correct=%d/%d score=%.1f passed=%s",
        milestone_id,
        user_id,
        result.correct_answers,
        result.total_questions,
        result.score,
        result.passed,
    )

    if record.status == "completed":
        QUIZ_SUBMISSIONS.labels(outcome="resubmitted").inc()
        return _result(result, already_completed=True)

    if not result.passed:
        QUIZ_SUBMISSIONS.labels(outcome="failed").inc()
        return _result(result)

    completed_at = now if now is not None else int(
        datetime.datetime.now(datetime.UTC).timestamp()
    )
    try:
        won = await store.progress.complete_if_active(
            user_id, milestone_id, score=result.score, completed_at=completed_at
        )
    except Exception as exc:
        logger.exception("Failed to complete milestone=%s user=%s", milestone_id, user_id)
        raise PersistenceError(f"Failed to update progress: {exc}") from exc

    if not won:
        # A concurrent submission got there first and owns the side effects.
        QUIZ_SUBMISSIONS.labels(outcome="resubmitted").inc()
        return _result(result, already_completed=True)

    QUIZ_SUBMISSIONS.labels(outcome="passed").inc()

    milestones = await store.courses.list_milestones(course_id)
    position = next(i for i, m in enumerate(milestones) if m.id == milestone_id)
    successor = milestones[position + 1] if position + 1 < len(milestones) else None

    if successor is not None:
        await _activate_next(store, user_id, successor.id)
        return _result(result)

    await _complete_course(store, user_id, course_id)
    try:
        await on_course_completed(user_id, course_id)
    except Exception:
        logger.exception(
            "Certificate dispatch failed course=%s user=%s", course_id, user_id
        )
    return _result(result, course_completed=True)


async def _activate_next(store: Store, user_id: UUID, milestone_id: UUID) -> None:
    try:
        async with store.atomic():
            activated = await store.progress.activate_if_locked(user_id, milestone_id)
    except Exception:
        logger.exception(
            "Error activating next milestone=%s user=%s", milestone_id, user_id
        )
        return
    if activated:
        logger.info("Next milestone activated: %s", milestone_id)
    else:
        logger.warning("Next milestone=%s was not locked; left as is", milestone_id)


async def _complete_course(store: Store, user_id: UUID, course_id: UUID) -> None:
    try:
        async with store.atomic():
            changed = await store.courses.mark_completed(course_id, user_id)
    except Exception:
        logger.exception("Error marking course=%s as completed", course_id)
        return
    if changed:
        logger.info("Course marked as completed: %s", course_id)


def _result(
    g: Grade, *, course_completed: bool = False, already_completed: bool = False
) -> QuizResult:
    return QuizResult(
        passed=g.passed,
        score=g.score,
        correct_answers=g.correct_answers,
        total_questions=g.total_questions,
        course_completed=g.passed and course_completed,
        already_completed=already_completed,
    )
