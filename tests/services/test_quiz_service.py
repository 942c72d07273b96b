from __future__ import annotations

import asyncio
from uuid import UUID

import pytest

from learnpath.core.errors import MilestoneLocked, NotFound, PersistenceError, ValidationFailed
from learnpath.models.course import QuizQuestion
from learnpath.repos.progress_repo import InMemoryProgressRepo
from learnpath.repos.store import InMemoryStore
from learnpath.services.quiz_service import grade, submit_quiz, validate_answers
from learnpath.services.roadmap_service import RoadmapRequest, generate_roadmap
from tests.conftest import CORRECT_ANSWERS, FakeContentClient, roadmap_json

_QUIZ = tuple(
    QuizQuestion(question=f"Q{i}", options=("a", "b", "c", "d"), correct=i % 4)
    for i in range(4)
)


# ---- grading ----


@pytest.mark.parametrize(
    ("answers", "score", "passed"),
    [
        ([0, 1, 2, 3], 100.0, True),
        ([0, 1, 2, 0], 75.0, True),
        ([0, 1, 0, 0], 50.0, False),
        ([3, 3, 3, 3], 25.0, False),
    ],
)
def test_grade(answers: list[int], score: float, passed: bool) -> None:
    g = grade(_QUIZ, answers)
    assert g.score == score
    assert g.passed is passed
    assert g.total_questions == 4


def test_exactly_75_percent_passes() -> None:
    assert grade(_QUIZ, [0, 1, 2, 1]).passed is True


def test_validate_answers_accepts_complete_set() -> None:
    assert validate_answers([0, 1, 2], 3) == [0, 1, 2]


@pytest.mark.parametrize("answers", [[0, 1], [0, -1, 2], [None, 1, 2]])
def test_validate_answers_rejects_incomplete(answers: list) -> None:
    with pytest.raises(ValidationFailed, match="answer all questions"):
        validate_answers(answers, 3)


def test_validate_answers_rejects_extra() -> None:
    with pytest.raises(ValidationFailed, match="Too many answers"):
        validate_answers([0, 1, 2, 3], 3)


# ---- submit ----


class _Hook:
    def __init__(self) -> None:
        self.calls: list[tuple[UUID, UUID]] = []

    async def __call__(self, user_id: UUID, course_id: UUID) -> None:
        self.calls.append((user_id, course_id))


def _seed(store: InMemoryStore, milestones: int = 3):
    req = RoadmapRequest(user_id=UUID(int=7), topic="Go", duration="1 week")
    return asyncio.run(
        generate_roadmap(req, store=store, client=FakeContentClient(roadmap_json(milestones)))
    )


def _submit(store, roadmap, index, answers, hook=None):
    return asyncio.run(
        submit_quiz(
            user_id=roadmap.course.user_id,
            course_id=roadmap.course.id,
            milestone_id=roadmap.milestones[index].id,
            answers=answers,
            store=store,
            on_course_completed=hook or _Hook(),
            now=1234,
        )
    )


def test_submit_pass_completes_and_activates_next() -> None:
    store = InMemoryStore()
    roadmap = _seed(store)
    result = _submit(store, roadmap, 0, CORRECT_ANSWERS)
    assert result.passed is True
    record = asyncio.run(store.progress.get(roadmap.course.user_id, roadmap.milestones[0].id))
    assert (record.status, record.quiz_score, record.completed_at) == ("completed", 100.0, 1234)
    nxt = asyncio.run(store.progress.get(roadmap.course.user_id, roadmap.milestones[1].id))
    assert nxt.status == "active"


def test_submit_locked_raises() -> None:
    store = InMemoryStore()
    roadmap = _seed(store)
    with pytest.raises(MilestoneLocked):
        _submit(store, roadmap, 2, CORRECT_ANSWERS)


def test_submit_calls_hook_once_on_course_completion() -> None:
    store = InMemoryStore()
    roadmap = _seed(store)
    hook = _Hook()
    for index in range(3):
        result = _submit(store, roadmap, index, CORRECT_ANSWERS, hook)
    assert result.course_completed is True
    assert hook.calls == [(roadmap.course.user_id, roadmap.course.id)]
    _submit(store, roadmap, 2, CORRECT_ANSWERS, hook)
    assert len(hook.calls) == 1


def test_submit_unknown_milestone_raises_not_found() -> None:
    store = InMemoryStore()
    roadmap = _seed(store)
    with pytest.raises(NotFound, match="Milestone not found"):
        asyncio.run(
            submit_quiz(
                user_id=roadmap.course.user_id,
                course_id=roadmap.course.id,
                milestone_id=UUID(int=1),
                answers=CORRECT_ANSWERS,
                store=store,
                on_course_completed=_Hook(),
            )
        )


def test_submit_missing_progress_record_raises_not_found() -> None:
    store = InMemoryStore()
    roadmap = _seed(store)
    store.progress = InMemoryProgressRepo()
    with pytest.raises(NotFound, match="Progress record not found"):
        _submit(store, roadmap, 0, CORRECT_ANSWERS)


def test_concurrent_double_pass_has_one_winner() -> None:
    store = InMemoryStore()
    roadmap = _seed(store, milestones=3)
    # Finish milestones 0 and 1 so milestone 2 is the course's last.
    _submit(store, roadmap, 0, CORRECT_ANSWERS)
    _submit(store, roadmap, 1, CORRECT_ANSWERS)
    hook = _Hook()

    async def _race():
        return await asyncio.gather(
            *(
                submit_quiz(
                    user_id=roadmap.course.user_id,
                    course_id=roadmap.course.id,
                    milestone_id=roadmap.milestones[2].id,
                    answers=CORRECT_ANSWERS,
                    store=store,
                    on_course_completed=hook,
                )
                for _ in range(2)
            )
        )

    results = asyncio.run(_race())
    assert sorted(r.already_completed for r in results) == [False, True]
    assert sum(r.course_completed for r in results) == 1
    assert len(hook.calls) == 1


def test_progress_write_failure_is_persistence_error() -> None:
    class _Broken(InMemoryProgressRepo):
        async def complete_if_active(self, *args, **kwargs) -> bool:
            raise RuntimeError("connection reset")

    store = InMemoryStore()
    roadmap = _seed(store)
    broken = _Broken()
    broken.restore(store.progress.snapshot())
    store.progress = broken
    with pytest.raises(PersistenceError, match="Failed to update progress"):
        _submit(store, roadmap, 0, CORRECT_ANSWERS)


def test_activation_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    class _NoActivate(InMemoryProgressRepo):
        async def activate_if_locked(self, user_id, milestone_id) -> bool:
            raise RuntimeError("deadlock")

    store = InMemoryStore()
    roadmap = _seed(store)
    repo = _NoActivate()
    repo.restore(store.progress.snapshot())
    store.progress = repo

    result = _submit(store, roadmap, 0, CORRECT_ANSWERS)
    assert result.passed is True
    assert "Error activating next milestone" in caplog.text
    first = asyncio.run(store.progress.get(roadmap.course.user_id, roadmap.milestones[0].id))
    assert first.status == "completed"
