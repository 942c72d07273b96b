from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class QuizQuestion:
    question: str
    options: tuple[str, ...]
    correct: int  # zero-based index into options

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "correct": self.correct,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> QuizQuestion:
        return QuizQuestion(
            question=data["question"],
            options=tuple(data["options"]),
            correct=int(data["correct"]),
        )


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    user_id: UUID
    name: str
    duration: str
    created_at: int
    status: str = "active"  # active|completed
    # Raw generator output, kept for display and audit.
    roadmap: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def new(
        *,
        user_id: UUID,
        name: str,
        duration: str,
        created_at: int,
        roadmap: dict[str, Any],
    ) -> Course:
        return Course(
            id=uuid4(),
            user_id=user_id,
            name=name,
            duration=duration,
            created_at=created_at,
            roadmap=roadmap,
        )

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


@dataclass(frozen=True, slots=True)
class Milestone:
    """One step of a course.  Immutable once the roadmap is persisted."""

    id: UUID
    course_id: UUID
    title: str
    order_index: int  # 1-based, contiguous within a course
    resources: dict[str, Any] = field(default_factory=dict)
    quiz: tuple[QuizQuestion, ...] = ()

    @staticmethod
    def new(
        *,
        course_id: UUID,
        title: str,
        order_index: int,
        resources: dict[str, Any],
        quiz: tuple[QuizQuestion, ...],
    ) -> Milestone:
        return Milestone(
            id=uuid4(),
            course_id=course_id,
            title=title,
            order_index=order_index,
            resources=resources,
            quiz=quiz,
        )
