"""Response/request models shared by several routers.

The JSON surface is camelCase (``userId``, ``orderIndex``) while the
Python side stays snake_case; ``CamelModel`` maps between the two and
still accepts snake_case input.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from learnpath.models.certificate import Certificate
from learnpath.models.course import Course, Milestone
from learnpath.models.progress import ProgressRecord


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuizQuestionOut(CamelModel):
    question: str
    options: list[str]
    correct: int


class CourseOut(CamelModel):
    id: UUID
    user_id: UUID
    name: str
    duration: str
    status: str
    roadmap: dict[str, Any]
    created_at: int

    @staticmethod
    def of(course: Course) -> CourseOut:
        return CourseOut(
            id=course.id,
            user_id=course.user_id,
            name=course.name,
            duration=course.duration,
            status=course.status,
            roadmap=course.roadmap,
            created_at=course.created_at,
        )


class MilestoneOut(CamelModel):
    id: UUID
    course_id: UUID
    title: str
    order_index: int
    resources: dict[str, Any]
    quiz: list[QuizQuestionOut]

    @staticmethod
    def of(milestone: Milestone) -> MilestoneOut:
        return MilestoneOut(
            id=milestone.id,
            course_id=milestone.course_id,
            title=milestone.title,
            order_index=milestone.order_index,
            resources=milestone.resources,
            quiz=[QuizQuestionOut(**q.to_dict()) for q in milestone.quiz],
        )


class ProgressOut(CamelModel):
    milestone_id: UUID
    status: str
    quiz_score: float | None = None
    completed_at: int | None = None

    @staticmethod
    def of(record: ProgressRecord) -> ProgressOut:
        return ProgressOut(
            milestone_id=record.milestone_id,
            status=record.status,
            quiz_score=record.quiz_score,
            completed_at=record.completed_at,
        )


class CertificateOut(CamelModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    certificate_data: dict[str, Any]
    created_at: int

    @staticmethod
    def of(certificate: Certificate) -> CertificateOut:
        return CertificateOut(
            id=certificate.id,
            user_id=certificate.user_id,
            course_id=certificate.course_id,
            certificate_data=certificate.certificate_data,
            created_at=certificate.created_at,
        )
