"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.db.tables import CourseRow, MilestoneRow
from learnpath.models.course import Course, Milestone, QuizQuestion


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, course: Course) -> None:
        row = CourseRow(
            id=course.id,
            user_id=course.user_id,
            name=course.name,
            duration=course.duration,
            status=course.status,
            roadmap_json=course.roadmap,
            created_at=course.created_at,
        )
        self._session.add(row)
        await self._session.flush()

    async def get(self, course_id: UUID) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_course(row) if row is not None else None

    async def get_for_user(self, course_id: UUID, user_id: UUID) -> Course | None:
        stmt = select(CourseRow).where(
            CourseRow.id == course_id, CourseRow.user_id == user_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_course(row) if row is not None else None

    async def list_for_user(self, user_id: UUID) -> list[Course]:
        stmt = (
            select(CourseRow)
            .where(CourseRow.user_id == user_id)
            .order_by(CourseRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def mark_completed(self, course_id: UUID, user_id: UUID) -> bool:
        stmt = (
            update(CourseRow)
            .where(
                CourseRow.id == course_id,
                CourseRow.user_id == user_id,
                CourseRow.status == "active",
            )
            .values(status="completed")
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def add_milestones(self, milestones: list[Milestone]) -> None:
        self._session.add_all(
            [
                MilestoneRow(
                    id=m.id,
                    course_id=m.course_id,
                    title=m.title,
                    order_index=m.order_index,
                    resources=m.resources,
                    quiz=[q.to_dict() for q in m.quiz],
                )
                for m in milestones
            ]
        )
        await self._session.flush()

    async def get_milestone(self, milestone_id: UUID) -> Milestone | None:
        stmt = select(MilestoneRow).where(MilestoneRow.id == milestone_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_milestone(row) if row is not None else None

    async def list_milestones(self, course_id: UUID) -> list[Milestone]:
        stmt = (
            select(MilestoneRow)
            .where(MilestoneRow.course_id == course_id)
            .order_by(MilestoneRow.order_index)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_milestone(r) for r in rows]


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        duration=row.duration,
        created_at=row.created_at,
        status=row.status,
        roadmap=row.roadmap_json or {},
    )


def _row_to_milestone(row: MilestoneRow) -> Milestone:
    return Milestone(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        order_index=row.order_index,
        resources=row.resources or {},
        quiz=tuple(QuizQuestion.from_dict(q) for q in row.quiz or []),
    )
