"""PostgreSQL implementation of ProgressRepo.

The two transitions are conditional UPDATEs: the WHERE clause carries the
expected current status, so of two concurrent passing submissions only one
sees rowcount == 1 and goes on to unlock the next milestone.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.db.tables import ProgressRow
from learnpath.models.progress import ProgressRecord


class PgProgressRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_many(self, records: list[ProgressRecord]) -> None:
        self._session.add_all(
            [
                ProgressRow(
                    id=r.id,
                    user_id=r.user_id,
                    course_id=r.course_id,
                    milestone_id=r.milestone_id,
                    status=r.status,
                    quiz_score=r.quiz_score,
                    completed_at=r.completed_at,
                )
                for r in records
            ]
        )
        await self._session.flush()

    async def get(self, user_id: UUID, milestone_id: UUID) -> ProgressRecord | None:
        stmt = select(ProgressRow).where(
            ProgressRow.user_id == user_id, ProgressRow.milestone_id == milestone_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_record(row) if row is not None else None

    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ProgressRecord]:
        stmt = select(ProgressRow).where(
            ProgressRow.user_id == user_id, ProgressRow.course_id == course_id
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_record(r) for r in rows]

    async def complete_if_active(
        self, user_id: UUID, milestone_id: UUID, *, score: float, completed_at: int
    ) -> bool:
        stmt = (
            update(ProgressRow)
            .where(
                ProgressRow.user_id == user_id,
                ProgressRow.milestone_id == milestone_id,
                ProgressRow.status == "active",
            )
            .values(status="completed", quiz_score=score, completed_at=completed_at)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def activate_if_locked(self, user_id: UUID, milestone_id: UUID) -> bool:
        stmt = (
            update(ProgressRow)
            .where(
                ProgressRow.user_id == user_id,
                ProgressRow.milestone_id == milestone_id,
                ProgressRow.status == "locked",
            )
            .values(status="active")
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1


def _row_to_record(row: ProgressRow) -> ProgressRecord:
    return ProgressRecord(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        milestone_id=row.milestone_id,
        status=row.status,  # type: ignore[arg-type]
        quiz_score=row.quiz_score,
        completed_at=row.completed_at,
    )
