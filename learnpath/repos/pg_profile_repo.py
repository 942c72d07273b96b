"""PostgreSQL implementation of ProfileRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.db.tables import ProfileRow
from learnpath.models.profile import Profile


class PgProfileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID) -> Profile | None:
        stmt = select(ProfileRow).where(ProfileRow.user_id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return Profile(user_id=row.user_id, name=row.name or "")

    async def upsert(self, profile: Profile) -> Profile:
        stmt = (
            insert(ProfileRow)
            .values(user_id=profile.user_id, name=profile.name)
            .on_conflict_do_update(
                index_elements=[ProfileRow.user_id],
                set_={"name": profile.name},
            )
        )
        await self._session.execute(stmt)
        return profile
