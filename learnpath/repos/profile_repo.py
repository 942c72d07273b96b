from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from learnpath.models.profile import Profile


class ProfileRepo(Protocol):
    async def get(self, user_id: UUID) -> Profile | None: ...
    async def upsert(self, profile: Profile) -> Profile: ...


class InMemoryProfileRepo:
    def __init__(self) -> None:
        self._by_user: dict[UUID, Profile] = {}

    async def get(self, user_id: UUID) -> Profile | None:
        return self._by_user.get(user_id)

    async def upsert(self, profile: Profile) -> Profile:
        self._by_user[profile.user_id] = profile
        return profile

    def snapshot(self) -> dict[str, Any]:
        return {"profiles": dict(self._by_user)}

    def restore(self, state: dict[str, Any]) -> None:
        self._by_user = state["profiles"]
