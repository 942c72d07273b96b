from __future__ import annotations

from dataclasses import replace
from typing import Any, Protocol
from uuid import UUID

from learnpath.models.progress import ProgressRecord


class ProgressRepo(Protocol):
    async def add_many(self, records: list[ProgressRecord]) -> None: ...
    async def get(self, user_id: UUID, milestone_id: UUID) -> ProgressRecord | None: ...
    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ProgressRecord]: ...
    async def complete_if_active(
        self, user_id: UUID, milestone_id: UUID, *, score: float, completed_at: int
    ) -> bool: ...
    async def activate_if_locked(self, user_id: UUID, milestone_id: UUID) -> bool: ...


class InMemoryProgressRepo:
    """Keyed by (user_id, milestone_id): one record per user per milestone."""

    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], ProgressRecord] = {}

    async def add_many(self, records: list[ProgressRecord]) -> None:
        keys = [(r.user_id, r.milestone_id) for r in records]
        if len(set(keys)) != len(keys) or any(k in self._store for k in keys):
            raise ValueError("progress record already exists")
        for key, record in zip(keys, records):
            self._store[key] = record

    async def get(self, user_id: UUID, milestone_id: UUID) -> ProgressRecord | None:
        return self._store.get((user_id, milestone_id))

    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ProgressRecord]:
        return [
            r
            for r in self._store.values()
            if r.user_id == user_id and r.course_id == course_id
        ]

    async def complete_if_active(
        self, user_id: UUID, milestone_id: UUID, *, score: float, completed_at: int
    ) -> bool:
        record = self._store.get((user_id, milestone_id))
        if record is None or record.status != "active":
            return False
        self._store[(user_id, milestone_id)] = replace(
            record, status="completed", quiz_score=score, completed_at=completed_at
        )
        return True

    async def activate_if_locked(self, user_id: UUID, milestone_id: UUID) -> bool:
        record = self._store.get((user_id, milestone_id))
        if record is None or record.status != "locked":
            return False
        self._store[(user_id, milestone_id)] = replace(record, status="active")
        return True

    def snapshot(self) -> dict[str, Any]:
        return {"progress": dict(self._store)}

    def restore(self, state: dict[str, Any]) -> None:
        self._store = state["progress"]
