from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from learnpath.core.errors import DuplicateCertificate
from learnpath.models.certificate import Certificate


class CertificateRepo(Protocol):
    async def get_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> Certificate | None: ...
    async def add(self, certificate: Certificate) -> None: ...
    async def list_for_user(self, user_id: UUID) -> list[Certificate]: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Certificate] = {}

    async def get_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> Certificate | None:
        return self._store.get((user_id, course_id))

    async def add(self, certificate: Certificate) -> None:
        key = (certificate.user_id, certificate.course_id)
        if key in self._store:
            raise DuplicateCertificate("Certificate already exists")
        self._store[key] = certificate

    async def list_for_user(self, user_id: UUID) -> list[Certificate]:
        certs = [c for c in self._store.values() if c.user_id == user_id]
        return sorted(certs, key=lambda c: c.created_at, reverse=True)

    def snapshot(self) -> dict[str, Any]:
        return {"certificates": dict(self._store)}

    def restore(self, state: dict[str, Any]) -> None:
        self._store = state["certificates"]
