from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Certificate:
    """Issued course certificate.  At most one per (user_id, course_id)."""

    id: UUID
    user_id: UUID
    course_id: UUID
    created_at: int
    # recipientName, courseName, duration, completionDate, certificateId, issuer
    certificate_data: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        created_at: int,
        certificate_data: dict[str, Any],
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            created_at=created_at,
            certificate_data=certificate_data,
        )
