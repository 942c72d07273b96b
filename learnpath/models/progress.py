from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

ProgressStatus = Literal["locked", "active", "completed"]


@dataclass(frozen=True, slots=True)
class ProgressRecord:
    """A user's state on one milestone.

    For any course the completed records form a prefix of the milestone
    order, and the single active record (if any) directly follows it.
    """

    id: UUID
    user_id: UUID
    course_id: UUID
    milestone_id: UUID
    status: ProgressStatus = "locked"
    quiz_score: float | None = None
    completed_at: int | None = None

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        milestone_id: UUID,
        status: ProgressStatus = "locked",
    ) -> ProgressRecord:
        return ProgressRecord(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            milestone_id=milestone_id,
            status=status,
        )
