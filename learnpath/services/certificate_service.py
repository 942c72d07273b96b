"""Certificate issuance.

``issue_certificate`` is idempotent per (user, course): an existing
certificate is returned as-is.  The existence check is only a fast path;
the unique constraint on (user_id, course_id) is what makes concurrent
requests safe, and the loser of an insert race returns the winner's row.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass
from uuid import UUID

from learnpath.core.errors import (
    CourseNotCompleted,
    DuplicateCertificate,
    NotFound,
    PersistenceError,
)
from learnpath.core.metrics import CERTIFICATES_ISSUED, QUEUE_DEPTH
from learnpath.models.certificate import Certificate
from learnpath.repos.store import Store
from learnpath.services.task_queue import CERTIFICATE_QUEUE, Task, task_queue

logger = logging.getLogger(__name__)

ISSUER = "AI Learning Platform"


@dataclass(frozen=True, slots=True)
class IssueResult:
    certificate: Certificate
    created: bool


async def issue_certificate(
    *,
    user_id: UUID,
    course_id: UUID,
    store: Store,
    today: datetime.date | None = None,
    require_completed: bool = False,
) -> IssueResult:
    """Issue (or return) the certificate for one user's course.

    ``require_completed`` is set by the background worker, which only acts
    on courses whose completion has been committed.
    """
    course = await store.courses.get_for_user(course_id, user_id)
    if course is None:
        raise NotFound("Course not found")
    if require_completed and course.status != "completed":
        raise CourseNotCompleted(f"Course {course_id} is not completed")

    profile = await store.profiles.get(user_id)
    if profile is None:
        raise NotFound("User profile not found")

    existing = await store.certificates.get_for_course(user_id, course_id)
    if existing is not None:
        CERTIFICATES_ISSUED.labels(result="existing").inc()
        logger.info("Certificate already exists id=%s", existing.id)
        return IssueResult(certificate=existing, created=False)

    issued_on = today or datetime.datetime.now(datetime.UTC).date()
    data = {
        "recipientName": profile.name,
        "courseName": course.name,
        "duration": course.duration,
        "completionDate": issued_on.isoformat(),
        "certificateId": str(uuid.uuid4()),
        "issuer": ISSUER,
    }
    certificate = Certificate.new(
        user_id=user_id,
        course_id=course_id,
        created_at=int(datetime.datetime.now(datetime.UTC).timestamp()),
        certificate_data=data,
    )

    try:
        await store.certificates.add(certificate)
    except DuplicateCertificate:
        winner = await store.certificates.get_for_course(user_id, course_id)
        if winner is None:
            raise PersistenceError("Failed to generate certificate") from None
        CERTIFICATES_ISSUED.labels(result="existing").inc()
        logger.info("Lost certificate insert race; returning id=%s", winner.id)
        return IssueResult(certificate=winner, created=False)
    except Exception as exc:
        logger.exception("Error inserting certificate course=%s", course_id)
        raise PersistenceError("Failed to generate certificate") from exc

    CERTIFICATES_ISSUED.labels(result="created").inc()
    logger.info(
        "Certificate generated id=%s course=%s user=%s",
        certificate.id,
        course_id,
        user_id,
    )
    return IssueResult(certificate=certificate, created=True)


async def enqueue_issuance(user_id: UUID, course_id: UUID) -> Task:
    """Hand issuance to the worker; the caller does not wait for it."""
    task = await task_queue.enqueue(
        CERTIFICATE_QUEUE,
        {"user_id": str(user_id), "course_id": str(course_id)},
    )
    QUEUE_DEPTH.labels(queue_name=CERTIFICATE_QUEUE).set(
        await task_queue.queue_length(CERTIFICATE_QUEUE)
    )
    logger.info(
        "Certificate issuance queued task=%s course=%s user=%s",
        task.id,
        course_id,
        user_id,
    )
    return task
