from __future__ import annotations

from collections.abc import AsyncGenerator

from learnpath.repos.store import Store, store_scope
from learnpath.services import certificate_service
from learnpath.services.quiz_service import CourseCompletedHook


async def get_store() -> AsyncGenerator[Store, None]:
    """Request-scoped Store.

    With PostgreSQL the whole request is one transaction: committed when
    the handler returns, rolled back when it raises.
    """
    async with store_scope() as store:
        yield store


def get_completion_hook() -> CourseCompletedHook:
    """What runs when a learner passes the last milestone of a course.

    Queued rather than awaited, so issuance failures never reach the
    quiz response.  Tests override this to observe or break dispatch.
    """
    return certificate_service.enqueue_issuance
