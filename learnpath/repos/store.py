"""Repository bundle handed to the services.

A Store groups the four repositories that share one unit of work and
exposes ``atomic()``: a block whose writes either all land or all vanish.

  PgStore       : one AsyncSession; atomic() is a SAVEPOINT.
  InMemoryStore : module-level dicts; atomic() snapshots and restores
                  them.  Only for single-process dev and tests.

``store_scope()`` picks the implementation the same way the rest of the
app does: DATABASE_URL set → PostgreSQL, otherwise in-memory.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.db import engine as db_engine
from learnpath.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from learnpath.repos.course_repo import CourseRepo, InMemoryCourseRepo
from learnpath.repos.pg_certificate_repo import PgCertificateRepo
from learnpath.repos.pg_course_repo import PgCourseRepo
from learnpath.repos.pg_profile_repo import PgProfileRepo
from learnpath.repos.pg_progress_repo import PgProgressRepo
from learnpath.repos.profile_repo import InMemoryProfileRepo, ProfileRepo
from learnpath.repos.progress_repo import InMemoryProgressRepo, ProgressRepo


class Store(Protocol):
    courses: CourseRepo
    progress: ProgressRepo
    certificates: CertificateRepo
    profiles: ProfileRepo

    def atomic(self) -> AbstractAsyncContextManager[None]: ...


class InMemoryStore:
    def __init__(self) -> None:
        self.courses = InMemoryCourseRepo()
        self.progress = InMemoryProgressRepo()
        self.certificates = InMemoryCertificateRepo()
        self.profiles = InMemoryProfileRepo()

    @asynccontextmanager
    async def atomic(self) -> AsyncGenerator[None, None]:
        repos = (self.courses, self.progress, self.certificates, self.profiles)
        saved = [r.snapshot() for r in repos]
        try:
            yield
        except BaseException:
            for repo, state in zip(repos, saved):
                repo.restore(state)
            raise

    def reset(self) -> None:
        for repo in (self.courses, self.progress, self.certificates, self.profiles):
            repo.restore({k: {} for k in repo.snapshot()})


class PgStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.courses = PgCourseRepo(session)
        self.progress = PgProgressRepo(session)
        self.certificates = PgCertificateRepo(session)
        self.profiles = PgProfileRepo(session)

    @asynccontextmanager
    async def atomic(self) -> AsyncGenerator[None, None]:
        async with self.session.begin_nested():
            yield


# ---------------------------------------------------------------------------
# Module-level singleton for the in-memory mode
# ---------------------------------------------------------------------------

memory_store = InMemoryStore()


@asynccontextmanager
async def store_scope() -> AsyncGenerator[Store, None]:
    """Yield a Store for one request or one background task."""
    if db_engine.async_session_factory is None:
        yield memory_store
        return
    async with db_engine.session_scope() as session:
        yield PgStore(session)
