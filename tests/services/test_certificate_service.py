from __future__ import annotations

import asyncio
import datetime
from uuid import uuid4

import pytest

from learnpath.core.errors import CourseNotCompleted, NotFound, PersistenceError
from learnpath.models.profile import Profile
from learnpath.repos.certificate_repo import InMemoryCertificateRepo
from learnpath.repos.store import InMemoryStore
from learnpath.services.certificate_service import ISSUER, issue_certificate
from learnpath.services.roadmap_service import RoadmapRequest, generate_roadmap
from tests.conftest import FakeContentClient, roadmap_json


def _seed(store: InMemoryStore, *, profile: bool = True):
    req = RoadmapRequest(user_id=uuid4(), topic="SQL", duration="1 week")
    roadmap = asyncio.run(
        generate_roadmap(req, store=store, client=FakeContentClient(roadmap_json(3)))
    )
    if profile:
        asyncio.run(store.profiles.upsert(Profile(user_id=req.user_id, name="Edgar Codd")))
    return roadmap.course


def _issue(store, course, **kwargs):
    return asyncio.run(
        issue_certificate(
            user_id=course.user_id, course_id=course.id, store=store, **kwargs
        )
    )


def test_issue_builds_certificate_document() -> None:
    store = InMemoryStore()
    course = _seed(store)
    result = _issue(store, course, today=datetime.date(2024, 5, 17))
    assert result.created is True
    data = result.certificate.certificate_data
    assert data == {
        "recipientName": "Edgar Codd",
        "courseName": course.name,
        "duration": course.duration,
        "completionDate": "2024-05-17",
        "certificateId": data["certificateId"],
        "issuer": ISSUER,
    }


def test_issue_twice_returns_existing() -> None:
    store = InMemoryStore()
    course = _seed(store)
    first = _issue(store, course)
    second = _issue(store, course)
    assert second.created is False
    assert second.certificate.id == first.certificate.id


def test_insert_race_returns_winner() -> None:
    class _Racy(InMemoryCertificateRepo):
        """Hides existing rows from the fast-path check, as a concurrent
        request would see them before either insert committed."""

        def __init__(self) -> None:
            super().__init__()
            self.checks = 0

        async def get_for_course(self, user_id, course_id):
            self.checks += 1
            if self.checks == 1:
                return None
            return await super().get_for_course(user_id, course_id)

    store = InMemoryStore()
    course = _seed(store)
    racy = _Racy()
    store.certificates = racy
    winner = _issue(store, course)
    racy.checks = 0
    loser = _issue(store, course)
    assert loser.created is False
    assert loser.certificate.id == winner.certificate.id
    assert len(asyncio.run(racy.list_for_user(course.user_id))) == 1


def test_missing_profile_is_not_found() -> None:
    store = InMemoryStore()
    course = _seed(store, profile=False)
    with pytest.raises(NotFound, match="User profile not found"):
        _issue(store, course)


def test_insert_failure_is_persistence_error() -> None:
    class _Broken(InMemoryCertificateRepo):
        async def add(self, certificate) -> None:
            raise RuntimeError("db gone")

    store = InMemoryStore()
    course = _seed(store)
    store.certificates = _Broken()
    with pytest.raises(PersistenceError, match="Failed to generate certificate"):
        _issue(store, course)


def test_require_completed_rejects_active_course() -> None:
    store = InMemoryStore()
    course = _seed(store)
    with pytest.raises(CourseNotCompleted):
        _issue(store, course, require_completed=True)
    assert asyncio.run(store.certificates.list_for_user(course.user_id)) == []


def test_require_completed_issues_for_completed_course() -> None:
    store = InMemoryStore()
    course = _seed(store)
    asyncio.run(store.courses.mark_completed(course.id, course.user_id))
    assert _issue(store, course, require_completed=True).created is True


def test_direct_request_does_not_require_completion() -> None:
    store = InMemoryStore()
    course = _seed(store)
    assert _issue(store, course).created is True
