from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from uuid import UUID, uuid4

# Ensure repo root is on sys.path so `import learnpath` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from learnpath.main import app  # noqa: E402
from learnpath.models.profile import Profile  # noqa: E402
from learnpath.repos.store import memory_store  # noqa: E402
from learnpath.services.content_client import get_content_client  # noqa: E402
from learnpath.services.roadmap_service import (  # noqa: E402
    GeneratedRoadmap,
    RoadmapRequest,
    generate_roadmap,
)
from learnpath.services.task_queue import task_queue  # noqa: E402


class FakeContentClient:
    """Returns canned replies in order; records every prompt it was sent."""

    def __init__(self, *replies: str | Exception) -> None:
        self.replies = list(replies)
        self.prompts: list[tuple[str, str]] = []

    async def generate(
        self, prompt: str, *, operation: str, generation_config=None
    ) -> str:
        self.prompts.append((operation, prompt))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


def roadmap_json(milestones: int = 3, *, name: str = "Python Basics") -> str:
    """A well-formed generator reply.  Each quiz's answer key is [1, 2, 0]."""
    return json.dumps(
        {
            "courseName": name,
            "duration": "1 week",
            "milestones": [
                {
                    "title": f"Milestone {i + 1}",
                    "order": i + 1,
                    "resources": {
                        "videos": [{"title": "Intro", "url": "https://example.com/v"}],
                        "websites": [],
                    },
                    "quiz": [
                        {"question": "Q1", "options": ["a", "b", "c"], "correct": 1},
                        {"question": "Q2", "options": ["a", "b", "c"], "correct": 2},
                        {"question": "Q3", "options": ["a", "b", "c"], "correct": 0},
                    ],
                }
                for i in range(milestones)
            ],
        }
    )


CORRECT_ANSWERS = [1, 2, 0]


@pytest.fixture(autouse=True)
def reset_store() -> None:
    """Clear the in-memory repositories between tests."""
    memory_store.reset()


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues (live and dead-letter) between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]
        task_queue._dead.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def fake_content() -> FakeContentClient:
    """Installed as the app's content client; replies with a 3-milestone roadmap."""
    fake = FakeContentClient(roadmap_json())
    app.dependency_overrides[get_content_client] = lambda: fake
    return fake


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


def seed_profile(user_id: UUID, name: str = "Ada Lovelace") -> Profile:
    profile = Profile(user_id=user_id, name=name)
    asyncio.run(memory_store.profiles.upsert(profile))
    return profile


def seed_roadmap(
    user_id: UUID | None = None, *, milestones: int = 3, duration: str = "1 week"
) -> GeneratedRoadmap:
    """Generate and persist a roadmap through the real service."""
    req = RoadmapRequest(
        user_id=user_id or uuid4(), topic="Python", duration=duration
    )
    return asyncio.run(
        generate_roadmap(
            req,
            store=memory_store,
            client=FakeContentClient(roadmap_json(milestones)),
        )
    )
