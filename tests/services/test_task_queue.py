"""In-memory task queue and the worker's retry / dead-letter policy."""

from __future__ import annotations

import asyncio
import contextlib
from uuid import uuid4

import pytest

from learnpath import worker
from learnpath.core.config import SETTINGS
from learnpath.repos.store import memory_store
from learnpath.services.certificate_service import enqueue_issuance
from learnpath.services.task_queue import (
    CERTIFICATE_QUEUE,
    InMemoryTaskQueue,
    Task,
    task_queue,
)
from tests.conftest import seed_profile, seed_roadmap


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(worker, "RETRY_BACKOFF_SECONDS", 0)
    monkeypatch.setattr(worker, "ERROR_BACKOFF_SECONDS", 0)


def test_queue_is_fifo() -> None:
    q = InMemoryTaskQueue()

    async def _run():
        await q.enqueue("q", {"n": 1})
        await q.enqueue("q", {"n": 2})
        return [(await q.dequeue("q")).payload["n"] for _ in range(2)]

    assert asyncio.run(_run()) == [1, 2]


def test_dequeue_empty_returns_none_after_timeout() -> None:
    q = InMemoryTaskQueue()
    assert asyncio.run(q.dequeue("q", timeout=0)) is None


def test_retry_requeues_with_incremented_attempts() -> None:
    q = InMemoryTaskQueue()

    async def _run():
        task = await q.enqueue("q", {})
        await q.dequeue("q")
        await q.retry(task)
        return await q.dequeue("q")

    again = asyncio.run(_run())
    assert again.attempts == 1


def test_task_json_round_trip_keeps_attempts() -> None:
    task = Task(id="t1", queue="q", payload={"user_id": "u"}, attempts=2)
    assert Task.from_json(task.to_json()) == task


# ---- worker ----


def test_process_one_returns_false_on_empty_queue() -> None:
    assert asyncio.run(worker.process_one("nothing-here")) is False


def test_failing_task_is_retried_then_dead_lettered(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: list[dict] = []

    async def _always_fails(payload: dict) -> None:
        calls.append(payload)
        raise RuntimeError("boom")

    monkeypatch.setitem(worker.HANDLERS, "flaky", _always_fails)
    asyncio.run(task_queue.enqueue("flaky", {"n": 1}))

    while asyncio.run(worker.process_one("flaky")):
        pass

    assert len(calls) == SETTINGS.task_max_attempts
    dead = task_queue._dead["flaky"]  # type: ignore[attr-defined]
    assert len(dead) == 1
    assert dead[0].attempts == SETTINGS.task_max_attempts - 1


def test_task_succeeding_on_retry_is_not_dead_lettered(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    attempts = {"n": 0}

    async def _fails_once(payload: dict) -> None:
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise RuntimeError("transient")

    monkeypatch.setitem(worker.HANDLERS, "transient", _fails_once)
    asyncio.run(task_queue.enqueue("transient", {}))

    while asyncio.run(worker.process_one("transient")):
        pass

    assert attempts["n"] == 2
    assert "transient" not in task_queue._dead  # type: ignore[attr-defined]


def test_certificate_task_for_missing_profile_ends_dead_lettered() -> None:
    # NotFound is not transient, but the worker does not distinguish.
    asyncio.run(enqueue_issuance(uuid4(), uuid4()))
    while asyncio.run(worker.process_one(CERTIFICATE_QUEUE)):
        pass
    assert len(task_queue._dead[CERTIFICATE_QUEUE]) == 1  # type: ignore[attr-defined]


def test_certificate_waits_for_committed_course_completion() -> None:
    roadmap = seed_roadmap()
    user_id, course_id = roadmap.course.user_id, roadmap.course.id
    seed_profile(user_id)
    # Queued while the course row still reads "active" (completion not committed).
    asyncio.run(enqueue_issuance(user_id, course_id))

    assert asyncio.run(worker.process_one(CERTIFICATE_QUEUE)) is True
    assert asyncio.run(memory_store.certificates.list_for_user(user_id)) == []
    assert asyncio.run(task_queue.queue_length(CERTIFICATE_QUEUE)) == 1

    asyncio.run(memory_store.courses.mark_completed(course_id, user_id))
    assert asyncio.run(worker.process_one(CERTIFICATE_QUEUE)) is True
    assert len(asyncio.run(memory_store.certificates.list_for_user(user_id))) == 1


def test_certificate_for_rolled_back_completion_is_dead_lettered() -> None:
    roadmap = seed_roadmap()
    seed_profile(roadmap.course.user_id)
    asyncio.run(enqueue_issuance(roadmap.course.user_id, roadmap.course.id))

    while asyncio.run(worker.process_one(CERTIFICATE_QUEUE)):
        pass

    assert asyncio.run(
        memory_store.certificates.list_for_user(roadmap.course.user_id)
    ) == []
    assert len(task_queue._dead[CERTIFICATE_QUEUE]) == 1  # type: ignore[attr-defined]


class _FlakyQueue(InMemoryTaskQueue):
    """Raises on the first dequeue, like a dropped Redis connection."""

    def __init__(self) -> None:
        super().__init__()
        self.failed = False

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        if not self.failed:
            self.failed = True
            raise ConnectionError("redis went away")
        return await super().dequeue(queue, timeout=timeout)


def test_run_worker_survives_queue_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    queue = _FlakyQueue()
    monkeypatch.setattr(worker, "task_queue", queue)

    async def _run() -> list[dict]:
        handled: list[dict] = []
        done = asyncio.Event()

        async def _record(payload: dict) -> None:
            handled.append(payload)
            done.set()

        monkeypatch.setattr(worker, "HANDLERS", {"jobs": _record})
        await queue.enqueue("jobs", {"n": 1})
        loop_task = asyncio.create_task(worker.run_worker())
        try:
            await asyncio.wait_for(done.wait(), timeout=5)
        finally:
            loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await loop_task
        return handled

    assert asyncio.run(_run()) == [{"n": 1}]
    assert queue.failed is True
