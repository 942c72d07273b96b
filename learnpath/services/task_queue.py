"""Background task queue using Redis lists.

Producer (API):    LPUSH task onto ``tasks:<queue>`` and return at once
Consumer (worker): BRPOP from the list, run the handler, loop

LPUSH at the head plus BRPOP at the tail gives FIFO order.  A task that
fails is pushed back with ``attempts + 1``; once it reaches the worker's
attempt limit it is moved to ``dead:<queue>`` for inspection instead.

Delivery is at-most-once per attempt: a worker that crashes mid-task
loses that attempt.  Handlers must therefore be idempotent, which
certificate issuance is.
"""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

from learnpath.db.redis import redis_pool

CERTIFICATE_QUEUE = "certificate_issuance"

# How often the in-memory queue re-checks while a dequeue is blocking.
_POLL_INTERVAL = 0.05


@dataclass(frozen=True, slots=True)
class Task:
    """A unit of background work.

    id:       Unique identifier for tracking and logging.
    queue:    Which queue this task belongs to.
    payload:  JSON-serializable data the handler needs.
    attempts: How many times a handler has already failed on it.
    """

    id: str
    queue: str
    payload: dict
    attempts: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {
                "id": self.id,
                "queue": self.queue,
                "payload": self.payload,
                "attempts": self.attempts,
            }
        )

    @staticmethod
    def from_json(raw: str) -> Task:
        return Task(**json.loads(raw))


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def retry(self, task: Task) -> Task: ...
    async def dead_letter(self, task: Task) -> None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    """In-memory task queue for tests and single-process dev; no Redis needed."""

    def __init__(self) -> None:
        self._queues: dict[str, list[Task]] = {}
        self._dead: dict[str, list[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        self._queues.setdefault(queue, []).append(task)
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        deadline = time.monotonic() + timeout
        while True:
            tasks = self._queues.get(queue, [])
            if tasks:
                return tasks.pop(0)  # FIFO: remove from front
            if time.monotonic() >= deadline:
                return None
            await asyncio.sleep(_POLL_INTERVAL)

    async def retry(self, task: Task) -> Task:
        again = replace(task, attempts=task.attempts + 1)
        self._queues.setdefault(task.queue, []).append(again)
        return again

    async def dead_letter(self, task: Task) -> None:
        self._dead.setdefault(task.queue, []).append(task)

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, []))


class RedisTaskQueue:
    """Redis-backed task queue using LPUSH/BRPOP."""

    _PREFIX = "tasks:"
    _DEAD_PREFIX = "dead:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        await self._redis.lpush(f"{self._PREFIX}{queue}", task.to_json())
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        # BRPOP blocks up to `timeout` seconds; None means nothing arrived.
        result = await self._redis.brpop(f"{self._PREFIX}{queue}", timeout=timeout)
        if result is None:
            return None
        _, task_json = result
        return Task.from_json(task_json)

    async def retry(self, task: Task) -> Task:
        again = replace(task, attempts=task.attempts + 1)
        await self._redis.lpush(f"{self._PREFIX}{task.queue}", again.to_json())
        return again

    async def dead_letter(self, task: Task) -> None:
        await self._redis.lpush(f"{self._DEAD_PREFIX}{task.queue}", task.to_json())

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(f"{self._PREFIX}{queue}")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
