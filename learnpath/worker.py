"""Background worker process.

RUN:  python -m learnpath.worker

Same image as the API, different command:
  api:    uvicorn learnpath.main:app --host 0.0.0.0 --port 8000
  worker: python -m learnpath.worker

The loop polls every registered queue, dispatches each task to its
handler, and applies the retry policy: a failing task goes back on its
queue with attempts + 1 until it has failed TASK_MAX_ATTEMPTS times,
then it is moved to the dead-letter list.  With INLINE_WORKER=true (the
default when REDIS_URL is unset) the API runs ``run_worker`` as an
asyncio task instead; a separate process cannot see an in-memory queue.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any
from uuid import UUID

from learnpath.core.config import SETTINGS
from learnpath.core.logging import setup_logging
from learnpath.core.metrics import QUEUE_DEPTH, TASKS_PROCESSED
from learnpath.repos.store import store_scope
from learnpath.services import certificate_service
from learnpath.services.task_queue import CERTIFICATE_QUEUE, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("learnpath.worker")

# Delay before a failed task is re-queued, multiplied by its failure count.
RETRY_BACKOFF_SECONDS = 0.5
# Pause after the queue backend itself raised.
ERROR_BACKOFF_SECONDS = 1.0


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(CERTIFICATE_QUEUE)
async def handle_certificate_issuance(payload: dict) -> None:
    """Issue the certificate for a course whose last quiz was just passed."""
    user_id = UUID(payload["user_id"])
    course_id = UUID(payload["course_id"])
    # The task is queued before the API request commits; an uncommitted or
    # rolled-back completion fails this attempt and the retry looks again.
    async with store_scope() as store:
        result = await certificate_service.issue_certificate(
            user_id=user_id, course_id=course_id, store=store, require_completed=True
        )
    logger.info(
        "Certificate %s for user=%s course=%s",
        "issued" if result.created else "already present",
        user_id,
        course_id,
    )


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------


async def process_one(queue_name: str, *, timeout: int = 0) -> bool:
    """Dequeue and handle a single task.  Returns False if the queue was empty."""
    task = await task_queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return False

    handler = HANDLERS[queue_name]
    try:
        await handler(task.payload)
    except Exception:
        failures = task.attempts + 1
        if failures < SETTINGS.task_max_attempts:
            logger.exception(
                "Task %s on [%s] failed (attempt %d/%d), retrying",
                task.id,
                queue_name,
                failures,
                SETTINGS.task_max_attempts,
            )
            await asyncio.sleep(RETRY_BACKOFF_SECONDS * failures)
            await task_queue.retry(task)
            TASKS_PROCESSED.labels(queue_name=queue_name, result="retried").inc()
        else:
            logger.exception(
                "Task %s on [%s] failed %d times, dead-lettered",
                task.id,
                queue_name,
                failures,
            )
            await task_queue.dead_letter(task)
            TASKS_PROCESSED.labels(queue_name=queue_name, result="dead_lettered").inc()
    else:
        logger.info("Task %s on [%s] completed", task.id, queue_name)
        TASKS_PROCESSED.labels(queue_name=queue_name, result="ok").inc()

    QUEUE_DEPTH.labels(queue_name=queue_name).set(
        await task_queue.queue_length(queue_name)
    )
    return True


async def run_worker() -> None:
    """Poll all registered queues and dispatch tasks to handlers, forever."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        for queue_name in queues:
            try:
                await process_one(queue_name, timeout=1)
            except Exception:
                # Queue backend errors (e.g. Redis unreachable) must not end the loop.
                logger.exception("Worker error on [%s]; backing off", queue_name)
                await asyncio.sleep(ERROR_BACKOFF_SECONDS)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    if SETTINGS.redis_url is None:
        logger.warning(
            "REDIS_URL is not set; this worker only sees its own in-memory queue"
        )
    asyncio.run(run_worker())
