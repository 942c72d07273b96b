from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnpath.api.certificates import router as certificates_router
from learnpath.api.courses import router as courses_router
from learnpath.api.errors import install_error_handlers
from learnpath.api.health import router as health_router
from learnpath.api.metrics_endpoint import router as metrics_router
from learnpath.api.onboarding import router as onboarding_router
from learnpath.api.profiles import router as profiles_router
from learnpath.api.quiz import router as quiz_router
from learnpath.api.roadmap import router as roadmap_router
from learnpath.api.suggestions import router as suggestions_router
from learnpath.core.config import SETTINGS
from learnpath.core.logging import setup_logging
from learnpath.db.engine import lifespan_db
from learnpath.db.redis import lifespan_redis
from learnpath.middleware.metrics import MetricsMiddleware
from learnpath.middleware.request_context import (
    RequestContextMiddleware,
    install_log_filter,
)
from learnpath.services.task_queue import InMemoryTaskQueue, task_queue
from learnpath.worker import run_worker

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_log_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one fails.
    async with lifespan_db():
        async with lifespan_redis():
            in_memory = isinstance(task_queue, InMemoryTaskQueue)
            if in_memory and not SETTINGS.inline_worker:
                logger.warning(
                    "INLINE_WORKER is off but there is no Redis queue; "
                    "running the worker inline anyway"
                )
            if not (SETTINGS.inline_worker or in_memory):
                yield
                return
            worker = asyncio.create_task(run_worker(), name="inline-worker")
            logger.info("Inline worker started")
            try:
                yield
            finally:
                worker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await worker
                logger.info("Inline worker stopped")


app = FastAPI(
    title="learnpath-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Any origin may call the API; there are no cookies or credentials to protect.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

install_error_handlers(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(roadmap_router)
app.include_router(quiz_router)
app.include_router(certificates_router)
app.include_router(suggestions_router)
app.include_router(courses_router)
app.include_router(profiles_router)
app.include_router(onboarding_router)

logger.info(
    "learnpath-service started  env=%s log_level=%s port=%d docs=%s inline_worker=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
    SETTINGS.inline_worker,
)
