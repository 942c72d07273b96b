"""Request context middleware: request IDs, acting user and timing.

Every request gets an ID (the client's X-Request-ID or a fresh UUID) held
in a ContextVar, so every log line emitted while serving it can carry the
ID without it being passed around.  ContextVars are per-task, which is
what concurrent async handlers on one thread need; thread-locals would
leak between them.

Handlers that learn which user they act for (from the JSON body, since
there is no auth layer) call ``bind_user`` so the user id is attached to
the remaining log lines of the request as well.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar
from uuid import UUID

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
user_id_var: ContextVar[str] = ContextVar("user_id", default="-")


def bind_user(user_id: UUID | str) -> None:
    user_id_var.set(str(user_id))


class _RequestContextFilter(logging.Filter):
    """Copies the current request and user ids onto every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        if getattr(record, "user_id", None) is None:
            record.user_id = user_id_var.get("-")  # type: ignore[attr-defined]
        return True


def install_log_filter() -> None:
    """Attach the context filter to every handler on the root logger.

    Filters on a logger only see records logged to that exact logger, so
    the filter goes on the handlers, which see records from all loggers.
    Idempotent; call after setup_logging().
    """
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, times the request, and logs one summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        user_id_var.set("-")

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
