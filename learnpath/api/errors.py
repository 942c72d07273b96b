"""Error rendering.

Every failure leaves the service as ``{"error": "<message>"}``.  There are
no error codes, only messages; the status code carries the category.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from learnpath.core.errors import LearnPathError

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


async def _handle_domain_error(
    _request: Request, exc: LearnPathError
) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("Request failed: %s", exc)
    else:
        logger.warning("Request rejected (%d): %s", exc.http_status, exc)
    return JSONResponse(status_code=exc.http_status, content={"error": str(exc)})


async def _handle_request_validation(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = _validation_message(exc)
    logger.warning("Invalid request body: %s", message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"error": message}
    )


async def _handle_unexpected(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or exc.__class__.__name__},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LearnPathError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
