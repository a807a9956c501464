"""CORS and access logging middleware."""

import logging
import time
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from access_control.core.config import settings

logger = logging.getLogger("access_control.access")

REQUEST_ID_HEADER = "X-Request-Id"
TIMING_HEADER = "X-Response-Time-Ms"
DENIED_STATUSES = (401, 403)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log its outcome.

    Denials are logged at warning level together with the page the caller
    was trying to enter, when the client sent one.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[TIMING_HEADER] = str(elapsed_ms)

        if response.status_code in DENIED_STATUSES:
            logger.warning(
                "%s %s denied with %s (page=%s) [%s]",
                request.method, request.url.path, response.status_code,
                request.headers.get("X-Page-Url", "-"), request_id,
            )
        else:
            logger.info(
                "%s %s %s %sms [%s]",
                request.method, request.url.path, response.status_code, elapsed_ms, request_id,
            )
        return response


def setup_middleware(app: FastAPI) -> None:
    """Register CORS and access logging."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, TIMING_HEADER],
    )
    app.add_middleware(AccessLogMiddleware)
