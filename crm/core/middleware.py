"""CORS and request-id/access-log middleware."""

import re
import time
import uuid
import logging

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from crm.core.config import settings

logger = logging.getLogger("crm.http")

# caller-supplied ids end up in logs and audit rows
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")
QUIET_PATHS = {"/api/health"}


def resolve_request_id(request: Request) -> str:
    """Reuse a well-formed X-Request-Id from the caller, otherwise mint one."""
    incoming = request.headers.get("X-Request-Id", "")
    if REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return uuid.uuid4().hex


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Attach a request id to every request/response and write one access-log line."""

    async def dispatch(self, request: Request, call_next):
        request.state.request_id = resolve_request_id(request)
        started = time.perf_counter()

        response: Response = await call_next(request)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Request-Id"] = request.state.request_id
        response.headers["X-Response-Time-Ms"] = str(elapsed_ms)

        if request.url.path not in QUIET_PATHS:
            level = logging.WARNING if response.status_code >= 500 else logging.INFO
            logger.log(
                level,
                "[%s] %s %s %s -> %s %sms",
                request.state.request_id,
                request.client.host if request.client else "-",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
        return response


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )
    app.add_middleware(AccessLogMiddleware)
