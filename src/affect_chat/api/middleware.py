"""Middleware — CORS, request context logging, error mapping."""

from __future__ import annotations

import re
import time
import uuid
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from affect_chat.agent.session import SessionBusyError
from affect_chat.config import get_settings

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Capture widgets post samples several times a second; those requests
# log at debug so conversation traffic stays readable.
_QUIET_SUFFIXES = ("/health", "/affect/samples")
_SESSION_PATH = re.compile(r"^/sessions/(?P<session_id>[^/]+)")


# ── CORS ──────────────────────────────────────────────────────


def add_cors(app: FastAPI) -> None:
    """Allow the capture / chat front-end origins from settings.

    ``cors_origins`` is ``"*"`` or a comma-separated list.  Credentials are
    only allowed with an explicit list, since browsers reject ``*`` with them.
    """
    raw = get_settings().cors_origins.strip()
    origins = ["*"] if raw == "*" else [o.strip() for o in raw.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )


# ── Request context ───────────────────────────────────────────


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind ``request_id`` (and ``session_id`` on session routes) to the log context.

    Every log line emitted while serving the request, including the
    session's own ``session.*`` events, carries these keys.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        context = {"request_id": request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]}
        match = _SESSION_PATH.match(path)
        if match:
            context["session_id"] = match["session_id"]

        structlog.contextvars.bind_contextvars(**context)
        start = time.monotonic()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars(*context)

        response.headers[REQUEST_ID_HEADER] = context["request_id"]
        log = logger.debug if path.endswith(_QUIET_SUFFIXES) else logger.info
        log(
            "http.request",
            method=request.method,
            path=path,
            status=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 1),
            **context,
        )
        return response


# ── Error mapping ─────────────────────────────────────────────


async def _session_busy(request: Request, exc: SessionBusyError) -> JSONResponse:
    logger.info("http.session_busy", path=request.url.path)
    return JSONResponse(status_code=409, content={"detail": str(exc)})


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Turn anything that escapes a route into a JSON 500."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("http.unhandled_error", path=request.url.path, error=str(exc))
            return JSONResponse(status_code=500, content={"detail": "Internal server error."})


# ── Setup helper ──────────────────────────────────────────────


def setup_middleware(app: FastAPI) -> None:
    """Install exception handlers and middleware.

    Added innermost first; the 500 handler ends up outermost.
    """
    app.add_exception_handler(SessionBusyError, _session_busy)
    add_cors(app)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(UnhandledErrorMiddleware)
