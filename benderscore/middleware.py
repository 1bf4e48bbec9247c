"""
HTTP middleware: request tracing and response hardening
"""

import time
from typing import Callable, Optional
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from starlette_context import context

from benderscore.core.config import settings
from benderscore.core.logging import log
from benderscore.core.security import SecurityHeaders, get_client_ip

ADMIN_PREFIX = f"{settings.API_V1_STR}/admin"
REQUEST_ID_HEADER = "X-Request-ID"


class RequestTraceMiddleware(BaseHTTPMiddleware):
    """
    One access log line per request.

    Echoes the request id on the response, reports the handling time in
    ``X-Process-Time`` (ms) and logs requests slower than ``slow_request_ms``
    at WARNING. Admin calls are tagged so publishes and overlay edits can be
    picked out of the access log.
    """

    def __init__(self, app: ASGIApp, slow_request_ms: Optional[float] = None):
        super().__init__(app)
        self.slow_request_ms = settings.slow_request_ms if slow_request_ms is None else slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = self._request_id(request)
        started = time.perf_counter()

        response = await call_next(request)

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        log.log(
            "WARNING" if duration_ms > self.slow_request_ms else "INFO",
            "Request completed",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            client=get_client_ip(request),
            admin=request.url.path.startswith(ADMIN_PREFIX),
        )
        return response

    @staticmethod
    def _request_id(request: Request) -> str:
        # Set by the RequestIdPlugin when the context middleware wraps this one
        if context.exists() and context.get(REQUEST_ID_HEADER):
            return str(context[REQUEST_ID_HEADER])
        return request.headers.get(REQUEST_ID_HEADER) or uuid4().hex


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers; JSON API routes also get a deny-all CSP"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers.update(SecurityHeaders.get_security_headers())
        if request.url.path.startswith(settings.API_V1_STR):
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        if "server" in response.headers:
            del response.headers["server"]

        return response
