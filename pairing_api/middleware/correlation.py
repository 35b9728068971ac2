"""
Request correlation for the pairing endpoints.

Each request gets a correlation ID (taken from X-Request-ID when it is well
formed) that is attached to every log line emitted while the request runs and
echoed back as X-Correlation-ID. The pairing router reports the session it
worked on through X-Session-ID, so the completion log ties the HTTP request to
its pairing session.
"""
from __future__ import annotations

import re
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from pairing_api.config import Settings, get_settings
from pairing_api.logger import clear_correlation_id, get_logger, set_correlation_id
from pairing_api.middleware.client_ip import resolve_client_ip

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"
SESSION_ID_HEADER = "X-Session-ID"

# Incoming ids end up in logs verbatim.
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def correlation_id_from(request: Request) -> str:
    """Reuse the caller's X-Request-ID if it is safe to log, else mint one."""
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Sets the correlation ID and logs one line per finished request."""

    def __init__(self, app, settings: Optional[Settings] = None):
        super().__init__(app)
        settings = settings or get_settings()
        self._trust_proxy_headers = settings.trust_proxy_headers

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = correlation_id_from(request)
        set_correlation_id(correlation_id)
        log = get_logger(
            method=request.method,
            path=request.url.path,
            client_ip=resolve_client_ip(request, self._trust_proxy_headers),
        )
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            log.error(
                "request_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        finally:
            clear_correlation_id()

        log.info(
            "request_completed",
            correlation_id=correlation_id,
            status_code=response.status_code,
            session_id=response.headers.get(SESSION_ID_HEADER),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
