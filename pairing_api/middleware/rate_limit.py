"""
Rate limiting middleware for pairing requests.

Every pairing request opens a WhatsApp connection, so POST /request-code is
limited per client IP over a per-minute and a per-hour window. Counters live
in process memory, like the sessions themselves.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from pairing_api.config import Settings, get_settings
from pairing_api.exceptions import RateLimitExceededError
from pairing_api.logger import logger
from pairing_api.middleware.client_ip import resolve_client_ip


@dataclass(frozen=True)
class RateWindow:
    name: str
    limit: int
    seconds: int
    message: str


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0
    window: Optional[RateWindow] = None


class PairingRequestLimiter:
    """
    Sliding-window limiter over several windows at once.

    A request is recorded only when every window admits it. Clients whose
    history has aged out of the longest window are forgotten.
    """

    def __init__(self, windows: Sequence[RateWindow], clock: Callable[[], float] = time.time):
        if not windows:
            raise ValueError("at least one window is required")
        self.windows = tuple(windows)
        self._horizon = max(w.seconds for w in self.windows)
        self._clock = clock
        self._hits: Dict[str, List[float]] = {}
        self._lock = Lock()
        self._last_purge = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def _recent(self, key: str, now: float) -> List[float]:
        cutoff = now - self._horizon
        recent = [ts for ts in self._hits.get(key, ()) if ts > cutoff]
        if recent:
            self._hits[key] = recent
        else:
            self._hits.pop(key, None)
        return recent

    def _purge(self, now: float) -> None:
        for key in list(self._hits):
            self._recent(key, now)
        self._last_purge = now

    def check(self, key: str) -> RateDecision:
        with self._lock:
            now = self._clock()
            if now - self._last_purge >= self._horizon:
                self._purge(now)

            history = self._recent(key, now)
            counts = []
            for window in self.windows:
                in_window = [ts for ts in history if ts > now - window.seconds]
                if len(in_window) >= window.limit:
                    retry_after = int(min(in_window) + window.seconds - now) + 1
                    return RateDecision(False, 0, max(retry_after, 1), window)
                counts.append(len(in_window))

            history.append(now)
            self._hits[key] = history
            first = self.windows[0]
            return RateDecision(True, first.limit - counts[0] - 1)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def pairing_windows(settings: Settings) -> List[RateWindow]:
    return [
        RateWindow(
            "per_minute",
            settings.rate_limit_requests_per_minute,
            60,
            "Too many requests. Please slow down.",
        ),
        RateWindow(
            "per_hour",
            settings.rate_limit_requests_per_hour,
            3600,
            "Hourly rate limit exceeded. Please try again later.",
        ),
    ]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP rate limiting of the routes in LIMITED_ROUTES.

    Status polling and health checks are never limited.
    """

    LIMITED_ROUTES: FrozenSet[Tuple[str, str]] = frozenset({("POST", "/request-code")})

    def __init__(
        self,
        app,
        settings: Optional[Settings] = None,
        limiter: Optional[PairingRequestLimiter] = None,
    ):
        super().__init__(app)
        settings = settings or get_settings()

        self._enabled = settings.rate_limit_enabled
        self._trust_proxy_headers = settings.trust_proxy_headers
        self._limiter = limiter or PairingRequestLimiter(pairing_windows(settings))

        logger.info(
            "rate_limiter_initialized",
            enabled=self._enabled,
            windows={w.name: w.limit for w in self._limiter.windows},
            trust_proxy_headers=self._trust_proxy_headers,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self._enabled or (request.method, request.url.path) not in self.LIMITED_ROUTES:
            return await call_next(request)

        client_ip = resolve_client_ip(request, self._trust_proxy_headers)
        decision = self._limiter.check(f"ip:{client_ip}")

        if not decision.allowed:
            logger.warning(
                "rate_limit_exceeded",
                client_ip=client_ip,
                limit_type=decision.window.name,
                retry_after=decision.retry_after,
            )
            exc = RateLimitExceededError(decision.window.message, retry_after=decision.retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_dict(),
                headers={"Retry-After": str(decision.retry_after)},
            )

        response = await call_next(request)

        first = self._limiter.windows[0]
        response.headers["X-RateLimit-Limit"] = str(first.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        response.headers["X-RateLimit-Reset"] = str(int(time.time()) + first.seconds)
        return response
