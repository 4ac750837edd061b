"""Redis-backed fixed window rate limiting middleware.

Endpoints that call the text-generation service get their own, tighter
bucket so a client cannot burn through provider quota.
"""

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ailesson.redis_client import get_redis

_EXEMPT_PATHS = frozenset({"/health", "/ready"})

# POST endpoints backed by the text-generation service
_AI_PATHS = frozenset({"/api/v1/lessons", "/api/v1/chat/messages", "/api/v1/experts/generate"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limit requests per client IP using Redis counters."""

    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 100,
        ai_requests_per_window: int = 10,
        window_seconds: int = 60,
    ) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.ai_requests_per_window = ai_requests_per_window
        self.window_seconds = window_seconds

    def _bucket(self, request: Request) -> tuple[str, int]:
        if request.method == "POST" and request.url.path in _AI_PATHS:
            return "ai", self.ai_requests_per_window
        return "api", self.requests_per_window

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Check rate limit, return 429 if exceeded."""
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        try:
            redis = get_redis()
        except RuntimeError:
            # Redis not initialized: let the request through without limiting
            return await call_next(request)

        bucket, limit = self._bucket(request)
        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time()) // self.window_seconds
        rate_key = f"ratelimit:{bucket}:{client_ip}:{window}"

        pipe = redis.pipeline()
        pipe.incr(rate_key)
        pipe.expire(rate_key, self.window_seconds + 1)
        results: list[Any] = await pipe.execute()
        current_count: int = results[0]

        if current_count > limit:
            return JSONResponse(
                status_code=429,
                content={"success": False, "detail": "Rate limit exceeded. Try again later.", "code": "RATE_LIMITED"},
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(limit),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count))
        response.headers["X-RateLimit-Limit"] = str(limit)
        return response
