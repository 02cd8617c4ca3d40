"""
Per-client rate limiting middleware for the JSON API.
Uses an in-memory sliding window counter.
"""
import time
from collections import defaultdict
from typing import Dict, List
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory rate limiter for paths under ``path_prefix``.
    Limits requests per client IP using a sliding window.
    """

    def __init__(self, app, requests_per_minute: int = 120, path_prefix: str = "/api"):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.path_prefix = path_prefix
        self.window_seconds = 60
        # IP -> list of timestamps
        self._requests: Dict[str, List[float]] = defaultdict(list)

    def _get_client_ip(self, request: Request) -> str:
        """Client IP, honouring reverse-proxy headers."""
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip
        if request.client:
            return request.client.host
        return "unknown"

    def _hits_in_window(self, ip: str, now: float) -> List[float]:
        cutoff = now - self.window_seconds
        hits = [ts for ts in self._requests[ip] if ts > cutoff]
        self._requests[ip] = hits
        return hits

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        ip = self._get_client_ip(request)
        now = time.time()
        hits = self._hits_in_window(ip, now)

        if len(hits) >= self.requests_per_minute:
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Muitas requisições",
                    "detail": f"Máximo de {self.requests_per_minute} requisições por minuto",
                    "retry_after": self.window_seconds,
                },
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Limit": str(self.requests_per_minute),
                    "X-RateLimit-Remaining": "0",
                },
            )

        hits.append(now)

        response = await call_next(request)
        remaining = max(0, self.requests_per_minute - len(hits))
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
