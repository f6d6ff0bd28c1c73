import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from collections import defaultdict

from app.core.errors import error_response

class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP sliding window over the last 60 seconds. A limit of 0 disables it.
    """

    def __init__(self, app, limit_per_minute: int = 100, login_limit_per_minute: int = 30):
        super().__init__(app)
        self.limit = limit_per_minute
        self.login_limit = login_limit_per_minute
        # Simple in-memory store: IP -> [timestamp1, timestamp2, ...]
        # Per process only, put it in Redis when running several workers.
        self.requests = defaultdict(list)

    async def dispatch(self, request: Request, call_next):
        if self.limit <= 0:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()

        # Clean up old requests (older than 60s)
        self.requests[client_ip] = [t for t in self.requests[client_ip] if now - t < 60]

        limit = self.limit
        path = request.url.path
        if request.method == "POST" and (path.endswith("/auth/login") or path.endswith("/auth/signup")):
            limit = min(limit, self.login_limit)

        if len(self.requests[client_ip]) >= limit:
            return error_response(429, "Too many requests. Please try again later.")

        self.requests[client_ip].append(now)
        return await call_next(request)
