import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from datetime import datetime, timedelta
from collections import defaultdict
from typing import Optional

logger = logging.getLogger(__name__)

AUTH_PATHS = (
    "/api/auth/register",
    "/api/auth/verify",
    "/api/auth/login",
    "/api/auth/otp-verify",
    "/api/auth/password",
    "/api/user/check_password",
)

# Everything outside AUTH_PATHS shares one bucket per client
DEFAULT_BUCKET = "*"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware to slow down brute force attempts on auth endpoints.

    Sliding window per client IP:
    - `auth_limit` requests per minute for each auth endpoint (OTP guessing, password spraying)
    - `default_limit` requests per minute for everything else combined
    """

    def __init__(self, app, auth_limit: int = 5, default_limit: int = 300, window_seconds: int = 60):
        super().__init__(app)
        self.auth_limit = auth_limit
        self.default_limit = default_limit
        self.window_seconds = window_seconds
        # Store request timestamps: {ip: {bucket: [timestamp, ...]}}
        self.request_counts = defaultdict(lambda: defaultdict(list))
        self._last_cleanup = datetime.utcnow()

    def bucket_for(self, endpoint: str) -> str:
        for path in AUTH_PATHS:
            if endpoint.startswith(path):
                return path
        return DEFAULT_BUCKET

    def hit(self, client_ip: str, endpoint: str, now: Optional[datetime] = None) -> Optional[int]:
        """Record a request. Returns the exceeded limit, or None when allowed."""
        now = now or datetime.utcnow()
        cutoff_time = now - timedelta(seconds=self.window_seconds)
        if now - self._last_cleanup > timedelta(seconds=self.window_seconds):
            self.cleanup_old_entries(cutoff_time)
            self._last_cleanup = now

        bucket = self.bucket_for(endpoint)
        max_requests = self.default_limit if bucket == DEFAULT_BUCKET else self.auth_limit

        timestamps = [ts for ts in self.request_counts[client_ip][bucket] if ts > cutoff_time]
        self.request_counts[client_ip][bucket] = timestamps

        if len(timestamps) >= max_requests:
            logger.warning(f"Rate limit exceeded for {client_ip} on {endpoint} ({len(timestamps)}/{max_requests})")
            return max_requests

        timestamps.append(now)
        return None

    def cleanup_old_entries(self, cutoff_time: datetime):
        """Drop expired timestamps, then empty bucket and IP entries."""
        for ip in list(self.request_counts.keys()):
            for bucket in list(self.request_counts[ip].keys()):
                self.request_counts[ip][bucket] = [
                    ts for ts in self.request_counts[ip][bucket]
                    if ts > cutoff_time
                ]
                # Remove empty bucket entries
                if not self.request_counts[ip][bucket]:
                    del self.request_counts[ip][bucket]

            # Remove empty IP entries
            if not self.request_counts[ip]:
                del self.request_counts[ip]

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"

        exceeded = self.hit(client_ip, request.url.path)
        if exceeded is not None:
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": f"Rate limit exceeded. Maximum {exceeded} requests per {self.window_seconds} seconds.",
                },
            )

        return await call_next(request)
