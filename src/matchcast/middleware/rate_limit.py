"""Rate limiting middleware: Redis-based fixed window per minute.

Each IP gets a counter key like "matchcast:rl:{ip}:{minute}". Write
endpoints (POST/PATCH) get a stricter budget than reads, since every
write also fans out to live observers.

Skips rate limiting entirely if Redis is unavailable (e.g., in tests).
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from matchcast.redis_client import get_redis


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, default_rpm: int = 100, write_rpm: int = 30):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.write_rpm = write_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_write = request.method in ("POST", "PATCH", "PUT", "DELETE")
        rpm = self.write_rpm if is_write else self.default_rpm

        window = int(time.time() // 60)
        bucket = "write" if is_write else "read"
        key = f"matchcast:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except Exception:
            # Redis error, don't block the request
            return await call_next(request)

        if count > rpm:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
