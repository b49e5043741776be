"""Rate limiting middleware — Redis-based fixed window per minute.

Learn: Each IP gets a counter key like "stallpos:rl:{ip}:{bucket}:{minute}".
Order mutations (POST/PATCH/DELETE under /api/v1/orders) get their own,
stricter bucket so a misbehaving till can't flood the kitchen.

Gracefully skips rate limiting if Redis is unavailable (e.g., in tests).
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

_MUTATING = {"POST", "PUT", "PATCH", "DELETE"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, default_rpm: int = 100, order_rpm: int = 60):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.order_rpm = order_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        # Try to get Redis — skip rate limiting if unavailable
        try:
            from stallpos.db.redis import get_redis

            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_order_write = (
            request.method in _MUTATING
            and request.url.path.startswith("/api/v1/orders")
        )
        rpm = self.order_rpm if is_order_write else self.default_rpm
        bucket = "orders" if is_order_write else "api"

        window = int(time.time() // 60)
        key = f"stallpos:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)  # 2-min TTL for safety
        except Exception:
            # Redis error — don't block the request
            return await call_next(request)

        if count > rpm:
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
