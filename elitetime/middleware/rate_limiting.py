import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from elitetime.core.request_context import get_client_ip
from elitetime.utils.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

class RateLimitingMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware"""

    # Routes that don't require rate limiting
    EXEMPT_ROUTES = {
        "/",
        "/health",
        "/api/docs",
        "/api/redoc",
        "/api/openapi.json",
    }

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXEMPT_ROUTES:
            return await call_next(request)

        limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
        result = limiter.check(get_client_ip(request))
        if not result.allowed:
            retry_after = limiter.retry_after(result)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "success": False,
                    "error": "Trop de requêtes. Veuillez réessayer plus tard.",
                    "resetTime": result.reset_time,
                },
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response
