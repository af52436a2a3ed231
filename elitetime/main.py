import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware
from elitetime.api.v1.api import api_router
from elitetime.core.config import settings
from elitetime.core.exceptions import AccessDenied, access_denied_handler, http_exception_handler
from elitetime.core.logging_config import setup_logging
from elitetime.middleware.logging import LoggingMiddleware
from elitetime.middleware.rate_limiting import RateLimitingMiddleware
from elitetime.middleware.security_headers import SecurityHeadersMiddleware
from elitetime.realtime.hub import RealtimeHub
from elitetime.realtime.socket import router as socket_router
from elitetime.utils.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"{settings.PROJECT_NAME} starting ({settings.ENVIRONMENT})")
    yield
    logger.info(f"{settings.PROJECT_NAME} stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Time tracking and HR administration",
        version="1.0.0",
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    # Shared in-process state
    app.state.rate_limiter = FixedWindowRateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        sweep_interval=settings.RATE_LIMIT_SWEEP_SECONDS,
    )
    app.state.login_rate_limiter = FixedWindowRateLimiter(
        max_requests=settings.LOGIN_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
        sweep_interval=settings.RATE_LIMIT_SWEEP_SECONDS,
    )
    app.state.realtime_hub = RealtimeHub()

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(AccessDenied, access_denied_handler)

    # Add middleware (the last added runs first)
    app.add_middleware(RateLimitingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.API_PREFIX)
    app.include_router(socket_router)

    @app.get("/")
    async def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME}", "status": "active", "docs": f"{settings.API_PREFIX}/docs"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
