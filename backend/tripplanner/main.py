"""
Trip Planner API -- FastAPI Application
Plans, fixed points, AI itinerary generation, feedback and profiles.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import logging.config
from datetime import datetime, timezone
import time
import asyncio

from slowapi.errors import RateLimitExceeded

from tripplanner.core.config import settings
from tripplanner.core.errors import AppError, app_error_handler
from tripplanner.core.rate_limiting import limiter, rate_limit_handler
from tripplanner.db.database import SessionLocal, init_db
from tripplanner.services.plan_service import PlanService
from tripplanner.api import (
    health,
    routes_activities,
    routes_feedback,
    routes_fixed_points,
    routes_generation,
    routes_i18n,
    routes_plans,
    routes_profiles,
)

# Configure logging
logging_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
        },
        "json": {
            "()": "tripplanner.core.monitoring.JSONFormatter",
        },
    },
    "handlers": {
        "default": {
            "formatter": "json" if settings.log_format == "json" else "detailed",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "tripplanner": {"handlers": ["default"], "level": settings.log_level},
        "uvicorn": {"handlers": ["default"], "level": "INFO"},
        "sqlalchemy": {"handlers": ["default"], "level": "WARNING"},
    },
}

logging.config.dictConfig(logging_config)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Plan archival background task
# ---------------------------------------------------------------------------
def _archive_expired_plans() -> int:
    db = SessionLocal()
    try:
        return PlanService(db).archive_expired_plans()
    finally:
        db.close()


async def _archive_task(interval_minutes: int):
    """Periodically archive generated plans whose trip has ended."""
    while True:
        await asyncio.sleep(interval_minutes * 60)
        try:
            archived = await asyncio.to_thread(_archive_expired_plans)
            if archived:
                logger.info(f"Archival run: {archived} plan(s) archived")
        except Exception as e:
            logger.warning(f"Archival run failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment} | Workers: {settings.api_workers}")

    # Retry DB init up to 3 times for resilience
    for attempt in range(1, 4):
        try:
            init_db()
            logger.info("Database initialized successfully")
            break
        except Exception as e:
            if attempt < 3:
                logger.warning(f"Database init attempt {attempt}/3 failed: {e}, retrying in 2s...")
                await asyncio.sleep(2)
            else:
                logger.error(f"Database init failed after 3 attempts, aborting startup: {e}")
                raise

    if not settings.openrouter_api_key:
        logger.warning("OPENROUTER_API_KEY is not set; plan generation will fail")

    archive_task = None
    if settings.archive_interval_minutes > 0:
        archive_task = asyncio.create_task(_archive_task(settings.archive_interval_minutes))
        logger.info(f"Plan archival every {settings.archive_interval_minutes}m")
    logger.info("Application startup complete -- ready to serve")

    yield

    # Shutdown
    if archive_task is not None:
        archive_task.cancel()
    logger.info("Application shutting down")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Travel plan management with AI-generated itineraries.",
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

# Domain errors -> JSON with their status code
app.add_exception_handler(AppError, app_error_handler)

# GZip compression (min 500 bytes)
app.add_middleware(GZipMiddleware, minimum_size=500)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# Combined request logging + security headers middleware (single pass)
@app.middleware("http")
async def request_middleware(request: Request, call_next):
    """Log requests with timing + add security headers in one pass."""
    start = time.perf_counter()
    request_id = request.headers.get("X-Request-ID", "")

    response = await call_next(request)

    elapsed = time.perf_counter() - start
    response.headers["X-Process-Time"] = f"{elapsed:.3f}"

    # Security headers
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    if request_id:
        response.headers["X-Request-ID"] = request_id

    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s",
        extra={"status_code": response.status_code, "duration_ms": round(elapsed * 1000)},
    )

    return response


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions gracefully."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# Include routers
app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(routes_plans.router, prefix=settings.api_prefix)
app.include_router(routes_generation.router, prefix=settings.api_prefix)
app.include_router(routes_fixed_points.router, prefix=settings.api_prefix)
app.include_router(routes_activities.router, prefix=settings.api_prefix)
app.include_router(routes_feedback.router, prefix=settings.api_prefix)
app.include_router(routes_profiles.router, prefix=settings.api_prefix)
app.include_router(routes_i18n.router, prefix=settings.api_prefix)


# Root endpoint
@app.get("/")
async def root():
    """Root -- API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "health": f"{settings.api_prefix}/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tripplanner.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
