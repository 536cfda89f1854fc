"""
Health check routes.
Probes for load-balancer / orchestrator readiness.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from datetime import datetime, timezone
import time
import logging

from tripplanner.core.config import settings
from tripplanner.core.errors import DatabaseError
from tripplanner.core.rate_limiting import limiter, HEALTH_LIMIT
from tripplanner.db.database import get_db
from tripplanner.db.repositories import PlanRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

# Track startup time for uptime reporting
_STARTUP_TIME = time.time()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
@limiter.limit(HEALTH_LIMIT)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Check system health: database connectivity, plan count, LLM configuration, uptime.
    """
    health = {
        "status": "healthy",
        "database": "unavailable",
        "plans": 0,
        "llm_configured": bool(settings.openrouter_api_key),
        "uptime_seconds": int(time.time() - _STARTUP_TIME),
        "timestamp": _now(),
    }

    try:
        health["plans"] = PlanRepository(db).count()
        health["database"] = "available"
    except DatabaseError as e:
        logger.error(f"Database health check failed: {e.message}")
        health["status"] = "degraded"

    return health


@router.get("/ready")
@limiter.limit(HEALTH_LIMIT)
def readiness_check(request: Request, db: Session = Depends(get_db)):
    """Reports ready only when the database answers."""
    try:
        db.execute(text("SELECT 1"))
        return {"ready": True, "timestamp": _now()}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return {"ready": False, "error": "database unavailable", "timestamp": _now()}


@router.get("/live")
def liveness_check():
    """Liveness probe. Returns 200 if service is running."""
    return {"alive": True, "uptime_seconds": int(time.time() - _STARTUP_TIME), "timestamp": _now()}
