"""
Structured logging and performance tracking.
"""

import time
from typing import Callable, Any
from functools import wraps
import logging
import json
from datetime import datetime, timezone
import asyncio

logger = logging.getLogger(__name__)

# Extra attributes copied from a LogRecord into the JSON payload when present
_CONTEXT_FIELDS = ("plan_id", "user_id", "duration_ms", "status_code")


# ============================================================================
# STRUCTURED LOGGING
# ============================================================================

class JSONFormatter(logging.Formatter):
    """JSON formatter for structured log output."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


# ============================================================================
# PERFORMANCE TRACKING
# ============================================================================

def track_performance(operation_name: str):
    """Decorator to log operation timings."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.warning(f"{operation_name} failed after {elapsed:.0f}ms: {e}",
                               extra={"duration_ms": round(elapsed)})
                raise
            elapsed = (time.perf_counter() - start) * 1000
            logger.info(f"{operation_name} completed in {elapsed:.0f}ms",
                        extra={"duration_ms": round(elapsed)})
            return result

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.warning(f"{operation_name} failed after {elapsed:.0f}ms: {e}",
                               extra={"duration_ms": round(elapsed)})
                raise
            elapsed = (time.perf_counter() - start) * 1000
            logger.info(f"{operation_name} completed in {elapsed:.0f}ms",
                        extra={"duration_ms": round(elapsed)})
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
