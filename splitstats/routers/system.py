"""
System health router.

Wired to:
- StatsRepository for database connectivity
- Settings for configuration
"""

import time

from fastapi import APIRouter

from splitstats import __version__
from splitstats.config import get_settings
from splitstats.storage import StorageError, get_storage
from splitstats.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Track startup time for uptime calculation
_startup_time = time.time()


@router.get("/health")
async def system_health():
    """
    Get system health status.
    Checks database connectivity and reports actual service health.
    """
    settings = get_settings()
    uptime = time.time() - _startup_time

    db_status = "healthy"
    try:
        get_storage().ping()
    except StorageError as e:
        logger.warning("system_health_degraded", error=str(e))
        db_status = f"unhealthy: {str(e)}"

    return {
        "success": True,
        "data": {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "version": __version__,
            "uptime_seconds": round(uptime, 1),
            "database": db_status,
            "database_type": settings.db_type,
        },
    }
