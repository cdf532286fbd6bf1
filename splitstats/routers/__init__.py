"""API routers for all endpoints."""

from splitstats.routers import stats, system

__all__ = ["stats", "system"]
