"""
Business logic layer.
Services orchestrate access resolution, data access and classification.
"""

from functools import lru_cache

from splitstats.auth.access_context import StorageAccessContextResolver
from splitstats.services.stats_service import MissingProfileError, StatsService
from splitstats.storage import get_storage


@lru_cache
def get_stats_service() -> StatsService:
    """Get the cached stats service wired to the configured storage."""
    storage = get_storage()
    return StatsService(storage=storage, resolver=StorageAccessContextResolver(storage))


__all__ = ["MissingProfileError", "StatsService", "get_stats_service"]
