"""
Data storage layer - read-only metrics repository over DuckDB.

The stats pipeline only reads; seeding helpers write the same tables for
local development and tests.
"""

from functools import lru_cache

from splitstats.config import get_settings

from .base import StatsRepository
from .duckdb_storage import DuckDBStorage, StorageError


@lru_cache
def get_storage() -> StatsRepository:
    """
    Get cached storage backend instance (singleton).

    Returns:
        StatsRepository implementation instance
    """
    settings = get_settings()
    return DuckDBStorage(db_path=settings.db_path)


__all__ = [
    "DuckDBStorage",
    "StatsRepository",
    "StorageError",
    "get_storage",
]
