"""
Data storage layer.

Source tables: records landed by Metric Source Adapters (direct channel)
    and pre-aggregated external imports (imported channel)
Engine outputs: snapshots, module health records and Reactor alerts

All storage uses DuckDB.
"""

from functools import lru_cache

from opshealth.config import get_settings

from .base import ACTIVITY_TABLES, StorageBackend, StorageError
from .duckdb_storage import SOURCE_TABLES, DuckDBStorage


@lru_cache
def get_storage() -> StorageBackend:
    """
    Get cached storage backend instance (singleton).

    Returns:
        StorageBackend implementation instance
    """
    settings = get_settings()
    return DuckDBStorage(
        db_path=settings.db_path,
        enforce_snapshot_key=settings.enforce_snapshot_key,
    )


__all__ = [
    "ACTIVITY_TABLES",
    "SOURCE_TABLES",
    "StorageBackend",
    "StorageError",
    "DuckDBStorage",
    "get_storage",
]
