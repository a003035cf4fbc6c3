"""
Record stores for the GEP data service.

This module provides the store protocol, the in-process store and the
Snowflake store, plus a factory driven by configuration.
"""

from .base import Row, Bounds, Replacement, RecordStore, model_id_for
from .memory import MemoryStore, matches
from .snowflake import SnowflakeStore

from .. import config


def build_store() -> RecordStore:
    if config.STORE_BACKEND == "snowflake":
        return SnowflakeStore(
            config.SNOWFLAKE_DATABASE,
            config.SNOWFLAKE_SCHEMA,
            role=config.SNOWFLAKE_DEFAULT_ROLE,
        )
    if config.STORE_BACKEND == "memory":
        return MemoryStore()
    raise RuntimeError(f"Unknown GEP_STORE backend: {config.STORE_BACKEND!r}")


__all__ = [
    "Row",
    "Bounds",
    "Replacement",
    "RecordStore",
    "model_id_for",
    "MemoryStore",
    "matches",
    "SnowflakeStore",
    "build_store",
]
