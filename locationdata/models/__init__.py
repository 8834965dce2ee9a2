"""
Persistence models package
"""
from locationdata.models.database import Base, build_engine, build_session_maker, init_db
from locationdata.models.kv_store import (
    KeyValueEntry, KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore,
    SETTINGS_KEY, HISTORY_KEY, CONSENT_KEY
)

__all__ = [
    "Base",
    "build_engine",
    "build_session_maker",
    "init_db",
    "KeyValueEntry",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqlKeyValueStore",
    "SETTINGS_KEY",
    "HISTORY_KEY",
    "CONSENT_KEY",
]
