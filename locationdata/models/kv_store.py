"""
Key-value store backing the collector's persisted state
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import Column, String, DateTime, Text, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from locationdata.core.exceptions import PersistenceFailure
from locationdata.models.database import Base

logger = logging.getLogger(__name__)

SETTINGS_KEY = "locationDataSettings"
HISTORY_KEY = "locationDataHistory"
CONSENT_KEY = "locationDataConsent"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyValueEntry(Base):
    __tablename__ = "key_value_store"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<KeyValueEntry {self.key} at {self.updated_at}>"


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class MemoryKeyValueStore:
    """In-process store, for tests and hosts without a database"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqlKeyValueStore:
    """Store persisted through SQLAlchemy; one row per key"""

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def get(self, key: str) -> Optional[str]:
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(KeyValueEntry.value).where(KeyValueEntry.key == key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to read {key}: {e}", key=key) from e

    async def set(self, key: str, value: str) -> None:
        try:
            async with self.session_maker() as session:
                entry = await session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=value))
                else:
                    entry.value = value
                    entry.updated_at = _utcnow()
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to write {key}: {e}", key=key) from e

    async def delete(self, key: str) -> None:
        try:
            async with self.session_maker() as session:
                await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to delete {key}: {e}", key=key) from e
