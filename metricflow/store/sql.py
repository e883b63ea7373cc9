"""SQLAlchemy-backed key-value store."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, String, delete, select
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base, Database
from .base import KeyValueStore


class KeyValueEntry(Base):
    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON)


class SqlKeyValueStore(KeyValueStore):
    """Store every entry as one row of the ``kv_store`` table."""

    def __init__(self, database: Database):
        self._database = database

    async def get(self, key: str) -> Any | None:
        async with self._database.session() as session:
            entry = await session.get(KeyValueEntry, key)
            return None if entry is None else entry.value

    async def set(self, key: str, value: Any) -> None:
        async with self._database.session() as session:
            await session.merge(KeyValueEntry(key=key, value=value))
            await session.commit()

    async def delete(self, key: str) -> None:
        async with self._database.session() as session:
            await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
            await session.commit()

    async def get_by_prefix(self, prefix: str) -> list[Any]:
        stmt = select(KeyValueEntry.value).where(KeyValueEntry.key.startswith(prefix, autoescape=True))
        async with self._database.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())


__all__ = ["KeyValueEntry", "SqlKeyValueStore"]
