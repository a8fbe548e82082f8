"""
Whole-document key/value persistence for the operator device.

Each key holds one serialized document that is rewritten in full on every
save inside a single SQLite transaction, so a crash mid-write leaves the
previous document intact.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from src.core.exceptions import StorageError
from src.services.storage.models_db import KeyValue

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Async key/value store backed by the ``kv_store`` table.

    Args:
        engine: Device database engine (tables must already exist, see ``init_db``).
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._factory = async_sessionmaker(engine, expire_on_commit=False)

    async def get_item(self, key: str) -> str | None:
        """Return the document stored under *key*, or None."""
        try:
            async with self._factory() as session:
                row = await session.get(KeyValue, key)
                return row.value if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {key!r}: {exc}") from exc

    async def set_item(self, key: str, value: str) -> None:
        """Replace the document under *key* atomically."""
        try:
            async with self._factory() as session, session.begin():
                await session.merge(
                    KeyValue(key=key, value=value, updated_at=datetime.now(UTC))
                )
        except SQLAlchemyError as exc:
            logger.exception("Failed to persist %r", key)
            raise StorageError(f"Failed to write {key!r}: {exc}") from exc

    async def remove_item(self, key: str) -> None:
        """Delete *key* (no-op if absent)."""
        try:
            async with self._factory() as session, session.begin():
                await session.execute(delete(KeyValue).where(KeyValue.key == key))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to remove {key!r}: {exc}") from exc
