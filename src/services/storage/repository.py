"""
Data-access repository for the ingestion server tables.

``DatasetRepository`` receives an ``AsyncSession`` and provides all
data-access methods. It calls ``flush()`` rather than ``commit()`` so
that transaction boundaries are controlled by the caller (typically
:func:`get_session`).
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.models import SentenceImport
from src.services.storage.models_db import SentenceRecord, UploadRecord

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "General"


class DatasetRepository:
    """Data-access layer for sentences and received uploads.

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Sentences
    # ------------------------------------------------------------------

    async def random_sentences(self, limit: int) -> list[SentenceRecord]:
        """Return up to *limit* sentences in random order."""
        stmt = select(SentenceRecord).order_by(func.random()).limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def import_sentences(self, entries: list[SentenceImport]) -> int:
        """Insert *entries*; a missing category defaults to ``General``."""
        self._session.add_all(
            SentenceRecord(text=entry.text, category=entry.category or DEFAULT_CATEGORY)
            for entry in entries
        )
        await self._session.flush()
        return len(entries)

    async def count_sentences(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(SentenceRecord))
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def create_upload(
        self,
        user_name: str,
        user_age: str,
        user_gender: str,
        sentence_id: str,
        sentence_text: str,
        video_path: str,
        text_path: str | None = None,
    ) -> UploadRecord:
        """Record a received clip and return the new row."""
        upload = UploadRecord(
            user_name=user_name,
            user_age=user_age,
            user_gender=user_gender,
            sentence_id=sentence_id,
            sentence_text=sentence_text,
            video_path=video_path,
            text_path=text_path,
        )
        self._session.add(upload)
        await self._session.flush()
        return upload

    async def list_uploads(self, limit: int = 50, offset: int = 0) -> list[UploadRecord]:
        stmt = select(UploadRecord).order_by(UploadRecord.id.desc()).limit(limit).offset(offset)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
