"""
SQLAlchemy ORM models.

Server tables: ``sentences``, ``uploads``.
Device table: ``kv_store`` (whole-document key/value persistence).
"""

from datetime import UTC, datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.services.storage.database import Base


class SentenceRecord(Base):
    """A prompt sentence served to recording sessions."""

    __tablename__ = "sentences"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<SentenceRecord id={self.id} category={self.category!r}>"


class UploadRecord(Base):
    """One clip received by the ingestion endpoint."""

    __tablename__ = "uploads"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_name: Mapped[str] = mapped_column(String(255))
    user_age: Mapped[str] = mapped_column(String(16))
    user_gender: Mapped[str] = mapped_column(String(32))
    sentence_id: Mapped[str] = mapped_column(String(32), index=True)
    sentence_text: Mapped[str] = mapped_column(Text, default="")
    video_path: Mapped[str] = mapped_column(String(512))
    text_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    received_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    def __repr__(self) -> str:
        return f"<UploadRecord id={self.id} sentence={self.sentence_id}>"


class KeyValue(Base):
    """A single JSON document stored under a well-known key."""

    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    def __repr__(self) -> str:
        return f"<KeyValue key={self.key!r}>"
