"""
Sentence REST endpoints.

Serves random prompt lists to recording sessions and bulk-imports new
prompts. All endpoints delegate to ``DatasetRepository``.
"""

import logging

from fastapi import APIRouter, Query

from src.core.config import get_settings
from src.core.models import ImportResponse, Sentence, SentenceImport
from src.services.storage.database import get_session
from src.services.storage.repository import DatasetRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sentences"])


@router.get("/sentences", response_model=list[Sentence])
async def list_sentences(limit: int | None = Query(None, ge=1, le=500)):
    """Return *limit* sentences in random order."""
    limit = limit or get_settings().default_sentence_limit
    async with get_session() as session:
        repo = DatasetRepository(session)
        rows = await repo.random_sentences(limit)
    return [Sentence(id=r.id, text=r.text, category=r.category) for r in rows]


@router.post("/import-sentences", response_model=ImportResponse)
async def import_sentences(body: list[SentenceImport]):
    """Insert a JSON array of sentences in a single transaction."""
    async with get_session() as session:
        repo = DatasetRepository(session)
        imported = await repo.import_sentences(body)
    logger.info("Imported %d sentences", imported)
    return ImportResponse(message=f"Imported {imported} sentences.", imported=imported)
