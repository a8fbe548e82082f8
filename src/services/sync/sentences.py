"""Prompt list source for recording sessions."""

import logging

from src.core.config import get_settings
from src.core.exceptions import SentencesUnavailableError
from src.core.models import Sentence
from src.services.sync.client import IngestionClient

logger = logging.getLogger(__name__)


class SentenceProvider:
    """Fetches the ordered prompt list for one session.

    An empty or unreachable response means the session cannot start; no
    retry is attempted here.
    """

    def __init__(self, client: IngestionClient, default_limit: int | None = None) -> None:
        self._client = client
        self._default_limit = default_limit or get_settings().sentence_limit

    async def fetch(self, limit: int | None = None) -> list[Sentence]:
        sentences = await self._client.fetch_sentences(limit or self._default_limit)
        if not sentences:
            raise SentencesUnavailableError("The server has no sentences", category="empty")
        logger.info("Fetched %d sentences", len(sentences))
        return sentences
