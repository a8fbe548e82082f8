"""
Async HTTP client for the ingestion server.

Uses ``httpx.AsyncClient`` so uploads suspend the device's single event
loop instead of blocking it.
"""

import logging

import httpx

from src.core.config import get_settings
from src.core.exceptions import IngestionError, SentencesUnavailableError, UploadError
from src.core.models import QueueItem, Sentence

logger = logging.getLogger(__name__)


def build_upload_form(item: QueueItem) -> dict[str, str]:
    """Text fields of the upload form, in wire order.

    The server derives the target folder from the respondent fields while
    it streams the body, so these must precede the ``video`` part.
    """
    profile = item.metadata_snapshot
    return {
        "userName": profile.name,
        "userAge": profile.age,
        "userGender": str(profile.gender),
        "sentenceId": str(item.sentence_id),
        "sentenceText": item.text,
    }


class IngestionClient:
    """Thin async wrapper around httpx for calling the ingestion server.

    All methods return parsed JSON or raise an ``IngestionError`` subclass.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Ingestion server URL (falls back to settings).
            timeout: Per-request timeout in seconds.
            transport: Optional transport override (mock or ASGI in tests).
        """
        settings = get_settings()
        self._base_url = (base_url or settings.api_url).rstrip("/")
        # No Content-Type here: httpx generates the multipart boundary itself
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout or settings.upload_timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "IngestionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request, mapping failures to ``IngestionError``.

        Any non-2xx status counts as a failure.
        """
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.ConnectError:
            raise IngestionError(
                f"Ingestion server at {self._base_url} is unreachable",
                category="connection",
            ) from None
        except httpx.TimeoutException:
            raise IngestionError("Request timed out", category="timeout") from None
        except httpx.HTTPStatusError as exc:
            raise IngestionError(
                f"Server responded {exc.response.status_code}",
                category="http",
            ) from None
        except httpx.HTTPError as exc:
            raise IngestionError(f"Network error: {exc}", category="network") from None

    # -- sentences --

    async def fetch_sentences(self, limit: int) -> list[Sentence]:
        try:
            resp = await self._request("GET", "/api/sentences", params={"limit": limit})
        except IngestionError as exc:
            raise SentencesUnavailableError(exc.detail, category=exc.category) from exc
        data = resp.json()
        if not isinstance(data, list):
            raise SentencesUnavailableError("Unexpected sentence list payload", category="http")
        return [Sentence.model_validate(row) for row in data]

    async def import_sentences(self, entries: list[dict]) -> dict:
        return (await self._request("POST", "/api/import-sentences", json=entries)).json()

    # -- uploads --

    async def upload(self, item: QueueItem, media: bytes) -> dict:
        """Upload one queue item as a multipart form.

        Raises:
            UploadError: On transport failure or any non-2xx response.
        """
        files = {"video": (f"video_{item.sentence_id}.mp4", media, "video/mp4")}
        try:
            resp = await self._request(
                "POST", "/api/upload", data=build_upload_form(item), files=files
            )
        except IngestionError as exc:
            raise UploadError(item.id, exc.detail, category=exc.category) from exc
        try:
            return resp.json()
        except ValueError:
            return {}
