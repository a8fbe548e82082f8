"""Browser capture backend: buffers encoded media chunks in process memory.

The stream yields the chunks a browser ``MediaRecorder`` emits. Nothing is
written to disk; a finished clip lives in a :class:`BlobRegistry` under a
``blob:`` reference until it is released.
"""

import asyncio
import contextlib
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable

from src.core.exceptions import CaptureError, StorageError
from src.services.capture.base import BaseCaptureBackend

logger = logging.getLogger(__name__)

StreamFactory = Callable[[], Awaitable[AsyncIterator[bytes]]]


class BlobRegistry:
    """Process-local store of finished clips keyed by ``blob:`` reference."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    def create_object_url(self, data: bytes) -> str:
        url = f"blob:{uuid.uuid4()}"
        self._blobs[url] = data
        return url

    def get(self, url: str) -> bytes | None:
        return self._blobs.get(url)

    def revoke_object_url(self, url: str) -> None:
        self._blobs.pop(url, None)

    def __contains__(self, url: object) -> bool:
        return url in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)


class BrowserCaptureBackend(BaseCaptureBackend):
    """Capture backend holding clips in memory.

    Args:
        open_stream: Opens the camera/microphone and returns an async
            iterator of encoded chunks. May raise ``OSError`` (including
            ``PermissionError``) or ``CaptureError``.
        registry: Where finished clips are kept (a private one by default).
    """

    def __init__(self, open_stream: StreamFactory, registry: BlobRegistry | None = None) -> None:
        self._open_stream = open_stream
        self._registry = registry if registry is not None else BlobRegistry()
        self._chunks: list[bytes] = []
        self._task: asyncio.Task | None = None

    @property
    def registry(self) -> BlobRegistry:
        return self._registry

    async def start(self, on_ready: Callable[[], None]) -> None:
        if self._task is not None:
            raise CaptureError("Capture already in progress")
        try:
            stream = await self._open_stream()
        except OSError as exc:
            raise CaptureError(f"Camera access denied: {exc}") from exc

        self._chunks = []
        self._task = asyncio.create_task(self._collect(stream))
        on_ready()

    async def _collect(self, stream: AsyncIterator[bytes]) -> None:
        async for chunk in stream:
            if chunk:
                self._chunks.append(chunk)

    async def stop(self) -> str:
        if self._task is None:
            raise CaptureError("No capture in progress")
        task = self._task
        self._task = None

        if task.done():
            # The stream ended on its own; surface a device failure if there was one
            exc = None if task.cancelled() else task.exception()
            if exc is not None:
                raise CaptureError(f"Media stream failed: {exc}") from exc
        else:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        chunks, self._chunks = self._chunks, []
        if not chunks:
            raise CaptureError("Recording produced no data")
        url = self._registry.create_object_url(b"".join(chunks))
        logger.debug("Buffered clip %s (%d chunks)", url, len(chunks))
        return url

    async def read(self, handle: str) -> bytes:
        data = self._registry.get(handle)
        if data is None:
            raise StorageError(f"Clip {handle} is no longer in memory")
        return data

    async def release(self, handle: str) -> None:
        self._registry.revoke_object_url(handle)
