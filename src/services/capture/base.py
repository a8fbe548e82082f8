"""
Abstract base class for capture backends.

Both capture variants (native file recorder, in-memory browser recorder)
implement this interface so the session controller never branches on
the platform it runs on.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable


class BaseCaptureBackend(ABC):
    """Interface that every capture backend must implement.

    One ``start`` is always followed by exactly one ``stop`` that either
    yields a resource handle or raises ``CaptureError``.
    """

    @abstractmethod
    async def start(self, on_ready: Callable[[], None]) -> None:
        """Begin device capture immediately.

        Args:
            on_ready: Called once the device is truly capturing. The UI
                shows the recording indicator only after this fires.

        Raises:
            CaptureError: If the device cannot be opened (permission, busy).
        """

    @abstractmethod
    async def stop(self) -> str:
        """End capture and return the handle of the finished clip.

        Returns:
            A filesystem path (native) or a ``blob:`` reference (browser).

        Raises:
            CaptureError: If the device failed or produced no media.
            StorageError: If the clip could not be moved into place.
        """

    @abstractmethod
    async def read(self, handle: str) -> bytes:
        """Return the media bytes behind *handle*.

        Raises:
            StorageError: If the resource no longer exists.
        """

    @abstractmethod
    async def release(self, handle: str) -> None:
        """Free the resource behind *handle*.

        Idempotent: releasing twice, or releasing a resource that is already
        gone, must not raise.

        Raises:
            StorageError: Only for genuine I/O failures (e.g. permissions).
        """
