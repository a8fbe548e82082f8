"""
Durable offline queue of captured clips.

``OfflineQueueStore`` keeps the ordered queue in memory and mirrors it into
the device key/value store under a single key. Every mutation builds the
new queue, persists it in full, and only then swaps it in, so memory and
storage never diverge after a call returns.
"""

import logging
from collections.abc import Iterable

from pydantic import TypeAdapter, ValidationError

from src.core.exceptions import StorageError
from src.core.models import DeleteResult, QueueItem
from src.services.capture.base import BaseCaptureBackend
from src.services.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

QUEUE_KEY = "offline_queue"

_queue_adapter = TypeAdapter(list[QueueItem])


class OfflineQueueStore:
    """Ordered, persisted collection of :class:`QueueItem`.

    Args:
        kv: Device key/value store used for persistence.
        backend: Capture backend that owns the resources behind item handles.
    """

    def __init__(self, kv: KeyValueStore, backend: BaseCaptureBackend) -> None:
        self._kv = kv
        self._backend = backend
        self._items: list[QueueItem] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[QueueItem]:
        """Current queue in insertion order (a copy)."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> QueueItem | None:
        return next((item for item in self._items if item.id == item_id), None)

    def pending(self) -> list[QueueItem]:
        """Items not yet uploaded, in queue order."""
        return [item for item in self._items if not item.uploaded]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> list[QueueItem]:
        """Rebuild the queue from persisted storage.

        Missing data yields an empty queue. A document that cannot be parsed
        raises ``StorageError`` rather than silently dropping clips.
        """
        raw = await self._kv.get_item(QUEUE_KEY)
        if raw is None:
            self._items = []
            return []
        try:
            items = _queue_adapter.validate_json(raw)
        except ValidationError as exc:
            raise StorageError(f"Persisted queue is unreadable: {exc}") from exc
        self._items = items
        logger.info("Loaded offline queue (%d items, %d pending)", len(items), len(self.pending()))
        return self.items

    async def _commit(self, items: list[QueueItem]) -> None:
        """Persist *items* in full, then make them the in-memory queue."""
        await self._kv.set_item(QUEUE_KEY, _queue_adapter.dump_json(items).decode())
        self._items = items

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def append(self, item: QueueItem) -> None:
        """Add *item* at the end of the queue and persist before returning."""
        if self.get(item.id) is not None:
            raise StorageError(f"Queue item {item.id} already exists")
        if any(existing.resource_handle == item.resource_handle for existing in self._items):
            raise StorageError(f"Resource {item.resource_handle} is already owned by another item")
        await self._commit([*self._items, item])
        logger.info("Queued clip %s for sentence %s", item.id, item.sentence_id)

    async def mark_uploaded(self, ids: Iterable[str]) -> int:
        """Flag the given items as uploaded with a single persist.

        Returns:
            Number of items whose flag changed.
        """
        wanted = set(ids)
        changed = 0
        updated: list[QueueItem] = []
        for item in self._items:
            if item.id in wanted and not item.uploaded:
                item = item.model_copy(update={"uploaded": True})
                changed += 1
            updated.append(item)
        if changed:
            await self._commit(updated)
        return changed

    async def delete(self, item_id: str) -> DeleteResult:
        """Release an item's resource and remove it from the queue.

        A failure to delete the physical resource is logged and the entry is
        removed anyway, so the operator is never left with an undeletable item.
        """
        target = self.get(item_id)
        if target is None:
            return DeleteResult.not_found

        try:
            await self._backend.release(target.resource_handle)
        except StorageError as exc:
            logger.warning("Could not release %s: %s", target.resource_handle, exc.detail)

        await self._commit([item for item in self._items if item.id != item_id])
        logger.info("Deleted queue item %s", item_id)
        return DeleteResult.ok

    async def clear(self) -> None:
        """Release every item's resource (best-effort) and persist an empty queue."""
        for item in self._items:
            try:
                await self._backend.release(item.resource_handle)
            except StorageError as exc:
                logger.warning("Could not release %s: %s", item.resource_handle, exc.detail)
        await self._commit([])
        logger.info("Cleared offline queue")
