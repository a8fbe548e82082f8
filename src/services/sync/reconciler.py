"""
Upload reconciliation for the offline queue.

One pass walks the pending items in queue order and uploads them one at a
time. Each item succeeds or fails on its own; the successes are written
back with a single ``mark_uploaded`` once the pass is over.

Usage::

    reconciler = UploadReconciler(store, client, backend)
    result = await reconciler.reconcile()
"""

import logging

from src.core.exceptions import ReconciliationInProgressError, StorageError, UploadError
from src.core.models import ReconcileResult
from src.services.capture.base import BaseCaptureBackend
from src.services.storage.queue_store import OfflineQueueStore
from src.services.sync.client import IngestionClient

logger = logging.getLogger(__name__)


class UploadReconciler:
    """Uploads pending queue items and records which ones made it.

    Args:
        store: The device's offline queue.
        client: Ingestion server client.
        backend: Capture backend used to read each item's media.
    """

    def __init__(
        self,
        store: OfflineQueueStore,
        client: IngestionClient,
        backend: BaseCaptureBackend,
    ) -> None:
        self._store = store
        self._client = client
        self._backend = backend
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def reconcile(self) -> ReconcileResult:
        """Run one sequential upload pass over the items pending right now.

        Returns:
            Counts for the pass. ``attempted == 0`` means nothing was pending.

        Raises:
            ReconciliationInProgressError: If another pass is still running.
            StorageError: If the final ``mark_uploaded`` could not be persisted.
        """
        if self._running:
            raise ReconciliationInProgressError()
        self._running = True
        try:
            return await self._run_pass()
        finally:
            self._running = False

    async def _run_pass(self) -> ReconcileResult:
        pending = self._store.pending()
        if not pending:
            logger.info("Nothing to upload")
            return ReconcileResult()

        succeeded: list[str] = []
        failed: list[str] = []
        try:
            for item in pending:
                try:
                    media = await self._backend.read(item.resource_handle)
                    await self._client.upload(item, media)
                except (UploadError, StorageError) as exc:
                    logger.warning("Upload of %s skipped: %s", item.id, exc.detail)
                    failed.append(item.id)
                    continue
                succeeded.append(item.id)
        finally:
            # Clips the server already accepted stay marked even if the pass aborts
            if succeeded:
                await self._store.mark_uploaded(succeeded)

        logger.info(
            "Upload pass finished: %d attempted, %d succeeded, %d failed",
            len(pending),
            len(succeeded),
            len(failed),
        )
        return ReconcileResult(attempted=len(pending), succeeded=len(succeeded), failed_ids=failed)
