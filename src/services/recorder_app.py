"""Operator device application service.

Wires the capture backend, device persistence, session controller and
upload reconciler into the operations the operator UI calls: save the
respondent profile, run a sentence session, review the gallery, upload,
and delete.

Usage::

    app = await RecorderApp.create()
    await app.save_profile(UserProfile(name="Dewi", age="24", gender="female"))
    controller = await app.begin_session()
    ...
    result = await app.upload_all()
    await app.close()
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from src.core.config import Settings, get_settings
from src.core.exceptions import ProfileIncompleteError, ReconciliationInProgressError
from src.core.models import DeleteResult, QueueItem, ReconcileResult, UserProfile
from src.services import session as session_registry
from src.services.capture import BaseCaptureBackend, create_capture_backend
from src.services.session import RecordingSessionController
from src.services.storage.database import create_engine_for, init_db
from src.services.storage.kv_store import KeyValueStore
from src.services.storage.profile_store import ProfileStore
from src.services.storage.queue_store import OfflineQueueStore
from src.services.sync.client import IngestionClient
from src.services.sync.reconciler import UploadReconciler
from src.services.sync.sentences import SentenceProvider

logger = logging.getLogger(__name__)


class RecorderApp:
    """Process-scoped device services, passed by reference to the UI layer."""

    def __init__(
        self,
        engine: AsyncEngine,
        backend: BaseCaptureBackend,
        client: IngestionClient,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.backend = backend
        self.client = client
        self._engine = engine
        kv = KeyValueStore(engine)
        self.profiles = ProfileStore(kv)
        self.queue = OfflineQueueStore(kv, backend)
        self.sentences = SentenceProvider(client, self.settings.sentence_limit)
        self.reconciler = UploadReconciler(self.queue, client, backend)
        self.profile: UserProfile | None = None

    @classmethod
    async def create(
        cls,
        settings: Settings | None = None,
        backend: BaseCaptureBackend | None = None,
        client: IngestionClient | None = None,
        engine: AsyncEngine | None = None,
    ) -> "RecorderApp":
        """Build the device services and load persisted state.

        Args:
            settings: Settings override (defaults to ``get_settings()``).
            backend: Capture backend; built from ``settings.capture_backend``
                if omitted (the browser variant must always be passed in,
                since it needs a stream source).
            client: Ingestion client override.
            engine: Device database engine override.
        """
        settings = settings or get_settings()
        engine = engine or create_engine_for(settings.local_database_url)
        await init_db(engine)
        app = cls(
            engine=engine,
            backend=backend or create_capture_backend(settings.capture_backend),
            client=client or IngestionClient(settings.api_url, settings.upload_timeout),
            settings=settings,
        )
        await app.queue.load()
        app.profile = await app.profiles.load()
        return app

    async def close(self) -> None:
        session_registry.close_session()
        await self.client.close()
        await self._engine.dispose()

    # -- profile --

    async def save_profile(self, profile: UserProfile) -> UserProfile:
        self.profile = await self.profiles.save(profile)
        return self.profile

    async def reset_profile(self) -> None:
        await self.profiles.reset()
        self.profile = None

    # -- session --

    async def begin_session(self, limit: int | None = None, **kwargs) -> RecordingSessionController:
        """Fetch prompts and open the recording session.

        Raises:
            ProfileIncompleteError: If no respondent profile is saved.
            SentencesUnavailableError: If the server returned no prompts.
            SessionAlreadyActiveError: If a session is already open.
        """
        if self.profile is None:
            raise ProfileIncompleteError("Save the respondent profile before recording")
        sentences = await self.sentences.fetch(limit)
        return session_registry.open_session(
            self.backend,
            self.queue,
            sentences,
            self.profile,
            lead_in_delay=self.settings.lead_in_delay,
            trail_delay=self.settings.trail_delay,
            timer_interval=self.settings.timer_interval,
            **kwargs,
        )

    def end_session(self) -> None:
        session_registry.close_session()

    # -- gallery --

    @property
    def recordings(self) -> list[QueueItem]:
        return self.queue.items

    async def upload_all(self) -> ReconcileResult:
        return await self.reconciler.reconcile()

    async def delete_recording(self, item_id: str) -> DeleteResult:
        if self.reconciler.is_running:
            raise ReconciliationInProgressError()
        return await self.queue.delete(item_id)

    async def clear_all(self) -> None:
        if self.reconciler.is_running:
            raise ReconciliationInProgressError()
        await self.queue.clear()
