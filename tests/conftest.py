"""Shared pytest fixtures for the dataset recorder test suite.

Provides fake capture backends and clocks, in-memory database engines, and
the device stores built on top of them.
"""

import asyncio
from pathlib import Path

import pytest

from src.core.exceptions import CaptureError, StorageError
from src.core.models import Gender, Sentence, UserProfile
from src.services import session as session_registry
from src.services.capture.base import BaseCaptureBackend
from src.services.capture.native import BaseVideoDevice

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeCaptureBackend(BaseCaptureBackend):
    """In-memory capture backend that records every call in a shared log.

    Set ``start_error`` / ``stop_error`` to make the next calls fail, and add
    handles to ``release_failures`` to make releasing them raise.
    """

    def __init__(self, log: list) -> None:
        self.log = log
        self.clips: dict[str, bytes] = {}
        self.released: list[str] = []
        self.release_failures: set[str] = set()
        self.start_error: CaptureError | None = None
        self.stop_error: CaptureError | None = None
        self._count = 0

    async def start(self, on_ready):
        self.log.append("start")
        if self.start_error is not None:
            raise self.start_error
        on_ready()

    async def stop(self) -> str:
        self.log.append("stop")
        if self.stop_error is not None:
            raise self.stop_error
        self._count += 1
        handle = f"fake://clip-{self._count}"
        self.clips[handle] = f"clip {self._count}".encode()
        return handle

    async def read(self, handle: str) -> bytes:
        if handle not in self.clips:
            raise StorageError(f"{handle} is gone")
        return self.clips[handle]

    async def release(self, handle: str) -> None:
        self.released.append(handle)
        if handle in self.release_failures:
            raise StorageError(f"cannot release {handle}")
        self.clips.pop(handle, None)


class FileVideoDevice(BaseVideoDevice):
    """Video device that writes a fixed payload to a temp file on each stop."""

    def __init__(self, temp_dir: Path, payload: bytes = b"mp4-bytes") -> None:
        self.temp_dir = temp_dir
        self.payload = payload
        self.start_error: Exception | None = None
        self.stops = 0

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error

    async def stop(self) -> Path:
        self.stops += 1
        path = self.temp_dir / f"tmp-{self.stops}.mp4"
        path.write_bytes(self.payload)
        return path


class FakeClock:
    """Records scheduled waits instead of sleeping.

    Waits of exactly ``tick`` seconds (the visible timer) park forever, so
    the timer never fires and never appears in the log.
    """

    def __init__(self, log: list, tick: float = 1.0) -> None:
        self.log = log
        self.tick = tick

    async def wait(self, seconds: float) -> None:
        if seconds == self.tick:
            await asyncio.Event().wait()
        self.log.append(("wait", seconds))
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Session fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_session_singleton():
    """Ensure no recording session leaks between tests."""
    session_registry.close_session()
    yield
    session_registry.close_session()


@pytest.fixture
def event_log():
    return []


@pytest.fixture
def fake_backend(event_log):
    return FakeCaptureBackend(event_log)


@pytest.fixture
def file_device(tmp_path):
    """File-writing video device for driving the native backend."""
    temp = tmp_path / "tmp"
    temp.mkdir()
    return FileVideoDevice(temp)


@pytest.fixture
def fake_clock(event_log):
    return FakeClock(event_log)


@pytest.fixture
def profile():
    return UserProfile(name="Dewi Lestari", age="24", gender=Gender.female)


@pytest.fixture
def sentences():
    return [
        Sentence(id=11, text="Selamat pagi semuanya.", category="Greeting"),
        Sentence(id=12, text="Hari ini cuaca cerah.", category="General"),
        Sentence(id=13, text="Terima kasih atas bantuannya.", category="General"),
    ]


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with tables, dispose after test."""
    from sqlalchemy.ext.asyncio import create_async_engine

    from src.services.storage.database import init_db

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Yield an AsyncSession bound to the test engine; rolls back after test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def kv_store(db_engine):
    """Device key/value store on the in-memory engine."""
    from src.services.storage.kv_store import KeyValueStore

    return KeyValueStore(db_engine)


@pytest.fixture
async def queue_store(kv_store, fake_backend):
    """An empty, loaded offline queue backed by the fake capture backend."""
    from src.services.storage.queue_store import OfflineQueueStore

    store = OfflineQueueStore(kv_store, fake_backend)
    await store.load()
    return store


@pytest.fixture
def device_db_url(tmp_path):
    """File-backed SQLite URL, for tests that simulate a process restart."""
    return f"sqlite+aiosqlite:///{tmp_path / 'device.db'}"


@pytest.fixture
def repository(db_session):
    """DatasetRepository bound to the per-test session."""
    from src.services.storage.repository import DatasetRepository

    return DatasetRepository(db_session)
