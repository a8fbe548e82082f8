"""End-to-end flow: device session → offline queue → upload → server files.

The device side runs the real RecorderApp with the in-memory browser
backend; its IngestionClient talks to the FastAPI app through
``ASGITransport`` instead of the network.
"""

import asyncio
from pathlib import Path

import httpx
import pytest

from src.core.config import Settings
from src.core.models import RecordingPhase
from src.services.capture.browser import BrowserCaptureBackend
from src.services.recorder_app import RecorderApp
from src.services.storage import database
from src.services.storage.repository import DatasetRepository
from src.services.sync.client import IngestionClient


def _camera(payload: bytes = b"frame"):
    async def _frames():
        yield payload
        await asyncio.Event().wait()

    async def _open():
        return _frames()

    return _open


@pytest.fixture
async def recorder(app, async_client, device_db_url):
    settings = Settings(
        _env_file=None,
        lead_in_delay=0,
        trail_delay=0,
        timer_interval=60,
        local_database_url=device_db_url,
    )
    client = IngestionClient(base_url="http://test", transport=httpx.ASGITransport(app=app))
    recorder = await RecorderApp.create(
        settings=settings, backend=BrowserCaptureBackend(_camera()), client=client
    )
    yield recorder
    await recorder.close()


async def test_three_prompt_session_uploads_everything(
    async_client, recorder, profile, uploads_dir
):
    resp = await async_client.post(
        "/api/import-sentences",
        json=[{"text": "Satu"}, {"text": "Dua"}, {"text": "Tiga"}],
    )
    assert resp.status_code == 200

    await recorder.save_profile(profile)
    controller = await recorder.begin_session()
    assert controller.total == 3

    for _ in range(3):
        assert await controller.start_recording() is True
        assert await controller.stop_recording() is not None

    assert controller.prompt_index == 3
    assert controller.phase is RecordingPhase.completed
    assert len(recorder.recordings) == 3
    assert sorted(i.text for i in recorder.recordings) == ["Dua", "Satu", "Tiga"]

    result = await recorder.upload_all()

    assert (result.attempted, result.succeeded, result.failed_ids) == (3, 3, [])
    assert all(item.uploaded for item in recorder.recordings)

    folder = (uploads_dir / "Dewi_Lestari_female_24").resolve()
    videos = sorted(folder.glob("*.mp4"))
    assert len(videos) == 3
    assert all(v.read_bytes() == b"frame" for v in videos)
    assert sorted(v.with_suffix(".txt").read_text(encoding="utf-8") for v in videos) == [
        "Dua",
        "Satu",
        "Tiga",
    ]

    async with database.get_session() as session:
        uploads = await DatasetRepository(session).list_uploads()
    assert {Path(u.video_path) for u in uploads} == set(videos)

    second = await recorder.upload_all()
    assert second.nothing_to_do
