"""Tests for the native and browser capture backends."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.exceptions import CaptureError, StorageError
from src.services.capture import BaseCaptureBackend, create_capture_backend
from src.services.capture.browser import BlobRegistry, BrowserCaptureBackend
from src.services.capture.native import (
    FFmpegVideoDevice,
    NativeCaptureBackend,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _stream_of(*chunks: bytes, then_block: bool = True, error: Exception | None = None):
    """Stream factory yielding *chunks*, then blocking (live device) or ending."""

    async def _gen():
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error
        if then_block:
            await asyncio.Event().wait()

    async def _open():
        return _gen()

    return _open


def _ready_counter():
    calls = []
    return calls, lambda: calls.append(True)


# ===================================================================
# Browser backend
# ===================================================================


class TestBrowserCapture:
    async def test_chunks_become_one_blob(self):
        backend = BrowserCaptureBackend(_stream_of(b"ab", b"", b"cd"))
        calls, on_ready = _ready_counter()

        await backend.start(on_ready)
        await asyncio.sleep(0)
        handle = await backend.stop()

        assert calls == [True]
        assert handle.startswith("blob:")
        assert await backend.read(handle) == b"abcd"

    async def test_release_is_idempotent(self):
        registry = BlobRegistry()
        backend = BrowserCaptureBackend(_stream_of(b"x"), registry=registry)
        await backend.start(lambda: None)
        await asyncio.sleep(0)
        handle = await backend.stop()

        await backend.release(handle)
        await backend.release(handle)

        assert handle not in registry
        with pytest.raises(StorageError):
            await backend.read(handle)

    async def test_permission_denied_is_capture_error(self):
        async def denied():
            raise PermissionError("camera blocked")

        backend = BrowserCaptureBackend(denied)
        calls, on_ready = _ready_counter()
        with pytest.raises(CaptureError):
            await backend.start(on_ready)
        assert calls == []

    async def test_empty_capture_fails(self):
        backend = BrowserCaptureBackend(_stream_of())
        await backend.start(lambda: None)
        with pytest.raises(CaptureError):
            await backend.stop()
        assert len(backend.registry) == 0

    async def test_stream_failure_surfaces_on_stop(self):
        backend = BrowserCaptureBackend(_stream_of(b"x", error=RuntimeError("track ended")))
        await backend.start(lambda: None)
        await asyncio.sleep(0)
        with pytest.raises(CaptureError):
            await backend.stop()

    async def test_stream_ending_on_its_own_keeps_data(self):
        backend = BrowserCaptureBackend(_stream_of(b"a", b"b", then_block=False))
        await backend.start(lambda: None)
        await asyncio.sleep(0)
        handle = await backend.stop()
        assert await backend.read(handle) == b"ab"

    async def test_stop_without_start(self):
        with pytest.raises(CaptureError):
            await BrowserCaptureBackend(_stream_of(b"x")).stop()

    async def test_each_clip_gets_its_own_handle(self):
        backend = BrowserCaptureBackend(_stream_of(b"x"))
        handles = []
        for _ in range(2):
            await backend.start(lambda: None)
            await asyncio.sleep(0)
            handles.append(await backend.stop())
        assert handles[0] != handles[1]
        assert len(backend.registry) == 2


# ===================================================================
# Native backend
# ===================================================================


class TestNativeCapture:
    @pytest.fixture
    def device(self, file_device):
        return file_device

    @pytest.fixture
    def backend(self, device, tmp_path):
        return NativeCaptureBackend(device=device, recordings_dir=tmp_path / "recordings")

    async def test_clip_moved_into_recordings_dir(self, backend, device):
        calls, on_ready = _ready_counter()
        await backend.start(on_ready)
        handle = await backend.stop()

        path = Path(handle)
        assert calls == [True]
        assert path.parent == backend.recordings_dir
        assert path.name.startswith("rec_") and path.suffix == ".mp4"
        assert not any(device.temp_dir.iterdir())
        assert await backend.read(handle) == b"mp4-bytes"

    async def test_same_millisecond_names_do_not_collide(self, backend):
        with patch("src.services.capture.native.time.time", return_value=1_700_000_000.0):
            handles = []
            for _ in range(2):
                await backend.start(lambda: None)
                handles.append(await backend.stop())

        assert [Path(h).name for h in handles] == [
            "rec_1700000000000.mp4",
            "rec_1700000000000_1.mp4",
        ]

    async def test_release_twice_does_not_raise(self, backend):
        await backend.start(lambda: None)
        handle = await backend.stop()

        await backend.release(handle)
        await backend.release(handle)

        assert not Path(handle).exists()
        with pytest.raises(StorageError):
            await backend.read(handle)

    async def test_device_permission_error(self, backend, device):
        device.start_error = PermissionError("denied")
        calls, on_ready = _ready_counter()
        with pytest.raises(CaptureError):
            await backend.start(on_ready)
        assert calls == []

    async def test_unwritable_recordings_dir(self, device, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")
        backend = NativeCaptureBackend(device=device, recordings_dir=blocker / "recordings")
        with pytest.raises(StorageError):
            await backend.start(lambda: None)


# ===================================================================
# ffmpeg device
# ===================================================================


class TestFFmpegDevice:
    async def test_missing_binary_is_capture_error(self, tmp_path):
        device = FFmpegVideoDevice(
            input_args=["-f", "lavfi", "-i", "testsrc"],
            ffmpeg_bin=str(tmp_path / "no-such-ffmpeg"),
            temp_dir=tmp_path,
        )
        with pytest.raises(CaptureError):
            await device.start()

    async def test_stop_sends_quit_and_returns_output(self, tmp_path):
        process = MagicMock(returncode=None, pid=4321)

        async def communicate(input=None):
            assert input == b"q"
            output.write_bytes(b"finalized")
            process.returncode = 0
            return b"", b""

        process.communicate = AsyncMock(side_effect=communicate)
        spawn = AsyncMock(return_value=process)
        device = FFmpegVideoDevice(input_args=["-i", "x"], ffmpeg_bin="ffmpeg", temp_dir=tmp_path)

        with patch("src.services.capture.native.asyncio.create_subprocess_exec", spawn):
            await device.start()
            output = Path(spawn.call_args.args[-1])
            result = await device.stop()

        assert result == output
        assert result.read_bytes() == b"finalized"
        assert "-t" in spawn.call_args.args

    async def test_nonzero_exit_is_capture_error(self, tmp_path):
        process = MagicMock(returncode=None, pid=1)

        async def communicate(input=None):
            process.returncode = 1
            return b"", b"Device busy"

        process.communicate = AsyncMock(side_effect=communicate)
        device = FFmpegVideoDevice(input_args=["-i", "x"], ffmpeg_bin="ffmpeg", temp_dir=tmp_path)

        with patch(
            "src.services.capture.native.asyncio.create_subprocess_exec",
            AsyncMock(return_value=process),
        ):
            await device.start()
            with pytest.raises(CaptureError, match="Device busy"):
                await device.stop()

    async def test_stop_when_idle(self, tmp_path):
        with pytest.raises(CaptureError):
            await FFmpegVideoDevice(input_args=["-i", "x"], temp_dir=tmp_path).stop()


# ===================================================================
# Factory
# ===================================================================


class TestFactory:
    def test_browser(self):
        backend = create_capture_backend("browser", open_stream=_stream_of(b"x"))
        assert isinstance(backend, BrowserCaptureBackend)
        assert isinstance(backend, BaseCaptureBackend)

    def test_native(self, file_device, tmp_path):
        backend = create_capture_backend(
            "native", device=file_device, recordings_dir=tmp_path / "rec"
        )
        assert isinstance(backend, NativeCaptureBackend)

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown capture backend"):
            create_capture_backend("webcam")
