"""Native capture backend: records through a video device into managed files.

The device writes each clip to a temporary location; on stop the clip is
moved into ``recordings_dir`` under a time-derived name and the resulting
path becomes the queue item's resource handle.
"""

import asyncio
import logging
import shlex
import shutil
import tempfile
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from src.core.config import get_settings
from src.core.exceptions import CaptureError, StorageError
from src.services.capture.base import BaseCaptureBackend

logger = logging.getLogger(__name__)


class BaseVideoDevice(ABC):
    """A camera/microphone pair that records one clip at a time to a file."""

    @abstractmethod
    async def start(self) -> None:
        """Begin recording. Raises ``CaptureError`` or ``OSError`` on failure."""

    @abstractmethod
    async def stop(self) -> Path:
        """Finish recording and return the temporary clip path."""


class FFmpegVideoDevice(BaseVideoDevice):
    """Records audio+video with an ``ffmpeg`` subprocess.

    Stopping sends ``q`` on stdin, which makes ffmpeg finalize the MP4
    container before exiting.
    """

    def __init__(
        self,
        input_args: list[str] | None = None,
        ffmpeg_bin: str | None = None,
        temp_dir: str | Path | None = None,
        max_duration: int | None = None,
    ) -> None:
        """Initialize the ffmpeg device.

        Args:
            input_args: ffmpeg input options (falls back to settings).
            ffmpeg_bin: Path or name of the ffmpeg executable.
            temp_dir: Where in-progress clips are written (system temp if empty).
            max_duration: Hard cap on clip length in seconds.
        """
        settings = get_settings()
        self._input_args = input_args or shlex.split(settings.ffmpeg_input_args)
        self._ffmpeg_bin = ffmpeg_bin or settings.ffmpeg_bin
        self._temp_dir = Path(temp_dir or settings.capture_temp_dir or tempfile.gettempdir())
        self._max_duration = max_duration or settings.max_clip_duration
        self._process: asyncio.subprocess.Process | None = None
        self._output: Path | None = None

    async def start(self) -> None:
        if self._process is not None:
            raise CaptureError("Device is already recording")

        self._temp_dir.mkdir(parents=True, exist_ok=True)
        output = self._temp_dir / f"capture-{uuid.uuid4().hex}.mp4"
        cmd = [
            self._ffmpeg_bin,
            "-y",
            "-loglevel", "error",
            *self._input_args,
            "-t", str(self._max_duration),
            str(output),
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CaptureError(f"Could not launch {self._ffmpeg_bin}: {exc}") from exc

        if process.returncode is not None:
            _, stderr = await process.communicate()
            raise CaptureError(f"Device failed to open: {stderr.decode(errors='replace').strip()}")

        self._process = process
        self._output = output
        logger.debug("ffmpeg capture started (pid=%s) -> %s", process.pid, output)

    async def stop(self) -> Path:
        if self._process is None or self._output is None:
            raise CaptureError("Device is not recording")

        process, output = self._process, self._output
        self._process = None
        self._output = None

        # ffmpeg may already have exited on its own at max_duration
        stdin = b"q" if process.returncode is None else None
        _, stderr = await process.communicate(input=stdin)
        if process.returncode != 0:
            output.unlink(missing_ok=True)
            raise CaptureError(
                f"Device exited with code {process.returncode}: "
                f"{stderr.decode(errors='replace').strip()}"
            )
        if not output.exists():
            raise CaptureError("Device produced no clip")
        return output


class NativeCaptureBackend(BaseCaptureBackend):
    """Capture backend that keeps clips as files under ``recordings_dir``."""

    def __init__(
        self,
        device: BaseVideoDevice | None = None,
        recordings_dir: str | Path | None = None,
    ) -> None:
        self._device = device or FFmpegVideoDevice()
        self._recordings_dir = Path(recordings_dir or get_settings().recordings_dir)

    @property
    def recordings_dir(self) -> Path:
        return self._recordings_dir

    def ensure_dir(self) -> None:
        """Create the managed recordings directory if it is missing."""
        try:
            self._recordings_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create {self._recordings_dir}: {exc}") from exc

    async def start(self, on_ready: Callable[[], None]) -> None:
        self.ensure_dir()
        try:
            await self._device.start()
        except OSError as exc:
            raise CaptureError(f"Camera unavailable: {exc}") from exc
        on_ready()

    async def stop(self) -> str:
        temp_path = await self._device.stop()
        target = self._next_target()
        try:
            await asyncio.to_thread(shutil.move, str(temp_path), str(target))
        except OSError as exc:
            raise StorageError(f"Could not move clip into {self._recordings_dir}: {exc}") from exc
        logger.info("Saved clip %s", target)
        return str(target)

    async def read(self, handle: str) -> bytes:
        try:
            return await asyncio.to_thread(Path(handle).read_bytes)
        except OSError as exc:
            raise StorageError(f"Cannot read clip {handle}: {exc}") from exc

    async def release(self, handle: str) -> None:
        try:
            await asyncio.to_thread(Path(handle).unlink, missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot delete clip {handle}: {exc}") from exc

    def _next_target(self) -> Path:
        """Return a time-derived, not yet existing path in the recordings dir."""
        stamp = int(time.time() * 1000)
        target = self._recordings_dir / f"rec_{stamp}.mp4"
        suffix = 1
        while target.exists():
            target = self._recordings_dir / f"rec_{stamp}_{suffix}.mp4"
            suffix += 1
        return target
