"""
Clip upload endpoint.

Receives one multipart clip per request, stores it under a per-respondent
folder together with a ``.txt`` of the sentence, and records a row in the
``uploads`` table.
"""

import asyncio
import logging
import re
import time
from pathlib import Path

from fastapi import APIRouter, File, Form, UploadFile

from src.core.config import get_settings
from src.core.exceptions import UploadRejectedError
from src.core.models import UploadResponse
from src.services.storage.database import get_session
from src.services.storage.repository import DatasetRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])

_UNSAFE_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def safe_component(value: str) -> str:
    """Replace every non-alphanumeric character so *value* is one path segment."""
    return _UNSAFE_CHARS.sub("_", value)


def respondent_folder(user_name: str, user_gender: str, user_age: str) -> str:
    """Folder name ``<safeName>_<gender>_<age>`` for one respondent."""
    return "_".join(safe_component(part) for part in (user_name, user_gender, user_age))


def clip_target(uploads_dir: Path, folder: str, sentence_id: str) -> Path:
    """Path of a new clip, guaranteed to stay inside *uploads_dir*.

    Raises:
        UploadRejectedError: If the resolved path escapes the uploads folder.
    """
    root = uploads_dir.resolve()
    name = f"rec_{safe_component(sentence_id)}_{int(time.time() * 1000)}.mp4"
    target = (root / folder / name).resolve()
    if not target.is_relative_to(root):
        raise UploadRejectedError("Upload fields resolve outside the uploads folder")
    return target


def _write_clip(target: Path, data: bytes, text_path: Path | None, text: str) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    if text_path is not None:
        text_path.write_text(text, encoding="utf-8")


def _discard_clip(target: Path, text_path: Path | None) -> None:
    target.unlink(missing_ok=True)
    if text_path is not None:
        text_path.unlink(missing_ok=True)


@router.post("/upload", response_model=UploadResponse)
async def upload_clip(
    userName: str = Form(""),  # noqa: N803 - wire field names
    userAge: str = Form(""),  # noqa: N803
    userGender: str = Form(""),  # noqa: N803
    sentenceId: str = Form(""),  # noqa: N803
    sentenceText: str = Form(""),  # noqa: N803
    video: UploadFile | None = File(None),
):
    """Store one uploaded clip and its sentence text.

    Every field that becomes part of the path is reduced to ``[A-Za-z0-9_]``.
    If the database row cannot be written, the files are removed again.
    """
    if video is None:
        raise UploadRejectedError()

    user_name = userName or "Anonymous"
    user_gender = userGender or "Unknown"
    user_age = userAge or "0"
    sentence_id = sentenceId or "0"

    settings = get_settings()
    target = clip_target(
        Path(settings.uploads_dir),
        respondent_folder(user_name, user_gender, user_age),
        sentence_id,
    )
    text_path = target.with_suffix(".txt") if sentenceText else None

    data = await video.read()
    await asyncio.to_thread(_write_clip, target, data, text_path, sentenceText)
    logger.info("Clip received: %s (%d bytes)", target, len(data))

    try:
        async with get_session() as session:
            repo = DatasetRepository(session)
            await repo.create_upload(
                user_name=user_name,
                user_age=user_age,
                user_gender=user_gender,
                sentence_id=sentence_id,
                sentence_text=sentenceText,
                video_path=str(target),
                text_path=str(text_path) if text_path else None,
            )
    except Exception:
        logger.error("Could not record upload %s; removing its files", target)
        await asyncio.to_thread(_discard_clip, target, text_path)
        raise

    return UploadResponse(path=str(target))
