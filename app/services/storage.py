"""Local disk storage for submitted audio."""

from __future__ import annotations

import logging
from pathlib import Path
from uuid import UUID, uuid4

from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings

logger = logging.getLogger(__name__)

_ALLOWED_EXTENSIONS = {"webm", "ogg", "wav", "mp3", "m4a", "mp4", "flac"}


class StorageError(RuntimeError):
    """Raised when submitted audio cannot be persisted."""


class UploadTooLarge(StorageError):
    """Raised when an upload exceeds ``PIPELINE_MAX_UPLOAD_BYTES``."""


def _extension_for(filename: str | None) -> str:
    suffix = Path(filename or "").suffix.lower().lstrip(".")
    return suffix if suffix in _ALLOWED_EXTENSIONS else "webm"


def check_upload(
    audio_bytes: bytes,
    content_type: str | None,
    *,
    max_bytes: int | None = None,
) -> None:
    """Reject empty, oversized or non-audio uploads before anything is written."""

    limit = max_bytes or settings.pipeline.max_upload_bytes
    if not audio_bytes:
        raise StorageError("Audio payload for upload was empty.")
    if len(audio_bytes) > limit:
        raise UploadTooLarge(f"Audio file exceeds the {limit} byte limit.")

    # Browsers send e.g. "audio/webm;codecs=opus".
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if not media_type.startswith("audio/"):
        raise StorageError("Invalid file type. Only audio files are allowed.")


async def save_submission_audio(
    participant_id: UUID,
    audio_bytes: bytes,
    *,
    filename: str | None = None,
    upload_dir: str | None = None,
) -> str:
    """Write the audio under the upload directory and return its path."""

    if not audio_bytes:
        raise StorageError("Audio payload for upload was empty.")

    target_dir = Path(upload_dir or settings.pipeline.upload_dir)
    target = target_dir / f"{participant_id}-{uuid4().hex}.{_extension_for(filename)}"

    def _write() -> None:
        target_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(audio_bytes)

    try:
        await run_in_threadpool(_write)
    except OSError as exc:
        raise StorageError(f"Failed to store submitted audio: {exc}") from exc

    return str(target)


async def discard_submission_audio(audio_reference: str) -> None:
    """Remove audio stored for a submission that was then rejected."""

    try:
        await run_in_threadpool(Path(audio_reference).unlink, missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove rejected upload %s: %s", audio_reference, exc)


__all__ = [
    "StorageError",
    "UploadTooLarge",
    "check_upload",
    "discard_submission_audio",
    "save_submission_audio",
]
