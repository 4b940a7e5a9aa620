"""Temporary staging of uploaded files before they go to media storage."""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import UploadFile

from videotube.config import get_settings
from videotube.errors import ValidationError

logger = structlog.get_logger()


@asynccontextmanager
async def staged_upload(upload: UploadFile) -> AsyncIterator[Path]:
    """
    Write `upload` to a unique file under the temp upload dir.

    The file is removed when the block exits, whether it succeeded or raised.
    """
    tmp_dir = Path(get_settings().upload_tmp_dir)
    tmp_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(upload.filename or "").suffix
    path = tmp_dir / f"{uuid.uuid4().hex}{suffix}"

    try:
        with path.open("wb") as fh:
            fh.write(await upload.read())
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug("upload_staging_removed", path=str(path))


def ensure_image(upload: UploadFile, *, allow_gif: bool = True) -> None:
    """
    Reject uploads whose declared content type is not an image.

    Raises:
        ValidationError: not an image, or a GIF when `allow_gif` is False.
    """
    content_type = (upload.content_type or "").lower()
    if not content_type.startswith("image/"):
        msg = "Only images are allowed to upload"
        raise ValidationError(msg)
    if not allow_gif and "gif" in content_type:
        msg = "Only images are allowed to upload"
        raise ValidationError(msg)
