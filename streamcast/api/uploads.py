"""Upload handling for media files posted to /start-stream."""

import asyncio
import time
from typing import BinaryIO
from pathlib import Path

from fastapi import UploadFile
from loguru import logger
from pydantic import BaseModel, Field

from streamcast.app_config import get_app_environ_config
from streamcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

ALLOWED_MEDIA_TYPES = frozenset({"video/mp4", "video/avi", "video/x-matroska"})

CHUNK_SIZE = 1024 * 1024


class UploadPolicy(BaseModel):
    upload_dir: Path
    max_bytes: int = Field(gt=0)
    allowed_types: frozenset[str] = ALLOWED_MEDIA_TYPES

    @classmethod
    def from_config(cls) -> "UploadPolicy":
        cfg = get_app_environ_config()
        return cls(upload_dir=Path(cfg.UPLOAD_DIR), max_bytes=cfg.MAX_UPLOAD_BYTES)


def _reserve_path(upload_dir: Path, suffix: str) -> tuple[Path, BinaryIO]:
    """Open a new `<epoch-ms><suffix>` file exclusively, bumping the stamp on collision."""
    stamp = int(time.time() * 1000)
    while True:
        path = upload_dir / f"{stamp}{suffix}"
        try:
            return path, path.open("xb")
        except FileExistsError:
            stamp += 1


async def save_upload(upload: UploadFile, policy: UploadPolicy) -> Path:
    """Stream an uploaded file to the upload directory.

    Args:
        upload: The multipart file
        policy: Allowed media types, size limit and destination

    Returns:
        Path of the saved file

    Raises:
        AppError: E_INVALID_FILE_TYPE (400) or E_FILE_TOO_LARGE (413); a
            partially written file is removed
    """
    try:
        if upload.content_type not in policy.allowed_types:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_FILE_TYPE,
                errmesg="Invalid file type. Only MP4, AVI, and MKV files are allowed.",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

        policy.upload_dir.mkdir(parents=True, exist_ok=True)
        suffix = Path(upload.filename or "").suffix
        path, fh = _reserve_path(policy.upload_dir, suffix)

        written = 0
        try:
            with fh:
                while chunk := await upload.read(CHUNK_SIZE):
                    written += len(chunk)
                    if written > policy.max_bytes:
                        raise AppError(
                            errcode=AppErrorCode.E_FILE_TOO_LARGE,
                            errmesg=f"File size too large. Maximum size is {policy.max_bytes // (1024 * 1024)}MB",
                            status_code=HttpStatusCode.PAYLOAD_TOO_LARGE,
                        )
                    await asyncio.to_thread(fh.write, chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise
    finally:
        await upload.close()

    logger.info(f"📥 Saved upload {upload.filename!r} ({written} bytes) to {path}")
    return path
