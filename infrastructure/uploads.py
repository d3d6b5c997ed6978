"""Disk storage for uploaded images (album art, profile pictures).

Files are written to ``UPLOAD_DIR`` as ``<epoch-millis><ext>`` and served
by the app under ``/uploads``.  The returned URL is what gets persisted.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from fastapi import UploadFile

logger = logging.getLogger(__name__)

PROFILE_PIC_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png", "image/jpg"})
PROFILE_PIC_MAX_BYTES = 2 * 1024 * 1024


class UploadStorage:
    """
    Args:
        directory: Where files are written. Created on first save.
        public_base_url: URL prefix the app is reachable at.
    """

    def __init__(self, directory: str | Path, public_base_url: str) -> None:
        self._directory = Path(directory)
        self._base_url = public_base_url.rstrip("/")

    @property
    def directory(self) -> Path:
        return self._directory

    def _filename(self, original: str | None) -> str:
        suffix = Path(original or "").suffix.lower()
        stem = str(time.time_ns() // 1_000_000)
        candidate = f"{stem}{suffix}"
        counter = 1
        while (self._directory / candidate).exists():
            candidate = f"{stem}-{counter}{suffix}"
            counter += 1
        return candidate

    def save(self, upload: UploadFile) -> str:
        """Persist *upload* and return its public URL."""
        self._directory.mkdir(parents=True, exist_ok=True)
        name = self._filename(upload.filename)
        target = self._directory / name
        with target.open("wb") as out:
            shutil.copyfileobj(upload.file, out)
        logger.info("Stored upload %s (%s)", name, upload.content_type)
        return f"{self._base_url}/uploads/{name}"


def profile_pic_error(upload: UploadFile) -> str | None:
    """Return the validation message for a bad profile picture, else ``None``."""
    if upload.content_type not in PROFILE_PIC_TYPES:
        return "Only JPEG and PNG images are allowed"
    size = upload.size
    if size is None:
        upload.file.seek(0, 2)
        size = upload.file.tell()
        upload.file.seek(0)
    if size > PROFILE_PIC_MAX_BYTES:
        return "Profile picture must be less than 2MB"
    return None
