# paperboy/infrastructure/file_storage.py
import os
import re
import shutil
import time
from dataclasses import dataclass
from typing import BinaryIO, Optional

import structlog

from paperboy.config import UPLOAD_DIR, IMAGES_URL_PREFIX

logger = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


class FileStorageError(Exception):
    pass


@dataclass
class StoredFile:
    filename: str
    path: str


class LocalFileStorage:
    """Uploaded images on local disk, served back under IMAGES_URL_PREFIX."""

    def __init__(self, upload_dir: Optional[str] = None, url_prefix: str = IMAGES_URL_PREFIX):
        self.upload_dir = upload_dir or UPLOAD_DIR
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_dir(self) -> None:
        os.makedirs(self.upload_dir, exist_ok=True)

    def _target(self, filename: str) -> str:
        return os.path.join(self.upload_dir, filename)

    def save(self, fileobj: BinaryIO, original_name: Optional[str]) -> StoredFile:
        safe = _UNSAFE_CHARS.sub("_", original_name or "upload")
        filename = f"{int(time.time() * 1000)}-{safe}"
        try:
            self.ensure_dir()
            with open(self._target(filename), "wb") as out:
                shutil.copyfileobj(fileobj, out)
        except OSError as exc:
            logger.exception("image_store_failed", filename=filename, error=str(exc))
            raise FileStorageError(f"could not store {filename}") from exc
        logger.info("image_stored", filename=filename)
        return StoredFile(filename=filename, path=f"{self.url_prefix}/{filename}")

    def delete(self, filename: str) -> bool:
        """
        Remove a stored file if present. Returns False when there was nothing to remove.
        OS errors propagate; callers decide whether they matter.
        """
        target = self._target(filename)
        if not os.path.exists(target):
            return False
        os.remove(target)
        logger.info("image_deleted", filename=filename)
        return True
