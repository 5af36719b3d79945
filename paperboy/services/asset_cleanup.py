# paperboy/services/asset_cleanup.py
from typing import Optional

import structlog

from paperboy.infrastructure.file_storage import LocalFileStorage
from paperboy.models.post import Post

logger = structlog.get_logger(__name__)

IMAGES_SEGMENT = "/images/"


def filename_from_image_url(url: Optional[str]) -> Optional[str]:
    """
    `http://host/api/images/photo.png` -> `photo.png`.
    Anything without an `/images/` segment, or whose remainder is not a
    plain filename, gives None.
    """
    if not url or IMAGES_SEGMENT not in url:
        return None
    filename = url.rsplit(IMAGES_SEGMENT, 1)[1].split("?", 1)[0].split("#", 1)[0]
    if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
        return None
    return filename


def cleanup_post_image(storage: Optional[LocalFileStorage], post: Post) -> bool:
    """Best effort: never raises, returns whether a file was removed."""
    if storage is None or not post.image_url:
        return False
    filename = filename_from_image_url(post.image_url)
    if filename is None:
        logger.info("post_image_cleanup_skipped", post_id=str(post.id), image_url=post.image_url)
        return False
    try:
        return storage.delete(filename)
    except Exception as exc:
        logger.exception("post_image_cleanup_failed", post_id=str(post.id), filename=filename, error=str(exc))
        return False
