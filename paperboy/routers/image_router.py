# paperboy/routers/image_router.py
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool
import structlog

from paperboy.dependencies.db import get_storage
from paperboy.infrastructure.file_storage import FileStorageError, LocalFileStorage
from paperboy.schemas.post_schema import ImageUploaded

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/images", tags=["images"])


@router.post("", response_model=ImageUploaded, status_code=201)
async def upload_image(image: Optional[UploadFile] = File(default=None), storage: LocalFileStorage = Depends(get_storage)):
    if image is None:
        raise HTTPException(status_code=400, detail={"error": "no_file"})
    try:
        stored = await run_in_threadpool(storage.save, image.file, image.filename)
    except FileStorageError as exc:
        raise HTTPException(status_code=500, detail={"error": "internal_error", "message": str(exc)})
    finally:
        await image.close()
    return ImageUploaded(path=stored.path, filename=stored.filename)
