# paperboy/routers/post_router.py
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException
import structlog

from paperboy.dependencies.db import get_post_service
from paperboy.schemas.post_schema import PostCreate, PostRead, PostUpdate, StatusReport
from paperboy.services.errors import (
    ClaimConflictError,
    InvalidInputError,
    PostError,
    PostNotFoundError,
)
from paperboy.services.post_service import PostService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/posts", tags=["posts"])


def _raise_http(exc: PostError) -> NoReturn:
    if isinstance(exc, InvalidInputError):
        raise HTTPException(status_code=400, detail={"error": exc.code, "message": str(exc)})
    if isinstance(exc, PostNotFoundError):
        raise HTTPException(status_code=404, detail={"error": exc.code})
    if isinstance(exc, ClaimConflictError):
        raise HTTPException(status_code=409, detail={"error": exc.code, "message": str(exc)})
    logger.error("post_request_failed", error=str(exc))
    raise HTTPException(status_code=500, detail={"error": "internal_error", "message": str(exc)})


@router.post("", response_model=PostRead, status_code=201)
async def create_post(payload: PostCreate, svc: PostService = Depends(get_post_service)):
    try:
        return await svc.create_post(payload)
    except PostError as exc:
        _raise_http(exc)


@router.get("", response_model=List[PostRead])
async def list_posts(status: Optional[str] = None, svc: PostService = Depends(get_post_service)):
    try:
        return await svc.list_posts(status)
    except PostError as exc:
        _raise_http(exc)


# declared before /{post_id} so "ready" is not read as an id
@router.get("/ready/list", response_model=List[PostRead])
async def list_ready_posts(svc: PostService = Depends(get_post_service)):
    try:
        return await svc.list_ready()
    except PostError as exc:
        _raise_http(exc)


@router.get("/{post_id}", response_model=PostRead)
async def get_post(post_id: str, svc: PostService = Depends(get_post_service)):
    try:
        return await svc.get_post(post_id)
    except PostError as exc:
        _raise_http(exc)


@router.put("/{post_id}", response_model=PostRead)
async def update_post(post_id: str, payload: PostUpdate, svc: PostService = Depends(get_post_service)):
    try:
        return await svc.update_post(post_id, payload)
    except PostError as exc:
        _raise_http(exc)


@router.put("/{post_id}/status", response_model=PostRead)
async def report_status(post_id: str, payload: StatusReport, svc: PostService = Depends(get_post_service)):
    """Outcome reported by the external delivery system."""
    try:
        return await svc.report_status(post_id, payload)
    except PostError as exc:
        _raise_http(exc)


@router.post("/{post_id}/retry", response_model=PostRead)
async def retry_post(post_id: str, svc: PostService = Depends(get_post_service)):
    try:
        return await svc.retry_post(post_id)
    except PostError as exc:
        _raise_http(exc)


@router.post("/{post_id}/claim", response_model=PostRead)
async def claim_post(post_id: str, svc: PostService = Depends(get_post_service)):
    """Move a SCHEDULED post to QUEUED for exactly one dispatcher."""
    try:
        return await svc.claim_post(post_id)
    except PostError as exc:
        _raise_http(exc)


@router.delete("/{post_id}", response_model=PostRead)
async def delete_post(post_id: str, svc: PostService = Depends(get_post_service)):
    try:
        return await svc.delete_post(post_id)
    except PostError as exc:
        _raise_http(exc)
