# paperboy/services/post_service.py
import asyncio
from typing import List, Optional

import structlog

from paperboy.config import DEFAULT_CHANNEL, STORE_TIMEOUT_SECONDS
from paperboy.infrastructure.file_storage import LocalFileStorage
from paperboy.infrastructure.posts_repo import PostsRepository
from paperboy.models.post import Post, PostStatus
from paperboy.schemas.post_schema import PostCreate, PostUpdate, StatusReport
from .asset_cleanup import cleanup_post_image
from .errors import ClaimConflictError, InvalidFilterError, PostNotFoundError, PostStoreError
from .lifecycle import LifecycleEngine

logger = structlog.get_logger(__name__)


class PostService:
    def __init__(
        self,
        repo: PostsRepository,
        lifecycle: Optional[LifecycleEngine] = None,
        storage: Optional[LocalFileStorage] = None,
        timeout: float = STORE_TIMEOUT_SECONDS,
        default_channel: str = DEFAULT_CHANNEL,
    ):
        self.repo = repo
        self.lifecycle = lifecycle or LifecycleEngine()
        self.storage = storage
        self.timeout = timeout
        self.default_channel = default_channel

    async def _run(self, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.error("post_store_timeout", timeout=self.timeout)
            raise PostStoreError("storage operation timed out") from exc

    async def _require(self, post_id) -> Post:
        post = await self._run(self.repo.get_by_id(post_id))
        if post is None:
            raise PostNotFoundError(f"post {post_id} not found")
        return post

    async def create_post(self, payload: PostCreate) -> Post:
        now = self.lifecycle.now()
        status = self.lifecycle.initial_status(payload.status, payload.scheduled_at)
        post = Post(
            title=payload.title,
            text=payload.text,
            image_url=payload.image_url,
            channels=list(payload.channels or [self.default_channel]),
            timezone=payload.timezone,
            scheduled_at=payload.scheduled_at,
            status=status,
            created_at=now,
            updated_at=now,
        )
        created = await self._run(self.repo.create(post))
        logger.info("post_created", post_id=str(created.id), status=created.status.value)
        return created

    async def get_post(self, post_id) -> Post:
        return await self._require(post_id)

    async def list_posts(self, status: Optional[str] = None) -> List[Post]:
        wanted = None
        if status:
            try:
                wanted = PostStatus(status)
            except ValueError:
                raise InvalidFilterError(f"unknown status {status!r}")
        return await self._run(self.repo.list(wanted))

    async def list_ready(self) -> List[Post]:
        return await self._run(self.repo.list_ready(self.lifecycle.now()))

    async def update_post(self, post_id, payload: PostUpdate) -> Post:
        changes = payload.changes()
        requested = changes.pop("status", None)
        post = await self._require(post_id)

        schedule_set = changes.get("scheduled_at") is not None
        changes.update(self.lifecycle.direct_update(post.status, requested, schedule_set))
        changes["updated_at"] = self.lifecycle.now()

        updated = await self._run(self.repo.apply(post, changes))
        logger.info("post_updated", post_id=str(updated.id), fields=sorted(changes), status=updated.status.value)
        return updated

    async def report_status(self, post_id, report: StatusReport) -> Post:
        post = await self._require(post_id)
        now = self.lifecycle.now()
        changes = self.lifecycle.provider_report(
            post.status,
            report.status,
            last_error=report.last_error,
            provider_message_id=report.provider_message_id,
            now=now,
        )
        changes["updated_at"] = now
        updated = await self._run(self.repo.apply(post, changes))
        logger.info("post_status_reported", post_id=str(updated.id), status=updated.status.value)
        return updated

    async def retry_post(self, post_id) -> Post:
        post = await self._require(post_id)
        changes = self.lifecycle.retry(post.status)
        changes["updated_at"] = self.lifecycle.now()
        updated = await self._run(self.repo.apply(post, changes))
        logger.info("post_retried", post_id=str(updated.id))
        return updated

    async def claim_post(self, post_id) -> Post:
        now = self.lifecycle.now()
        changes = self.lifecycle.claim(now)
        changes["updated_at"] = now
        claimed = await self._run(self.repo.claim(post_id, changes))
        post = await self._require(post_id)
        if not claimed:
            logger.info("post_claim_conflict", post_id=str(post.id), status=post.status.value)
            raise ClaimConflictError(f"post {post_id} is {post.status.value}, not SCHEDULED")
        logger.info("post_claimed", post_id=str(post.id))
        return post

    async def delete_post(self, post_id) -> Post:
        deleted = await self._run(self.repo.soft_delete(post_id, self.lifecycle.now()))
        if deleted is None:
            raise PostNotFoundError(f"post {post_id} not found")
        logger.info("post_soft_deleted", post_id=str(deleted.id))
        cleanup_post_image(self.storage, deleted)
        return deleted
