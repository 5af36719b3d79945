# paperboy/infrastructure/posts_repo.py
from typing import Any, Dict, List, Optional
import uuid
from datetime import datetime

import structlog
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select
from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError

from paperboy.models.post import Post, PostStatus
from paperboy.services.errors import PostStoreError

logger = structlog.get_logger(__name__)


def _parse_id(post_id) -> Optional[uuid.UUID]:
    if isinstance(post_id, uuid.UUID):
        return post_id
    try:
        return uuid.UUID(str(post_id))
    except ValueError:
        return None


def _ordering():
    return (Post.scheduled_at.asc().nulls_first(), Post.created_at.asc(), Post.id.asc())


class PostsRepository:
    """
    Repository for the Post entity.
    All methods are async and expect an AsyncSession to be injected from the outside.
    Deleted posts are invisible to every read and write here.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("post_store_commit_failed", error=str(exc))
            raise PostStoreError("storage failure") from exc

    async def _fetch(self, q) -> List[Post]:
        # rows already in the identity map may be stale after a Core UPDATE
        q = q.execution_options(populate_existing=True)
        try:
            res = await self.session.execute(q)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("post_store_query_failed", error=str(exc))
            raise PostStoreError("storage failure") from exc
        return list(res.scalars().all())

    async def create(self, post: Post) -> Post:
        """
        Persist a new Post and return refreshed instance.
        """
        self.session.add(post)
        await self._commit()
        await self.session.refresh(post)
        return post

    async def get_by_id(self, post_id) -> Optional[Post]:
        pid = _parse_id(post_id)
        if pid is None:
            return None
        rows = await self._fetch(select(Post).where(Post.id == pid, Post.is_deleted == False))  # noqa: E712
        return rows[0] if rows else None

    async def list(self, status: Optional[PostStatus] = None) -> List[Post]:
        q = select(Post).where(Post.is_deleted == False)  # noqa: E712
        if status is not None:
            q = q.where(Post.status == status)
        return await self._fetch(q.order_by(*_ordering()))

    async def list_ready(self, now: datetime) -> List[Post]:
        q = (
            select(Post)
            .where(
                Post.is_deleted == False,  # noqa: E712
                Post.status == PostStatus.SCHEDULED,
                or_(Post.scheduled_at.is_(None), Post.scheduled_at <= now),
            )
            .order_by(*_ordering())
        )
        return await self._fetch(q)

    async def apply(self, post: Post, changes: Dict[str, Any]) -> Post:
        """
        Write every change onto a post loaded through this session and commit
        them together; a failed commit leaves the stored row untouched.
        """
        for field, value in changes.items():
            setattr(post, field, value)
        self.session.add(post)
        await self._commit()
        await self.session.refresh(post)
        return post

    async def soft_delete(self, post_id, now: datetime) -> Optional[Post]:
        post = await self.get_by_id(post_id)
        if post is None:
            return None
        return await self.apply(post, {"is_deleted": True, "updated_at": now})

    async def claim(self, post_id, changes: Dict[str, Any]) -> bool:
        """
        Conditionally apply `changes` only while the post is still SCHEDULED.
        Returns False when another caller got there first.
        """
        pid = _parse_id(post_id)
        if pid is None:
            return False
        q = (
            update(Post)
            .where(Post.id == pid, Post.is_deleted == False, Post.status == PostStatus.SCHEDULED)  # noqa: E712
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        try:
            res = await self.session.execute(q)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("post_store_claim_failed", post_id=str(pid), error=str(exc))
            raise PostStoreError("storage failure") from exc
        await self._commit()
        return res.rowcount == 1
