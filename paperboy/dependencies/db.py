from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from paperboy.infrastructure.file_storage import LocalFileStorage
from paperboy.infrastructure.posts_repo import PostsRepository
from paperboy.services.post_service import PostService


async def get_session_dep(request: Request) -> AsyncGenerator:
    async with request.app.state.database.session() as session:
        yield session


def get_storage(request: Request) -> LocalFileStorage:
    return request.app.state.storage


def get_post_service(request: Request, session: AsyncSession = Depends(get_session_dep)) -> PostService:
    state = request.app.state
    return PostService(
        PostsRepository(session),
        lifecycle=state.lifecycle,
        storage=state.storage,
        timeout=state.store_timeout,
    )
