# paperboy/models/post.py
from sqlmodel import SQLModel, Field, Column
from typing import Optional, List
import uuid
from enum import Enum
from datetime import datetime, timezone
from sqlalchemy import DateTime, JSON, String, Enum as SAEnum
from sqlalchemy.types import TypeDecorator


class PostStatus(str, Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    QUEUED = "QUEUED"
    SENT = "SENT"
    FAILED = "FAILED"
    CANCELED = "CANCELED"


class UTCDateTime(TypeDecorator):
    """Stores naive UTC, always hands back aware UTC datetimes."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Post(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: Optional[str] = Field(default=None)
    text: str
    image_url: Optional[str] = Field(default=None)
    channels: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    timezone: str = Field(sa_column=Column(String, nullable=False))
    scheduled_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, index=True))
    status: PostStatus = Field(
        default=PostStatus.DRAFT,
        sa_column=Column(SAEnum(PostStatus, name="post_status", native_enum=False), index=True, nullable=False),
    )
    queued_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime))
    sent_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime))
    failed_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime))
    last_error: Optional[str] = Field(default=None)
    provider_message_id: Optional[str] = Field(default=None)
    is_deleted: bool = Field(default=False, index=True)
    created_at: datetime = Field(sa_column=Column(UTCDateTime, nullable=False))
    updated_at: datetime = Field(sa_column=Column(UTCDateTime, nullable=False))
