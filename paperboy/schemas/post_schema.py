# paperboy/schemas/post_schema.py
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional
import uuid
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from paperboy.config import DEFAULT_TIMEZONE
from paperboy.models.post import PostStatus
from paperboy.services.lifecycle import CREATE_STATUSES, DIRECT_STATUSES, REPORT_STATUSES


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_timezone(value: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown timezone {value!r}")
    return value


def _normalize_channels(value: List[str]) -> List[str]:
    seen = []
    for channel in value:
        if not channel:
            raise ValueError("channel names must not be empty")
        if channel not in seen:
            seen.append(channel)
    return seen


def _check_status(value: Optional[PostStatus], allowed, path: str) -> Optional[PostStatus]:
    if value is not None and value not in allowed:
        names = ", ".join(sorted(s.value for s in allowed))
        raise ValueError(f"{path} accepts only {names}")
    return value


class PostCreate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    text: str = Field(min_length=1)
    image_url: Optional[str] = Field(default=None, min_length=1)
    scheduled_at: Optional[datetime] = None
    timezone: str = Field(default_factory=lambda: DEFAULT_TIMEZONE)
    status: PostStatus = PostStatus.DRAFT
    channels: Optional[List[str]] = Field(default=None, min_length=1)

    @field_validator("scheduled_at")
    @classmethod
    def schedule_in_utc(cls, v):
        return _to_utc(v)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v):
        return _check_timezone(v)

    @field_validator("channels")
    @classmethod
    def unique_channels(cls, v):
        return None if v is None else _normalize_channels(v)

    @field_validator("status")
    @classmethod
    def allowed_status(cls, v):
        return _check_status(v, CREATE_STATUSES, "create")


class PostUpdate(BaseModel):
    """
    Partial update. Omitted fields stay as they are; an explicit null
    clears title, image_url or scheduled_at and is rejected elsewhere.
    """

    title: Optional[str] = Field(default=None, min_length=1)
    text: Optional[str] = Field(default=None, min_length=1)
    image_url: Optional[str] = Field(default=None, min_length=1)
    scheduled_at: Optional[datetime] = None
    timezone: Optional[str] = None
    status: Optional[PostStatus] = None
    channels: Optional[List[str]] = Field(default=None, min_length=1)

    @field_validator("scheduled_at")
    @classmethod
    def schedule_in_utc(cls, v):
        return _to_utc(v)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v):
        return None if v is None else _check_timezone(v)

    @field_validator("channels")
    @classmethod
    def unique_channels(cls, v):
        return None if v is None else _normalize_channels(v)

    @field_validator("status")
    @classmethod
    def allowed_status(cls, v):
        return _check_status(v, DIRECT_STATUSES, "update")

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for name in ("text", "timezone", "channels", "status"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class StatusReport(BaseModel):
    status: PostStatus
    provider_message_id: Optional[str] = None
    last_error: Optional[str] = None

    @field_validator("status")
    @classmethod
    def allowed_status(cls, v):
        return _check_status(v, REPORT_STATUSES, "status report")


class PostRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: Optional[str]
    text: str
    image_url: Optional[str]
    channels: List[str]
    timezone: str
    scheduled_at: Optional[datetime]
    status: PostStatus
    queued_at: Optional[datetime]
    sent_at: Optional[datetime]
    failed_at: Optional[datetime]
    last_error: Optional[str]
    provider_message_id: Optional[str]
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


class ImageUploaded(BaseModel):
    path: str
    filename: str
