# paperboy/services/lifecycle.py
"""
Post lifecycle decisions.

The engine never touches storage: every method takes the current status
(plus whatever else the decision needs) and returns the dict of field
changes to apply. Timestamps come from the injected clock so a single
logical operation reads "now" exactly once.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import structlog

from paperboy.models.post import PostStatus
from .errors import InvalidTransitionError

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

CREATE_STATUSES = frozenset({PostStatus.DRAFT, PostStatus.SCHEDULED})
DIRECT_STATUSES = frozenset({PostStatus.DRAFT, PostStatus.SCHEDULED, PostStatus.CANCELED})
REPORT_STATUSES = frozenset({PostStatus.QUEUED, PostStatus.SENT, PostStatus.FAILED})

# whitelist used only in strict mode
ALLOWED_TRANSITIONS = {
    PostStatus.DRAFT: {PostStatus.DRAFT, PostStatus.SCHEDULED, PostStatus.CANCELED},
    PostStatus.SCHEDULED: {PostStatus.DRAFT, PostStatus.SCHEDULED, PostStatus.QUEUED, PostStatus.CANCELED},
    PostStatus.QUEUED: {PostStatus.SCHEDULED, PostStatus.SENT, PostStatus.FAILED, PostStatus.CANCELED},
    PostStatus.FAILED: {PostStatus.SCHEDULED, PostStatus.CANCELED},
    PostStatus.SENT: {PostStatus.SCHEDULED},
    PostStatus.CANCELED: {PostStatus.SCHEDULED},
}

REPORT_TIMESTAMPS = {
    PostStatus.QUEUED: "queued_at",
    PostStatus.SENT: "sent_at",
    PostStatus.FAILED: "failed_at",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def reset_fields() -> Dict[str, Any]:
    return {"queued_at": None, "sent_at": None, "failed_at": None, "last_error": None}


class LifecycleEngine:
    def __init__(self, clock: Optional[Clock] = None, strict: bool = False):
        self.clock = clock or utc_now
        self.strict = strict

    def now(self) -> datetime:
        current = self.clock()
        if current.tzinfo is None:
            return current.replace(tzinfo=timezone.utc)
        return current.astimezone(timezone.utc)

    def _check_edge(self, current: PostStatus, target: PostStatus) -> None:
        if not self.strict:
            return
        if target not in ALLOWED_TRANSITIONS[current]:
            logger.info("transition_rejected", current=current.value, target=target.value)
            raise InvalidTransitionError(f"cannot move post from {current.value} to {target.value}")

    def initial_status(self, requested: PostStatus, scheduled_at: Optional[datetime]) -> PostStatus:
        requested = PostStatus(requested)
        if requested not in CREATE_STATUSES:
            raise InvalidTransitionError(f"posts cannot be created as {requested.value}")
        if requested == PostStatus.DRAFT and scheduled_at is not None:
            return PostStatus.SCHEDULED
        return requested

    def direct_update(self, current: PostStatus, requested: Optional[PostStatus], schedule_set: bool = False) -> Dict[str, Any]:
        """
        Status changes for an authoring-client update.

        `schedule_set` tells whether the same update assigns a non-null
        `scheduled_at`; a draft with no explicit status is then promoted.
        """
        current = PostStatus(current)
        if requested is None:
            if current == PostStatus.DRAFT and schedule_set:
                return {"status": PostStatus.SCHEDULED}
            return {}

        requested = PostStatus(requested)
        if requested not in DIRECT_STATUSES:
            raise InvalidTransitionError(f"status {requested.value} cannot be set directly")
        self._check_edge(current, requested)

        changes: Dict[str, Any] = {"status": requested}
        if requested == PostStatus.SCHEDULED:
            changes.update(reset_fields())
        return changes

    def provider_report(
        self,
        current: PostStatus,
        reported: PostStatus,
        last_error: Optional[str] = None,
        provider_message_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        current = PostStatus(current)
        reported = PostStatus(reported)
        if reported not in REPORT_STATUSES:
            raise InvalidTransitionError(f"status {reported.value} cannot be reported by a provider")
        self._check_edge(current, reported)

        changes: Dict[str, Any] = {"status": reported, REPORT_TIMESTAMPS[reported]: now or self.now()}
        if provider_message_id is not None:
            changes["provider_message_id"] = provider_message_id
        if reported == PostStatus.FAILED and last_error:
            changes["last_error"] = last_error
        return changes

    def retry(self, current: PostStatus) -> Dict[str, Any]:
        current = PostStatus(current)
        if self.strict and current != PostStatus.FAILED:
            raise InvalidTransitionError(f"only FAILED posts can be retried, post is {current.value}")
        changes: Dict[str, Any] = {"status": PostStatus.SCHEDULED}
        changes.update(reset_fields())
        return changes

    def claim(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        # the SCHEDULED precondition is checked by the store in the same statement
        return {"status": PostStatus.QUEUED, "queued_at": now or self.now()}
