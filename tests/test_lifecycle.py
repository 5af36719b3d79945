"""Tests for the lifecycle engine (no storage involved)."""

from datetime import datetime, timedelta, timezone

import pytest

from paperboy.models.post import PostStatus
from paperboy.services.errors import InvalidInputError, InvalidTransitionError
from paperboy.services.lifecycle import LifecycleEngine

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
CLEARED = {"queued_at": None, "sent_at": None, "failed_at": None, "last_error": None}


@pytest.fixture
def engine() -> LifecycleEngine:
    return LifecycleEngine(clock=lambda: NOW)


@pytest.fixture
def strict_engine() -> LifecycleEngine:
    return LifecycleEngine(clock=lambda: NOW, strict=True)


def test_create_without_schedule_is_draft(engine) -> None:
    assert engine.initial_status(PostStatus.DRAFT, None) == PostStatus.DRAFT


def test_create_with_schedule_promotes_draft(engine) -> None:
    assert engine.initial_status(PostStatus.DRAFT, NOW + timedelta(hours=1)) == PostStatus.SCHEDULED


def test_create_explicitly_scheduled_without_time(engine) -> None:
    assert engine.initial_status(PostStatus.SCHEDULED, None) == PostStatus.SCHEDULED


@pytest.mark.parametrize("status", [PostStatus.QUEUED, PostStatus.SENT, PostStatus.FAILED, PostStatus.CANCELED])
def test_create_rejects_other_statuses(engine, status) -> None:
    with pytest.raises(InvalidTransitionError):
        engine.initial_status(status, None)


def test_direct_update_to_scheduled_clears_history(engine) -> None:
    changes = engine.direct_update(PostStatus.SENT, PostStatus.SCHEDULED)
    assert changes == {"status": PostStatus.SCHEDULED, **CLEARED}


def test_direct_update_to_canceled_keeps_timestamps(engine) -> None:
    assert engine.direct_update(PostStatus.QUEUED, PostStatus.CANCELED) == {"status": PostStatus.CANCELED}


def test_direct_update_promotes_draft_when_schedule_set(engine) -> None:
    assert engine.direct_update(PostStatus.DRAFT, None, schedule_set=True) == {"status": PostStatus.SCHEDULED}


def test_direct_update_without_status_leaves_non_draft_alone(engine) -> None:
    assert engine.direct_update(PostStatus.FAILED, None, schedule_set=True) == {}
    assert engine.direct_update(PostStatus.DRAFT, None, schedule_set=False) == {}


@pytest.mark.parametrize("status", [PostStatus.QUEUED, PostStatus.SENT, PostStatus.FAILED])
def test_direct_update_cannot_force_dispatch_statuses(engine, status) -> None:
    with pytest.raises(InvalidInputError):
        engine.direct_update(PostStatus.SCHEDULED, status)


@pytest.mark.parametrize(
    "status,field",
    [(PostStatus.QUEUED, "queued_at"), (PostStatus.SENT, "sent_at"), (PostStatus.FAILED, "failed_at")],
)
def test_provider_report_sets_matching_timestamp(engine, status, field) -> None:
    changes = engine.provider_report(PostStatus.QUEUED, status)
    assert changes["status"] == status
    assert changes[field] == NOW
    others = {"queued_at", "sent_at", "failed_at"} - {field}
    assert not others & set(changes)


def test_provider_report_failure_records_error_and_message_id(engine) -> None:
    changes = engine.provider_report(
        PostStatus.QUEUED, PostStatus.FAILED, last_error="timeout", provider_message_id="wamid.1"
    )
    assert changes["last_error"] == "timeout"
    assert changes["provider_message_id"] == "wamid.1"


def test_provider_report_ignores_error_text_on_success(engine) -> None:
    changes = engine.provider_report(PostStatus.QUEUED, PostStatus.SENT, last_error="ignored")
    assert "last_error" not in changes


@pytest.mark.parametrize("status", [PostStatus.DRAFT, PostStatus.SCHEDULED, PostStatus.CANCELED])
def test_provider_report_rejects_authoring_statuses(engine, status) -> None:
    with pytest.raises(InvalidTransitionError):
        engine.provider_report(PostStatus.QUEUED, status)


def test_provider_report_uses_supplied_instant(engine) -> None:
    later = NOW + timedelta(minutes=5)
    assert engine.provider_report(PostStatus.SCHEDULED, PostStatus.QUEUED, now=later)["queued_at"] == later


def test_retry_resets_to_scheduled(engine) -> None:
    assert engine.retry(PostStatus.FAILED) == {"status": PostStatus.SCHEDULED, **CLEARED}


def test_permissive_engine_allows_loose_edges(engine) -> None:
    assert engine.retry(PostStatus.SENT)["status"] == PostStatus.SCHEDULED
    assert engine.provider_report(PostStatus.DRAFT, PostStatus.SENT)["status"] == PostStatus.SENT
    assert engine.direct_update(PostStatus.SENT, PostStatus.CANCELED) == {"status": PostStatus.CANCELED}


def test_strict_engine_rejects_terminal_cancel(strict_engine) -> None:
    with pytest.raises(InvalidTransitionError):
        strict_engine.direct_update(PostStatus.SENT, PostStatus.CANCELED)


def test_strict_engine_rejects_retry_of_scheduled(strict_engine) -> None:
    with pytest.raises(InvalidTransitionError):
        strict_engine.retry(PostStatus.SCHEDULED)


def test_strict_engine_rejects_report_out_of_order(strict_engine) -> None:
    with pytest.raises(InvalidTransitionError):
        strict_engine.provider_report(PostStatus.SCHEDULED, PostStatus.SENT)


def test_strict_engine_follows_happy_path(strict_engine) -> None:
    assert strict_engine.direct_update(PostStatus.DRAFT, PostStatus.SCHEDULED)["status"] == PostStatus.SCHEDULED
    assert strict_engine.provider_report(PostStatus.SCHEDULED, PostStatus.QUEUED)["status"] == PostStatus.QUEUED
    assert strict_engine.provider_report(PostStatus.QUEUED, PostStatus.FAILED)["status"] == PostStatus.FAILED
    assert strict_engine.retry(PostStatus.FAILED)["status"] == PostStatus.SCHEDULED
    assert strict_engine.direct_update(PostStatus.CANCELED, PostStatus.SCHEDULED)["status"] == PostStatus.SCHEDULED


def test_naive_clock_is_read_as_utc() -> None:
    engine = LifecycleEngine(clock=lambda: datetime(2026, 3, 1, 12, 0))
    assert engine.now() == NOW


def test_claim_stamps_queued_at(engine) -> None:
    assert engine.claim() == {"status": PostStatus.QUEUED, "queued_at": NOW}
