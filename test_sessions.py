"""Tests for recovery sessions: ids, expiry, status updates and reminders."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeEmailService
from lawintake.models.session import PaymentStatus, SubmissionStatus, WizardSession
from lawintake.services.sessions import SessionService
from lawintake.utils.errors import SessionExpiredError, SessionNotFoundError

NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sessions(repository, config) -> SessionService:
    return SessionService(repository, config.sessions, "http://testserver/")


def _paid(sessions, email="a@example.com", paid_hours_ago=48, **changes) -> WizardSession:
    session = sessions.create(email, {"selectedClaims": ["property"]}, now=NOW - timedelta(days=3))
    sessions.update_payment_status(session.session_id, "paid", now=NOW - timedelta(hours=paid_hours_ago))
    stored = sessions.repository.get(session.session_id)
    for key, value in changes.items():
        setattr(stored, key, value)
    sessions.repository.save(stored)
    return stored


def test_session_id_format(sessions):
    session_id = sessions.generate_session_id(NOW)
    assert re.fullmatch(r"DW-2025-[A-Z0-9]{6}", session_id)


def test_create_sets_expiry_and_defaults(sessions, valid_basic_info):
    session = sessions.create("a@example.com", {"selectedClaims": ["property", "custody"],
                                               "basicInfo": valid_basic_info}, now=NOW)
    assert session.expires_at == NOW + timedelta(days=30)
    assert session.payment_status == PaymentStatus.PENDING
    assert session.submission_status == SubmissionStatus.PENDING
    assert session.wizard_data["totalAmount"] == 7800
    assert session.full_name == "ישראל ישראלי"
    assert sessions.recovery_url(session.session_id) == f"http://testserver/resume/{session.session_id}"


def test_get_unknown_session(sessions):
    with pytest.raises(SessionNotFoundError):
        sessions.get("DW-2025-NOPE00")


def test_expired_session_carries_the_record(sessions):
    session = sessions.create("a@example.com", {}, now=NOW - timedelta(days=31))
    with pytest.raises(SessionExpiredError) as info:
        sessions.get(session.session_id, now=NOW)
    assert info.value.session.session_id == session.session_id
    assert info.value.to_response()["session"]["sessionId"] == session.session_id


def test_session_valid_until_expiry(sessions):
    session = sessions.create("a@example.com", {}, now=NOW - timedelta(days=29))
    assert sessions.get(session.session_id, now=NOW).session_id == session.session_id


def test_payment_and_submission_updates(sessions):
    session = sessions.create("a@example.com", {}, now=NOW)
    paid = sessions.update_payment_status(session.session_id, "paid", "pi_123", now=NOW)
    assert paid.paid_at == NOW
    assert paid.payment_intent_id == "pi_123"

    submitted = sessions.update_submission_status(session.session_id, "submitted", "folder-1", now=NOW)
    assert submitted.submitted_at == NOW
    assert submitted.drive_submission_id == "folder-1"

    with pytest.raises(ValueError):
        sessions.update_payment_status(session.session_id, "maybe")


def test_update_wizard_data_merges(sessions):
    session = sessions.create("a@example.com", {"currentStep": 1, "selectedClaims": ["divorce"]}, now=NOW)
    updated = sessions.update_wizard_data(session.session_id, {"currentStep": 2})
    assert updated.wizard_data["currentStep"] == 2
    assert updated.wizard_data["selectedClaims"] == ["divorce"]


def test_reminder_eligibility(sessions):
    due = _paid(sessions, "due@example.com")
    _paid(sessions, "recent@example.com", paid_hours_ago=2)
    _paid(sessions, "maxed@example.com", reminders_sent=3)
    _paid(sessions, "reminded@example.com", last_reminder_at=NOW - timedelta(hours=1))
    _paid(sessions, "submitted@example.com", submission_status=SubmissionStatus.SUBMITTED)
    _paid(sessions, "expired@example.com", expires_at=NOW - timedelta(minutes=1))
    sessions.create("unpaid@example.com", {}, now=NOW - timedelta(days=3))

    eligible = sessions.list_sessions_needing_reminder(NOW)
    assert [session.session_id for session in eligible] == [due.session_id]


def test_reminders_ordered_by_payment(sessions):
    newer = _paid(sessions, "newer@example.com", paid_hours_ago=30)
    older = _paid(sessions, "older@example.com", paid_hours_ago=60)
    eligible = sessions.list_sessions_needing_reminder(NOW)
    assert [session.session_id for session in eligible] == [older.session_id, newer.session_id]


def test_send_reminders_updates_counters(sessions):
    session = _paid(sessions, "due@example.com", full_name="ישראל")
    email = FakeEmailService()

    result = sessions.send_reminders(email, now=NOW)
    assert result == {"sent": 1, "failed": 0, "errors": [], "total": 1}
    assert email.sent("reminder") == [(
        "reminder", "due@example.com", "ישראל", session.session_id,
        f"http://testserver/resume/{session.session_id}", 1,
    )]

    stored = sessions.repository.get(session.session_id)
    assert stored.reminders_sent == 1
    assert stored.last_reminder_at == NOW

    # not due again until the interval passes
    assert sessions.send_reminders(email, now=NOW + timedelta(hours=1))["total"] == 0
    assert sessions.send_reminders(email, now=NOW + timedelta(hours=25))["sent"] == 1


def test_failed_reminder_is_retried(sessions):
    session = _paid(sessions)
    result = sessions.send_reminders(FakeEmailService(result=False), now=NOW)
    assert result["sent"] == 0
    assert result["failed"] == 1
    assert result["errors"][0]["sessionId"] == session.session_id
    assert sessions.repository.get(session.session_id).reminders_sent == 0
    assert sessions.list_sessions_needing_reminder(NOW)


def test_delete_expired(sessions):
    sessions.create("old@example.com", {}, now=NOW - timedelta(days=40))
    fresh = sessions.create("new@example.com", {}, now=NOW)
    assert sessions.delete_expired(NOW) == 1
    assert [session.session_id for session in sessions.repository.list()] == [fresh.session_id]


def test_lookup_by_email_and_orphans(sessions):
    first = sessions.create("Same@example.com", {}, now=NOW - timedelta(days=2))
    second = sessions.create("same@example.com", {}, now=NOW - timedelta(days=1))
    assert [s.session_id for s in sessions.get_by_email("same@example.com")] == [second.session_id, first.session_id]

    sessions.update_payment_status(first.session_id, "paid", now=NOW)
    assert [s.session_id for s in sessions.list_orphaned()] == [first.session_id]


def test_session_document_round_trip(sessions):
    session = sessions.create("a@example.com", {"currentStep": 3}, now=NOW)
    restored = WizardSession.from_dict(session.to_dict())
    assert restored == session
