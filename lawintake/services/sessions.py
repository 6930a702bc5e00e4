"""Recovery sessions: save-and-resume links, payment tracking and reminders."""

import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from lawintake.models.claim import PRICE_PER_CLAIM, calculate_total
from lawintake.models.session import (
    PaymentStatus,
    SubmissionStatus,
    WizardSession,
    utcnow,
)
from lawintake.storage.session_repository import SessionRepository
from lawintake.utils.config import SessionConfig
from lawintake.utils.errors import SessionExpiredError, SessionNotFoundError
from lawintake.utils.logging import with_context

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_uppercase + string.digits
ID_ATTEMPTS = 5


class SessionService:
    """
    Lifecycle of wizard recovery sessions.

    A session expires `expiry_days` after creation; reading an expired
    session raises SessionExpiredError carrying the stale record.
    """

    def __init__(self, repository: SessionRepository, config: SessionConfig, base_url: str = "",
                 price_per_claim: int = PRICE_PER_CLAIM):
        self.repository = repository
        self.config = config
        self.base_url = base_url.rstrip("/")
        self.price_per_claim = price_per_claim

    def generate_session_id(self, now: Optional[datetime] = None) -> str:
        suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(6))
        return f"{self.config.id_prefix}-{(now or utcnow()).year}-{suffix}"

    def recovery_url(self, session_id: str) -> str:
        return f"{self.base_url}/resume/{session_id}"

    def create(
        self,
        email: str,
        wizard_data: Dict[str, Any],
        phone: Optional[str] = None,
        full_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> WizardSession:
        now = now or utcnow()
        wizard_data = dict(wizard_data or {})
        wizard_data.setdefault(
            "totalAmount", calculate_total(wizard_data.get("selectedClaims") or [], self.price_per_claim)
        )
        full_name = full_name or (wizard_data.get("basicInfo") or {}).get("fullName")

        for _ in range(ID_ATTEMPTS):
            session_id = self.generate_session_id(now)
            if self.repository.get(session_id) is None:
                break
        else:
            raise RuntimeError(f"Could not allocate a unique session id after {ID_ATTEMPTS} attempts")

        session = WizardSession(
            session_id=session_id,
            email=email,
            phone=phone,
            full_name=full_name,
            wizard_data=wizard_data,
            created_at=now,
            expires_at=now + timedelta(days=self.config.expiry_days),
        )
        self.repository.insert(session)
        logger.info(f"Created session {session_id} (expires {session.expires_at.date()})")
        return session

    def _load(self, session_id: str) -> WizardSession:
        session = self.repository.get(session_id)
        if session is None:
            raise SessionNotFoundError.for_id(session_id)
        return session

    def get(self, session_id: str, now: Optional[datetime] = None) -> WizardSession:
        """
        Raises:
            SessionNotFoundError: No such session
            SessionExpiredError: The session is past its expiry
        """
        session = self._load(session_id)
        if session.is_expired(now):
            logger.info(f"Session {session_id} expired at {session.expires_at.isoformat()}")
            raise SessionExpiredError.for_session(session)
        return session

    def update_payment_status(self, session_id: str, status: str,
                              payment_intent_id: Optional[str] = None,
                              now: Optional[datetime] = None) -> WizardSession:
        session = self._load(session_id)
        session.payment_status = PaymentStatus(status)
        if session.payment_status == PaymentStatus.PAID:
            session.paid_at = now or utcnow()
        if payment_intent_id:
            session.payment_intent_id = payment_intent_id
        self.repository.save(session)
        logger.info(f"Session {session_id} payment status -> {session.payment_status.value}")
        return session

    def update_submission_status(self, session_id: str, status: str,
                                 folder_id: Optional[str] = None,
                                 now: Optional[datetime] = None) -> WizardSession:
        session = self._load(session_id)
        session.submission_status = SubmissionStatus(status)
        if session.submission_status == SubmissionStatus.SUBMITTED:
            session.submitted_at = now or utcnow()
        if folder_id:
            session.drive_submission_id = folder_id
        self.repository.save(session)
        logger.info(f"Session {session_id} submission status -> {session.submission_status.value}")
        return session

    def update_wizard_data(self, session_id: str, data: Dict[str, Any]) -> WizardSession:
        """Shallow-merge new wizard fields over the stored snapshot."""
        session = self._load(session_id)
        session.wizard_data = {**session.wizard_data, **(data or {})}
        full_name = (session.wizard_data.get("basicInfo") or {}).get("fullName")
        if full_name:
            session.full_name = full_name
        self.repository.save(session)
        logger.debug(f"Session {session_id} wizard data updated ({len(data or {})} key(s))")
        return session

    # Reminders

    def list_sessions_needing_reminder(self, now: Optional[datetime] = None) -> List[WizardSession]:
        """
        Paid, unsubmitted, unexpired sessions whose payment and last reminder
        are both older than the reminder interval, oldest payment first.
        """
        now = now or utcnow()
        cutoff = now - timedelta(hours=self.config.reminder_interval_hours)
        eligible = [
            session
            for session in self.repository.list(PaymentStatus.PAID, SubmissionStatus.PENDING)
            if not session.is_expired(now)
            and session.paid_at is not None
            and session.paid_at < cutoff
            and session.reminders_sent < self.config.max_reminders
            and (session.last_reminder_at is None or session.last_reminder_at < cutoff)
        ]
        return sorted(eligible, key=lambda session: session.paid_at)

    @with_context(component="reminders")
    def send_reminders(self, email_service: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Send one reminder to every eligible session, sequentially.

        The counter and timestamp only move after a successful send, so a
        failed session is retried on the next run.
        """
        now = now or utcnow()
        sessions = self.list_sessions_needing_reminder(now)
        sent = 0
        errors: List[Dict[str, str]] = []

        for session in sessions:
            reminder_number = session.reminders_sent + 1
            delivered = email_service.send_recovery_reminder(
                session.email,
                session.full_name or "",
                session.session_id,
                self.recovery_url(session.session_id),
                reminder_number,
            )
            if not delivered:
                logger.warning(f"Reminder {reminder_number} to session {session.session_id} failed")
                errors.append({"sessionId": session.session_id, "error": "email send failed"})
                continue
            session.reminders_sent = reminder_number
            session.last_reminder_at = now
            self.repository.save(session)
            sent += 1

        logger.info(f"Reminder run: {sent} sent, {len(errors)} failed, {len(sessions)} eligible")
        return {"sent": sent, "failed": len(errors), "errors": errors, "total": len(sessions)}

    # Maintenance

    def delete_expired(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        expired = [session for session in self.repository.list() if session.is_expired(now)]
        for session in expired:
            self.repository.delete(session.session_id)
        if expired:
            logger.info(f"Deleted {len(expired)} expired session(s)")
        return len(expired)

    def get_by_email(self, email: str) -> List[WizardSession]:
        sessions = self.repository.list(email=email)
        return sorted(sessions, key=lambda session: session.created_at, reverse=True)

    def list_orphaned(self) -> List[WizardSession]:
        """Paid sessions that were never submitted, newest first."""
        sessions = self.repository.list(PaymentStatus.PAID, SubmissionStatus.PENDING)
        return sorted(sessions, key=lambda session: session.created_at, reverse=True)
