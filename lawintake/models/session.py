"""Recovery session and payment data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp (with or without trailing Z) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class PaymentRecord:
    """
    Simulated payment outcome.

    Attributes:
        paid: Whether the payment went through
        date: When it was recorded
        amount: Charged amount in shekels
        reference: Simulated transaction reference
    """
    paid: bool = False
    date: Optional[datetime] = None
    amount: int = 0
    reference: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paid": self.paid,
            "date": to_iso(self.date),
            "amount": self.amount,
            "reference": self.reference,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PaymentRecord":
        data = data or {}
        return cls(
            paid=bool(data.get("paid", False)),
            date=parse_datetime(data.get("date")),
            amount=int(data.get("amount") or 0),
            reference=data.get("reference"),
        )


@dataclass
class WizardSession:
    """
    Persisted, resumable snapshot of an in-progress wizard.

    Attributes:
        session_id: Generated identifier, e.g. DW-2025-K3J9QZ
        email: Contact email the recovery link is sent to
        wizard_data: currentStep, selectedClaims, basicInfo, formData, totalAmount
        payment_status: pending | paid | failed | refunded
        submission_status: pending | submitted | failed
        drive_submission_id: Storage folder of the completed submission
        reminders_sent: Number of recovery reminders delivered
        last_reminder_at: When the last reminder went out
        expires_at: After this moment the session is served as expired
    """
    session_id: str
    email: str
    expires_at: datetime
    phone: Optional[str] = None
    full_name: Optional[str] = None
    wizard_data: Dict[str, Any] = field(default_factory=dict)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    submission_status: SubmissionStatus = SubmissionStatus.PENDING
    drive_submission_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    paid_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    reminders_sent: int = 0
    last_reminder_at: Optional[datetime] = None
    notes: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "email": self.email,
            "phone": self.phone,
            "fullName": self.full_name,
            "wizardData": self.wizard_data,
            "paymentStatus": self.payment_status.value,
            "submissionStatus": self.submission_status.value,
            "driveSubmissionId": self.drive_submission_id,
            "paymentIntentId": self.payment_intent_id,
            "createdAt": to_iso(self.created_at),
            "paidAt": to_iso(self.paid_at),
            "submittedAt": to_iso(self.submitted_at),
            "remindersSent": self.reminders_sent,
            "lastReminderAt": to_iso(self.last_reminder_at),
            "expiresAt": to_iso(self.expires_at),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WizardSession":
        return cls(
            session_id=data["sessionId"],
            email=data.get("email", ""),
            phone=data.get("phone"),
            full_name=data.get("fullName"),
            wizard_data=data.get("wizardData") or {},
            payment_status=PaymentStatus(data.get("paymentStatus") or "pending"),
            submission_status=SubmissionStatus(data.get("submissionStatus") or "pending"),
            drive_submission_id=data.get("driveSubmissionId"),
            payment_intent_id=data.get("paymentIntentId"),
            created_at=parse_datetime(data.get("createdAt")) or utcnow(),
            paid_at=parse_datetime(data.get("paidAt")),
            submitted_at=parse_datetime(data.get("submittedAt")),
            reminders_sent=int(data.get("remindersSent") or 0),
            last_reminder_at=parse_datetime(data.get("lastReminderAt")),
            expires_at=parse_datetime(data["expiresAt"]),
            notes=data.get("notes"),
        )
