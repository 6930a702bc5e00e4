"""Data models for claims, sessions and generated documents."""

from .claim import CLAIM_LABELS, ClaimType, calculate_total
from .document import AttachmentFile, GeneratedDocument
from .session import PaymentRecord, PaymentStatus, SubmissionStatus, WizardSession

__all__ = [
    'CLAIM_LABELS',
    'AttachmentFile',
    'ClaimType',
    'GeneratedDocument',
    'PaymentRecord',
    'PaymentStatus',
    'SubmissionStatus',
    'WizardSession',
    'calculate_total',
]
