"""Application services: sessions, submission, email and blog."""

from .blog import BlogService, CATEGORY_SLUGS, SLUG_TO_CATEGORY, reading_time
from .email import EmailService
from .sessions import SessionService
from .submission import SubmissionService

__all__ = [
    'BlogService',
    'CATEGORY_SLUGS',
    'SLUG_TO_CATEGORY',
    'EmailService',
    'SessionService',
    'SubmissionService',
    'reading_time',
]
