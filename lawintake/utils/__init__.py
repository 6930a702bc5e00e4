"""Utility modules for configuration, logging, and error handling."""

from .config import Config
from .errors import (
    ConfigurationError,
    ErrorContext,
    ErrorType,
    IntakeError,
    SessionExpiredError,
    SessionNotFoundError,
    StorageError,
    SubmissionIncompleteError,
    TemplateNotFoundError,
    UpstreamServiceError,
    ValidationFailedError,
)

__all__ = [
    'Config',
    'ConfigurationError',
    'ErrorContext',
    'ErrorType',
    'IntakeError',
    'SessionExpiredError',
    'SessionNotFoundError',
    'StorageError',
    'SubmissionIncompleteError',
    'TemplateNotFoundError',
    'UpstreamServiceError',
    'ValidationFailedError',
]
