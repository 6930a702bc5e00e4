"""Error handling utilities for the divorce intake system."""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum

# Client-facing messages; provider detail stays in details["reason"] and the logs
UPSTREAM_FAILED_MESSAGE = "שירות חיצוני אינו זמין כרגע, נא לנסות שוב מאוחר יותר"
DOCUMENT_FAILED_MESSAGE = "יצירת המסמך נכשלה, נא לנסות שוב"
ATTACHMENT_FAILED_MESSAGE = "המרת הקובץ המצורף נכשלה"


class ErrorType(Enum):
    """Enumeration of error types in the intake system."""

    # Validation Errors
    VALIDATION_FAILED = "VALIDATION_FAILED"
    MISSING_FIELDS = "MISSING_FIELDS"

    # Lookup Errors
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"

    # Configuration Errors
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"
    SCHEMA_INVALID = "SCHEMA_INVALID"

    # Upstream Service Errors
    CMS_REQUEST_FAILED = "CMS_REQUEST_FAILED"
    STORAGE_UPLOAD_FAILED = "STORAGE_UPLOAD_FAILED"
    STORAGE_REQUEST_FAILED = "STORAGE_REQUEST_FAILED"
    SUBMISSION_INCOMPLETE = "SUBMISSION_INCOMPLETE"
    EMAIL_SEND_FAILED = "EMAIL_SEND_FAILED"
    TEXT_GENERATION_FAILED = "TEXT_GENERATION_FAILED"

    # Document Errors
    TEMPLATE_FILL_FAILED = "TEMPLATE_FILL_FAILED"
    DOCUMENT_BUILD_FAILED = "DOCUMENT_BUILD_FAILED"
    ATTACHMENT_CONVERSION_FAILED = "ATTACHMENT_CONVERSION_FAILED"

    # General Errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class ErrorContext:
    """
    Context information for errors in the intake system.

    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message (shown to the client)
        details: Optional additional error details; a "reason" entry holds
            technical text for the logs and is never sent to the client
        recoverable: Whether the user can recover by correcting input or retrying
        fallback_action: Optional description of fallback action taken
        original_exception: Optional original exception that caused this error
    """

    error_type: ErrorType
    message: str
    recoverable: bool
    fallback_action: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error context to dictionary for logging/serialization."""
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "fallback_action": self.fallback_action,
            "details": self.details or {},
            "original_exception": str(self.original_exception) if self.original_exception else None
        }


class IntakeError(Exception):
    """
    Base exception for all intake errors.

    Each subclass carries the HTTP status the API boundary translates it to.

    Attributes:
        context: ErrorContext with detailed error information
        status_code: HTTP status code for the API response
    """

    status_code = 500

    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)

    def __str__(self) -> str:
        base = f"{self.context.error_type.value}: {self.context.message}"
        reason = (self.context.details or {}).get("reason")
        if reason:
            base += f" [{reason}]"
        if self.context.fallback_action:
            base += f" (Fallback: {self.context.fallback_action})"
        return base

    def to_dict(self) -> Dict[str, Any]:
        return self.context.to_dict()

    def to_response(self) -> Dict[str, Any]:
        """Client-facing payload; never includes the original exception."""
        return {
            "success": False,
            "error": self.context.message,
            "errorType": self.context.error_type.value,
        }


class ValidationFailedError(IntakeError):
    """Field-level validation failure carrying a field -> message map."""

    status_code = 400

    @classmethod
    def from_errors(cls, errors: Dict[str, str], message: str = "הנתונים שנשלחו אינם תקינים") -> "ValidationFailedError":
        context = ErrorContext(
            error_type=ErrorType.VALIDATION_FAILED,
            message=message,
            recoverable=True,
            details={"errors": dict(errors)},
        )
        return cls(context)

    @classmethod
    def missing_fields(cls, fields, message: str = "חסרים שדות חובה") -> "ValidationFailedError":
        context = ErrorContext(
            error_type=ErrorType.MISSING_FIELDS,
            message=message,
            recoverable=True,
            details={"errors": {name: "שדה חובה" for name in fields}},
        )
        return cls(context)

    @property
    def errors(self) -> Dict[str, str]:
        return (self.context.details or {}).get("errors", {})

    def to_response(self) -> Dict[str, Any]:
        payload = super().to_response()
        payload["errors"] = self.errors
        return payload


class SessionNotFoundError(IntakeError):
    """Exception for unknown session identifiers."""

    status_code = 404

    @classmethod
    def for_id(cls, session_id: str) -> "SessionNotFoundError":
        context = ErrorContext(
            error_type=ErrorType.SESSION_NOT_FOUND,
            message="Session not found",
            recoverable=False,
            details={"session_id": session_id},
        )
        return cls(context)


class SessionExpiredError(IntakeError):
    """
    Exception for sessions past their expiry.

    The stale session is kept on the error so the API can still return it.
    """

    status_code = 410

    def __init__(self, context: ErrorContext, session: Any = None):
        super().__init__(context)
        self.session = session

    @classmethod
    def for_session(cls, session: Any) -> "SessionExpiredError":
        context = ErrorContext(
            error_type=ErrorType.SESSION_EXPIRED,
            message="Session expired",
            recoverable=False,
            fallback_action="Start a new wizard session",
            details={"session_id": session.session_id},
        )
        return cls(context, session=session)

    def to_response(self) -> Dict[str, Any]:
        payload = super().to_response()
        if self.session is not None:
            payload["session"] = self.session.to_dict()
        return payload


class TemplateNotFoundError(IntakeError):
    """Exception for claim types with no document template."""

    status_code = 404

    @classmethod
    def for_claim(cls, claim_type: str) -> "TemplateNotFoundError":
        context = ErrorContext(
            error_type=ErrorType.TEMPLATE_NOT_FOUND,
            message=f"Template not found for claim type: {claim_type}",
            recoverable=False,
            details={"claim_type": claim_type},
        )
        return cls(context)


class ConfigurationError(IntakeError):
    """Exception for missing or invalid operator configuration."""

    status_code = 500

    @classmethod
    def missing(cls, setting: str, message: Optional[str] = None) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_MISSING,
            message=message or f"Missing configuration: {setting}",
            recoverable=False,
            details={"setting": setting},
        )
        return cls(context)

    @classmethod
    def invalid(cls, setting: str, value: Any, allowed) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_INVALID,
            message=f"Invalid value for {setting}: {value!r} (expected one of: {', '.join(allowed)})",
            recoverable=False,
            details={"setting": setting, "value": value},
        )
        return cls(context)


class SchemaError(IntakeError):
    """Exception for malformed question schemas (duplicate names, unknown shared keys)."""

    status_code = 500

    @classmethod
    def invalid(cls, claim_type: str, message: str) -> "SchemaError":
        context = ErrorContext(
            error_type=ErrorType.SCHEMA_INVALID,
            message=f"Invalid question schema for '{claim_type}': {message}",
            recoverable=False,
            details={"claim_type": claim_type},
        )
        return cls(context)


class TemplateFillError(IntakeError):
    """Exception raised when a template is filled strictly and tokens are missing."""

    status_code = 500

    @classmethod
    def missing_tokens(cls, tokens) -> "TemplateFillError":
        tokens = sorted(tokens)
        context = ErrorContext(
            error_type=ErrorType.TEMPLATE_FILL_FAILED,
            message=f"Template has unmatched tokens: {', '.join(tokens)}",
            recoverable=False,
            details={"missing_tokens": tokens},
        )
        return cls(context)


class DocumentBuildError(IntakeError):
    """Exception for failures while assembling a document."""

    status_code = 500

    @classmethod
    def build_failed(cls, claim_type: str, error: Exception) -> "DocumentBuildError":
        context = ErrorContext(
            error_type=ErrorType.DOCUMENT_BUILD_FAILED,
            message=DOCUMENT_FAILED_MESSAGE,
            recoverable=False,
            details={"claim_type": claim_type, "reason": f"Failed to build document for '{claim_type}': {error}"},
            original_exception=error,
        )
        return cls(context)

    @classmethod
    def attachment_failed(cls, filename: str, error: Exception) -> "DocumentBuildError":
        context = ErrorContext(
            error_type=ErrorType.ATTACHMENT_CONVERSION_FAILED,
            message=ATTACHMENT_FAILED_MESSAGE,
            recoverable=True,
            fallback_action="Attachment skipped",
            details={"filename": filename, "reason": f"Failed to convert attachment '{filename}': {error}"},
            original_exception=error,
        )
        return cls(context)


class UpstreamServiceError(IntakeError):
    """Exception for failures of external services (CMS, storage, email, text generation)."""

    status_code = 500

    @classmethod
    def request_failed(
        cls,
        service: str,
        operation: str,
        error: Exception,
        error_type: ErrorType = ErrorType.UNKNOWN_ERROR,
        recoverable: bool = True,
    ) -> "UpstreamServiceError":
        context = ErrorContext(
            error_type=error_type,
            message=UPSTREAM_FAILED_MESSAGE,
            recoverable=recoverable,
            fallback_action="Retry later",
            details={
                "service": service,
                "operation": operation,
                "reason": f"{service} error during {operation}: {error}",
            },
            original_exception=error,
        )
        return cls(context)

    @classmethod
    def email_failed(cls, operation: str, message: str = "שליחת ההודעה נכשלה, נא לנסות שוב מאוחר יותר") -> "UpstreamServiceError":
        context = ErrorContext(
            error_type=ErrorType.EMAIL_SEND_FAILED,
            message=message,
            recoverable=True,
            fallback_action="Retry later",
            details={"service": "email", "operation": operation},
        )
        return cls(context)

    @classmethod
    def from_client_error(
        cls,
        error: Exception,
        operation: str,
        error_type: ErrorType = ErrorType.STORAGE_REQUEST_FAILED,
        recoverable: bool = True,
    ) -> "UpstreamServiceError":
        """
        Create an error from a botocore ClientError.

        Args:
            error: Original botocore ClientError
            operation: Description of operation that failed
            error_type: ErrorType to report
            recoverable: Whether error is recoverable

        Returns:
            Error instance of the calling class
        """
        error_code = "Unknown"
        error_message = str(error)

        if hasattr(error, "response"):
            error_info = error.response.get("Error", {})
            error_code = error_info.get("Code", "Unknown")
            error_message = error_info.get("Message", str(error))

        context = ErrorContext(
            error_type=error_type,
            message=UPSTREAM_FAILED_MESSAGE,
            recoverable=recoverable,
            fallback_action="Retry later",
            details={
                "error_code": error_code,
                "operation": operation,
                "reason": f"AWS error during {operation}: {error_message}",
            },
            original_exception=error,
        )
        return cls(context)


class StorageError(UpstreamServiceError):
    """Exception for cloud storage failures."""

    status_code = 502


class SubmissionIncompleteError(StorageError):
    """
    Raised when some submission uploads failed.

    Carries the partial result (folder, uploaded documents, failures) so the
    client can tell which items need to be resent.
    """

    def __init__(self, context: ErrorContext, result: Optional[Dict[str, Any]] = None):
        super().__init__(context)
        self.result = result or {}

    @classmethod
    def from_failures(cls, failures, result: Dict[str, Any]) -> "SubmissionIncompleteError":
        context = ErrorContext(
            error_type=ErrorType.SUBMISSION_INCOMPLETE,
            message="חלק מהמסמכים לא נשמרו, נא לנסות שוב",
            recoverable=True,
            fallback_action="Resubmit the failed items",
            details={"failures": list(failures)},
        )
        return cls(context, result=result)

    @property
    def failures(self):
        return (self.context.details or {}).get("failures", [])

    def to_response(self) -> Dict[str, Any]:
        payload = super().to_response()
        payload.update({key: value for key, value in self.result.items() if key != "success"})
        payload["failures"] = self.failures
        return payload


def handle_secondary_failure(error: Exception, operation: str, logger) -> None:
    """
    Log a failure of a non-critical side effect (auto-reply, reminder, mirror).

    The primary operation continues; nothing is raised.
    """
    if isinstance(error, IntakeError):
        logger.warning(f"Non-critical {operation} failed: {error}")
    else:
        logger.warning(f"Non-critical {operation} failed: {error!r}")
