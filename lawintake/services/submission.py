"""Submission pipeline: validate, generate every claim document and file it in storage."""

import json
import logging
from datetime import datetime
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Tuple

from lawintake.documents.attachments import decode_attachments, decode_base64
from lawintake.documents.service import DocumentGenerationService
from lawintake.models.claim import CLAIM_FOLDER_NAMES, ClaimType, claim_label, parse_claims
from lawintake.models.document import AttachmentFile
from lawintake.models.session import SubmissionStatus
from lawintake.services.email import EmailService
from lawintake.services.sessions import SessionService
from lawintake.storage.cloud_storage import CloudStorage, StoredFolder
from lawintake.utils.config import Config
from lawintake.utils.errors import (
    DocumentBuildError,
    IntakeError,
    SubmissionIncompleteError,
    UpstreamServiceError,
    ValidationFailedError,
    handle_secondary_failure,
)
from lawintake.utils.logging import log_context, set_context, with_context
from lawintake.validation.steps import ValidationResult, validate_claims, validate_step

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "הטופס נשלח בהצלחה!"
ATTACHMENTS_FOLDER = "attachments"
JSON_MIME = "application/json"
INVALID_VALUE = "ערך לא תקין"

# Failures of these are per-item; anything else aborts the submission
ITEM_ERRORS = (UpstreamServiceError, DocumentBuildError)


class SubmissionService:
    """
    Files a completed wizard in cloud storage.

    Layout under the storage root:

        {fullName} תביעות {dd.mm.yyyy}/
            submission-data-{yyyy-mm-dd}.json
            {claim folder}/{claim file}.docx
            attachments/{name}

    With `submission.fail_fast` off (the default) every item is attempted
    and failures are collected; otherwise the first failed item aborts.
    """

    # Lawyer signature images by storage key, shared across instances
    _signature_cache: ClassVar[Dict[str, bytes]] = {}

    def __init__(
        self,
        config: Config,
        storage: CloudStorage,
        documents: DocumentGenerationService,
        email_service: Optional[EmailService] = None,
        session_service: Optional[SessionService] = None,
    ):
        self.config = config
        self.storage = storage
        self.documents = documents
        self.email_service = email_service
        self.session_service = session_service
        self.fail_fast = config.submission.fail_fast

    # Validation

    def validate(self, payload: Mapping[str, Any]) -> List[ClaimType]:
        """
        Check basic info, claim selection, each claim's answers and the signature.

        Raises:
            ValidationFailedError: With every failing field, prefixed by its section
        """
        result = ValidationResult(valid=True)
        result = result.merge(validate_step("basicInfo", payload.get("basicInfo")), prefix="basicInfo")

        claims, selection_error = self._parse_selection(payload.get("selectedClaims"))
        if selection_error:
            result = result.merge(ValidationResult(False, errors={"selectedClaims": selection_error}))
        else:
            result = result.merge(validate_claims([claim.value for claim in claims], payload.get("formData")))

        result = result.merge(validate_step("signature", {"signature": payload.get("signature")}))

        if not result.valid:
            logger.info(f"Submission rejected: {len(result.errors)} invalid field(s)")
            raise ValidationFailedError.from_errors(result.errors)
        return claims

    @staticmethod
    def _parse_selection(selected: Any) -> Tuple[List[ClaimType], Optional[str]]:
        if selected is None:
            selected = []
        if not isinstance(selected, list):
            return [], INVALID_VALUE
        try:
            claims = parse_claims(selected)
        except (ValueError, TypeError):
            return [], "סוג תביעה לא מוכר"
        if not claims:
            return [], "יש לבחור לפחות תביעה אחת"
        return claims, None

    # Storage helpers

    def lawyer_signature(self) -> Optional[bytes]:
        """The configured lawyer signature, downloaded once per process."""
        key = self.config.storage.lawyer_signature_key
        if not key:
            return None
        if key not in self._signature_cache:
            self._signature_cache[key] = self.storage.download(key)
            logger.info(f"Loaded lawyer signature from {key}")
        return self._signature_cache[key]

    def find_or_create_folder(self, name: str, search_prefix: str,
                              parent_id: Optional[str] = None) -> StoredFolder:
        existing = self.storage.search_folders(search_prefix, parent_id)
        if existing:
            logger.info(f"Reusing folder {existing[0].folder_id}")
            return existing[0]
        return self.storage.create_folder(name, parent_id)

    # Pipeline

    @with_context(component="submission")
    def submit(self, payload: Mapping[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Run the whole submission.

        Returns:
            {success, message, folderId, folderName, documents, failures}

        Raises:
            ValidationFailedError: Invalid input; nothing was uploaded
            SubmissionIncompleteError: One or more items failed to upload
            StorageError: The client folder itself could not be created
        """
        now = now or datetime.now()
        if payload.get("sessionId"):
            set_context(session_id=payload["sessionId"])
        claims = self.validate(payload)
        attachments = decode_attachments(payload.get("attachments") or [])
        # A missing rewriter key must fail before anything is uploaded
        self.documents.text_rewriter()

        basic_info = payload.get("basicInfo") or {}
        full_name = str(basic_info.get("fullName", "")).strip()
        folder = self.find_or_create_folder(
            f"{full_name} תביעות {now.strftime('%d.%m.%Y')}",
            f"{full_name} תביעות",
        )

        supplied = payload.get("lawyerSignature")
        lawyer_signature = decode_base64(str(supplied)) if supplied else self.lawyer_signature()

        documents: Dict[str, str] = {}
        failures: List[Dict[str, str]] = []
        result: Dict[str, Any] = {
            "folderId": folder.folder_id,
            "folderName": folder.name,
            "documents": documents,
            "failures": failures,
        }

        def attempt(item: str, action: Callable[[], Any]) -> Any:
            try:
                return action()
            except ITEM_ERRORS as e:
                logger.error(f"Submission item '{item}' failed: {e}")
                failures.append({"item": item, "error": e.context.message})
                if self.fail_fast:
                    raise SubmissionIncompleteError.from_failures(failures, result) from e
                return None

        record = json.dumps(dict(payload), ensure_ascii=False, indent=2, default=str).encode("utf-8")
        attempt(
            "submission-data",
            lambda: self.storage.upload(
                folder.folder_id, f"submission-data-{now.strftime('%Y-%m-%d')}.json", record, JSON_MIME
            ),
        )

        for claim in claims:
            with log_context(claim=claim.value):
                key = attempt(
                    claim.value,
                    lambda claim=claim: self._file_claim(claim, payload, attachments, lawyer_signature, folder),
                )
            if key:
                documents[claim.value] = key

        if attachments:
            self._file_attachments(attachments, folder, attempt)

        if failures:
            logger.warning(f"Submission to {folder.folder_id} finished with {len(failures)} failure(s)")
            raise SubmissionIncompleteError.from_failures(failures, result)

        logger.info(f"Submission filed in {folder.folder_id}: {', '.join(documents)}")
        self._mark_submitted(payload.get("sessionId"), folder)
        self._confirm(basic_info, claims, folder)
        return {"success": True, "message": SUCCESS_MESSAGE, **result}

    def _file_claim(self, claim: ClaimType, payload: Mapping[str, Any],
                    attachments: List[AttachmentFile], lawyer_signature: Optional[bytes],
                    folder: StoredFolder) -> str:
        claim_folder = self.find_or_create_folder(
            CLAIM_FOLDER_NAMES[claim], CLAIM_FOLDER_NAMES[claim], folder.folder_id
        )
        document = self.documents.generate(claim.value, payload, attachments, lawyer_signature)
        return self.storage.upload(claim_folder.folder_id, document.filename, document.content, document.mime_type)

    def _file_attachments(self, attachments: List[AttachmentFile], folder: StoredFolder,
                          attempt: Callable[[str, Callable[[], Any]], Any]) -> None:
        target = attempt(
            ATTACHMENTS_FOLDER,
            lambda: self.find_or_create_folder(ATTACHMENTS_FOLDER, ATTACHMENTS_FOLDER, folder.folder_id),
        )
        if target is None:
            return
        for attachment in attachments:
            attempt(
                f"{ATTACHMENTS_FOLDER}/{attachment.name}",
                lambda attachment=attachment: self.storage.upload(
                    target.folder_id, attachment.name, attachment.data, attachment.mime_type
                ),
            )

    def _mark_submitted(self, session_id: Optional[str], folder: StoredFolder) -> None:
        if not session_id or self.session_service is None:
            return
        try:
            self.session_service.update_submission_status(
                session_id, SubmissionStatus.SUBMITTED.value, folder.folder_id
            )
        except IntakeError as e:
            handle_secondary_failure(e, "session submission update", logger)

    def _confirm(self, basic_info: Mapping[str, Any], claims: List[ClaimType], folder: StoredFolder) -> None:
        if self.email_service is None or not basic_info.get("email"):
            return
        sent = self.email_service.send_submission_confirmation(
            basic_info["email"],
            basic_info.get("fullName", ""),
            folder.name,
            [claim_label(claim) for claim in claims],
        )
        if not sent:
            logger.warning(f"Submission confirmation to {basic_info['email']} was not sent")
