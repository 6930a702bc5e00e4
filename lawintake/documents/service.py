"""Document generation service: one DOCX per claim, plus the Form 4 overlay."""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from docx import Document

from lawintake.documents.attachments import decode_attachments, decode_base64, rasterise
from lawintake.documents.form_overlay import Form4Overlay, build_form4_data, pages_to_pdf
from lawintake.documents.generators import GENERATORS, BuildContext
from lawintake.documents.templates import MissingTokenPolicy, build_template_data, fill_template
from lawintake.models.claim import CLAIM_FILE_STEMS, ClaimType, is_claim_type
from lawintake.models.document import DOCX_MIME, AttachmentFile, GeneratedDocument
from lawintake.documents.legal_language import LegalLanguageClient, rewrite_narratives
from lawintake.utils.config import Config
from lawintake.utils.errors import (
    DocumentBuildError,
    IntakeError,
    TemplateNotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

INVALID_VALUE = "ערך לא תקין"
SECTION_TYPES = {"basicInfo": Mapping, "formData": Mapping, "selectedClaims": list}


def check_sections(payload: Mapping[str, Any]) -> None:
    """
    Reject payload sections of the wrong shape before any of them is read.

    Raises:
        ValidationFailedError: Keyed by every malformed section
    """
    errors = {
        section: INVALID_VALUE
        for section, expected in SECTION_TYPES.items()
        if payload.get(section) is not None and not isinstance(payload[section], expected)
    }
    if errors:
        raise ValidationFailedError.from_errors(errors)


def _iter_paragraphs(document) -> Iterator[Any]:
    yield from document.paragraphs
    for table in document.tables:
        for row in table.rows:
            for cell in row.cells:
                yield from cell.paragraphs
    for section in document.sections:
        yield from section.header.paragraphs
        yield from section.footer.paragraphs


def fill_docx_template(path: Path, data: Mapping[str, Any],
                       policy: MissingTokenPolicy = MissingTokenPolicy.KEEP) -> Tuple[bytes, List[str]]:
    """
    Fill `{{token}}` placeholders in a Word template.

    Word splits text into runs arbitrarily, so each paragraph is filled as a
    whole and written back into its first run.

    Returns:
        (document bytes, missing token names)
    """
    document = Document(str(path))
    missing: List[str] = []
    for paragraph in _iter_paragraphs(document):
        if "{{" not in paragraph.text:
            continue
        result = fill_template(paragraph.text, data, policy)
        for token in result.missing_tokens:
            if token not in missing:
                missing.append(token)
        runs = paragraph.runs
        if not runs:
            continue
        runs[0].text = result.text
        for run in runs[1:]:
            run.text = ""

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue(), missing


class DocumentGenerationService:
    """
    Builds claim documents from wizard payloads.

    A payload carries `basicInfo`, `formData` and `selectedClaims`, plus an
    optional `signature` (base64 PNG) and `attachments`.
    """

    def __init__(
        self,
        config: Config,
        rewriter: Optional[LegalLanguageClient] = None,
        lawyer_signature: Optional[bytes] = None,
    ):
        self.config = config
        self.templates_dir = Path(config.documents.templates_dir)
        self.tmp_dir = Path(config.documents.tmp_dir)
        self.policy = MissingTokenPolicy(config.documents.missing_token_policy)
        self.overlay = Form4Overlay(config.documents.form4_dir, config.documents.font_path or None)
        self.rewriter = rewriter
        self.lawyer_signature = lawyer_signature

        logger.info(
            f"Initialized DocumentGenerationService: templates_dir={self.templates_dir}, "
            f"rewrite={'on' if config.text_generation.enabled else 'off'}"
        )

    # Templates

    def template_path(self, claim: str) -> Path:
        return self.templates_dir / f"{claim}.docx"

    def template_exists(self, claim: str) -> bool:
        if not is_claim_type(claim):
            return False
        return ClaimType(claim) in GENERATORS or self.template_path(claim).exists()

    def available_templates(self) -> List[Dict[str, Any]]:
        templates = []
        for claim in ClaimType:
            if self.template_exists(claim.value):
                templates.append({
                    "claimType": claim.value,
                    "source": "file" if self.template_path(claim.value).exists() else "builder",
                })
        return templates

    # Generation

    def text_rewriter(self) -> Optional[LegalLanguageClient]:
        """
        Rewriter for narrative fields, created on first use.

        Raises:
            ConfigurationError: Rewriting is enabled but no API key is configured
        """
        if not self.config.text_generation.enabled:
            return None
        if self.rewriter is None:
            self.rewriter = LegalLanguageClient(self.config.text_generation, self.config.storage.region)
        return self.rewriter

    def _template_data(self, claim: ClaimType, payload: Mapping[str, Any],
                       rewriter: Optional[LegalLanguageClient]) -> Dict[str, Any]:
        check_sections(payload)
        basic_info = payload.get("basicInfo") or {}
        form_data = payload.get("formData") or {}
        claims = payload.get("selectedClaims") or [claim.value]
        data = build_template_data(
            basic_info,
            form_data,
            claims,
            lawyer_name=self.config.app.lawyer_name,
            has_signature=bool(payload.get("signature")),
        )
        return rewrite_narratives(data, claim.value, rewriter, self.config.text_generation.min_length)

    def _signature(self, payload: Mapping[str, Any]) -> Optional[bytes]:
        signature = payload.get("signature")
        if not signature:
            return None
        try:
            return decode_base64(str(signature))
        except ValueError as e:
            raise ValidationFailedError.from_errors({"signature": "חתימה לא תקינה"}) from e

    def _attachment_pages(self, attachments: List[AttachmentFile]) -> List[Tuple[str, bytes]]:
        pages: List[Tuple[str, bytes]] = []
        for attachment in attachments:
            pages.extend(rasterise(attachment))
        return pages

    def render_form4(self, data: Mapping[str, Any]) -> List[bytes]:
        """Form 4 pages for already-aggregated template data."""
        return self.overlay.render(build_form4_data(data))

    def form4_pdf(self, payload: Mapping[str, Any]) -> bytes:
        data = self._template_data(ClaimType.ALIMONY, payload, None)
        return pages_to_pdf(self.render_form4(data))

    def generate(self, claim: str, payload: Mapping[str, Any],
                 attachments: Optional[List[AttachmentFile]] = None,
                 lawyer_signature: Optional[bytes] = None) -> GeneratedDocument:
        """
        Build the document for one claim.

        `lawyer_signature` overrides the service-wide signature for this call.

        Raises:
            TemplateNotFoundError: Unknown claim type or no builder/template for it
            ConfigurationError: Rewriting enabled without an API key
            DocumentBuildError: The document could not be assembled
        """
        if not self.template_exists(claim):
            raise TemplateNotFoundError.for_claim(claim)
        claim_type = ClaimType(claim)
        rewriter = self.text_rewriter()

        if attachments is None:
            attachments = decode_attachments(payload.get("attachments") or [])
        data = self._template_data(claim_type, payload, rewriter)
        filename = f"{CLAIM_FILE_STEMS[claim_type]}.docx"

        path = self.template_path(claim)
        try:
            if path.exists():
                logger.info(f"Filling Word template {path} for {claim}")
                content, missing = fill_docx_template(path, data, self.policy)
                return GeneratedDocument(claim, filename, content, DOCX_MIME, missing)

            context = BuildContext(
                claim=claim_type,
                data=data,
                signature_png=self._signature(payload),
                lawyer_signature_png=lawyer_signature or self.lawyer_signature,
                lawyer_name=self.config.app.lawyer_name,
                attachment_pages=self._attachment_pages(attachments),
                policy=self.policy,
            )
            if claim_type == ClaimType.ALIMONY:
                try:
                    context.form4_pages = self.render_form4(data)
                except TemplateNotFoundError as exc:
                    logger.warning(f"Alimony document built without Form 4: {exc}")

            builder = GENERATORS[claim_type](context)
            content = builder.build()
        except IntakeError:
            raise
        except Exception as e:
            logger.error(f"Failed to build {claim} document: {str(e)}")
            raise DocumentBuildError.build_failed(claim, e) from e

        if builder.missing_tokens:
            logger.warning(f"{claim} document has unfilled tokens: {', '.join(builder.missing_tokens)}")
        return GeneratedDocument(
            claim_type=claim,
            filename=filename,
            content=content,
            mime_type=DOCX_MIME,
            missing_tokens=builder.missing_tokens,
            page_images=context.form4_pages,
        )

    def generate_all(self, payload: Mapping[str, Any]) -> Dict[str, GeneratedDocument]:
        """Build one document per selected claim; the first failure aborts the batch."""
        check_sections(payload)
        claims = payload.get("selectedClaims") or []
        for claim in claims:
            if not self.template_exists(claim):
                raise TemplateNotFoundError.for_claim(claim)
        attachments = decode_attachments(payload.get("attachments") or [])
        return {claim: self.generate(claim, payload, attachments) for claim in claims}

    def save_to_temp(self, document: GeneratedDocument) -> str:
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
        path = self.tmp_dir / f"{document.claim_type}_{timestamp}.docx"
        with open(path, "wb") as f:
            f.write(document.content)
        document.path = str(path)
        logger.info(f"Saved {document.claim_type} document to {path} ({document.size} bytes)")
        return str(path)
