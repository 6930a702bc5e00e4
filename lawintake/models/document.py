"""Generated document models."""

from dataclasses import dataclass, field
from typing import List, Optional

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MIME = "application/pdf"
PNG_MIME = "image/png"


@dataclass
class GeneratedDocument:
    """
    In-memory document produced for one claim.

    Attributes:
        claim_type: Claim the document belongs to
        filename: Suggested file name (Hebrew, claim-named)
        content: Raw bytes; transient until streamed, saved to tmp or uploaded
        mime_type: MIME type of content
        missing_tokens: Template tokens that had no value while filling
        page_images: Rendered PNG pages (Form 4 overlay) embedded in the document
    """
    claim_type: str
    filename: str
    content: bytes
    mime_type: str = DOCX_MIME
    missing_tokens: List[str] = field(default_factory=list)
    page_images: List[bytes] = field(default_factory=list)
    path: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class AttachmentFile:
    """
    User-supplied file bundled with a submission.

    Attributes:
        name: Original file name
        data: Decoded bytes
        mime_type: Declared MIME type
        label: Optional label shown in the attachments appendix
    """
    name: str
    data: bytes
    mime_type: str
    label: Optional[str] = None

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME or self.name.lower().endswith(".pdf")

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")
