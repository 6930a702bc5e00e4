"""Decoding and rasterising user attachments for the document appendix."""

import base64
import binascii
import io
import logging
from typing import Any, Iterable, List, Mapping, Tuple

import pdfplumber
from PIL import Image

from lawintake.models.document import AttachmentFile
from lawintake.utils.errors import DocumentBuildError, ValidationFailedError

logger = logging.getLogger(__name__)

RESOLUTION = 150
MAX_PDF_PAGES = 20
INVALID_VALUE = "ערך לא תקין"


def decode_base64(data: str) -> bytes:
    """Decode base64 content, with or without a `data:<mime>;base64,` prefix."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    return base64.b64decode(data, validate=False)


def decode_attachments(items: Iterable[Mapping[str, Any]]) -> List[AttachmentFile]:
    """
    Parse submitted attachments of the form `{name, data, mimeType, label?}`.

    Raises:
        ValidationFailedError: The list or an entry is malformed, or an entry is
            missing its data or is not valid base64
    """
    if items is None:
        items = []
    if not isinstance(items, (list, tuple)):
        raise ValidationFailedError.from_errors({"attachments": INVALID_VALUE})
    attachments: List[AttachmentFile] = []
    errors = {}
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            errors[f"attachments.{index}"] = INVALID_VALUE
            continue
        name = str(item.get("name") or f"attachment-{index + 1}")
        raw = item.get("data")
        if not raw:
            errors[f"attachments.{index}.data"] = "קובץ ריק"
            continue
        try:
            data = decode_base64(str(raw))
        except (binascii.Error, ValueError):
            errors[f"attachments.{index}.data"] = "קובץ לא תקין"
            continue
        attachments.append(AttachmentFile(
            name=name,
            data=data,
            mime_type=str(item.get("mimeType") or "application/octet-stream"),
            label=item.get("label"),
        ))
    if errors:
        raise ValidationFailedError.from_errors(errors)
    return attachments


def image_to_png(data: bytes) -> bytes:
    """Normalise any Pillow-readable image to RGB PNG bytes."""
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
    return buffer.getvalue()


def pdf_to_pngs(data: bytes, resolution: int = RESOLUTION, max_pages: int = MAX_PDF_PAGES) -> List[bytes]:
    """Rasterise the first max_pages pages of a PDF to PNG."""
    pages: List[bytes] = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages[:max_pages]:
            buffer = io.BytesIO()
            page.to_image(resolution=resolution).original.save(buffer, format="PNG")
            pages.append(buffer.getvalue())
        if len(pdf.pages) > max_pages:
            logger.warning(f"PDF has {len(pdf.pages)} pages; only the first {max_pages} are embedded")
    return pages


def rasterise(attachment: AttachmentFile) -> List[Tuple[str, bytes]]:
    """
    Turn one attachment into captioned page images.

    Files that are neither PDF nor image are skipped (they are still uploaded
    as-is by the submission flow).

    Raises:
        DocumentBuildError: The file claims to be a PDF or image but cannot be read
    """
    caption = attachment.label or attachment.name
    try:
        if attachment.is_pdf:
            pngs = pdf_to_pngs(attachment.data)
            return [(f"{caption} - עמוד {number}", png) for number, png in enumerate(pngs, start=1)]
        if attachment.is_image:
            return [(caption, image_to_png(attachment.data))]
    except Exception as e:
        # pdfplumber surfaces pdfminer parser errors unwrapped
        logger.error(f"Failed to convert attachment {attachment.name}: {str(e)}")
        raise DocumentBuildError.attachment_failed(attachment.name, e) from e

    logger.info(f"Attachment {attachment.name} ({attachment.mime_type}) is not embeddable, skipping")
    return []

