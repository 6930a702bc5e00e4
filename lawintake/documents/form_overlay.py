"""
Form 4 (alimony financial statement) rendering.

The blank court form is kept as pre-rendered page PNGs (150 DPI, 1654x2339).
Text is drawn straight onto the pages at fixed pixel coordinates, so the
form's own PDF fields are never needed.
"""

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from lawintake.documents.templates import RELATIONSHIP_LABELS, format_date
from lawintake.utils.errors import DocumentBuildError, TemplateNotFoundError

logger = logging.getLogger(__name__)

DPI = 150
PAGE_SIZE = (1654, 2339)
PAGE_COUNT = 6
PAGE_FILENAME = "page-{number}.png"
CHECK_MARK = "X"

_HEBREW = re.compile(r"[֐-׿]")
_LTR_RUN = re.compile(r"[A-Za-z0-9@.,:/\\+\-_₪]+(?: [A-Za-z0-9@.,:/\\+\-_₪]+)*")


@dataclass(frozen=True)
class FieldPosition:
    """
    Where one value is drawn.

    Attributes:
        page: Zero-based page index
        x: Anchor x in pixels; meaning depends on align
        y: Top of the first text line in pixels
        font_size: Font size in pixels
        align: "right", "center" or "left"
        max_width: Wrap width in pixels, None for a single line
    """
    page: int
    x: int
    y: int
    font_size: int
    align: str = "right"
    max_width: Optional[int] = None


def _pos(page: int, x: int, y: int, size: int, align: str = "center", max_width: Optional[int] = None) -> FieldPosition:
    return FieldPosition(page, x, y, size, align, max_width)


FORM4_FIELD_COORDINATES: Dict[str, FieldPosition] = {
    # Page 1: header boxes and party table
    "header_plaintiff_name": _pos(0, 657, 340, 24),
    "header_defendant_name": _pos(0, 245, 340, 24),
    "table_row1_col1_name": _pos(0, 730, 492, 20),
    "table_row1_col2_id": _pos(0, 590, 492, 20),
    "table_row1_col3_address": _pos(0, 390, 492, 18, max_width=180),
    "table_row1_col4_birthdate": _pos(0, 210, 492, 18),
    "table_row1_col5_relationship": _pos(0, 85, 492, 18),
    "table_row2_col1_name": _pos(0, 730, 547, 20),
    "table_row2_col2_id": _pos(0, 590, 547, 20),
    "table_row2_col3_address": _pos(0, 390, 547, 18, max_width=180),
    "table_row2_col4_birthdate": _pos(0, 210, 547, 18),
    "field6_checkbox_yes": _pos(0, 745, 645, 28),
    "field6_checkbox_no": _pos(0, 745, 687, 28),
    "field6_details": _pos(0, 800, 660, 20, "right", 600),
    "field7_amount": _pos(0, 500, 760, 22, "right"),
    "field7_date": _pos(0, 250, 760, 22, "right"),
    "field8_row1_col1": _pos(0, 700, 965, 20),
    "field8_row1_col2": _pos(0, 500, 965, 20),
    "field8_row1_col3": _pos(0, 290, 965, 20),
    # Page 2: property, income and housing
    "field10_plaintiff_property": _pos(1, 620, 770, 18, max_width=350),
    "field10_respondent_property": _pos(1, 200, 770, 18, max_width=350),
    "field11_plaintiff_income": _pos(1, 620, 975, 20),
    "field11_plaintiff_debts": _pos(1, 340, 975, 18),
    "field11_respondent_income": _pos(1, 620, 1055, 20),
    "field11_respondent_debts": _pos(1, 340, 1055, 18),
    "field12_plaintiff_address": _pos(1, 600, 1255, 18),
    "field12_plaintiff_expense": _pos(1, 200, 1255, 20),
    "field12_respondent_address": _pos(1, 600, 1335, 18),
    "field12_respondent_expense": _pos(1, 200, 1335, 20),
    # Page 3: bank accounts, vehicle, requested amount, section B
    "field13_bank1_serial": _pos(2, 760, 230, 20),
    "field13_bank1_name": _pos(2, 510, 230, 20),
    "field13_bank1_account": _pos(2, 230, 230, 20),
    "field13_bank2_serial": _pos(2, 760, 280, 20),
    "field13_bank2_name": _pos(2, 510, 280, 20),
    "field13_bank2_account": _pos(2, 230, 280, 20),
    "field13_bank3_serial": _pos(2, 760, 330, 20),
    "field13_bank3_name": _pos(2, 510, 330, 20),
    "field13_bank3_account": _pos(2, 230, 330, 20),
    "field13_bank4_serial": _pos(2, 760, 380, 20),
    "field13_bank4_name": _pos(2, 510, 380, 20),
    "field13_bank4_account": _pos(2, 230, 380, 20),
    "field14_checkbox_yes": _pos(2, 700, 475, 28),
    "field14_checkbox_no": _pos(2, 650, 475, 28),
    "field14_details": _pos(2, 400, 475, 20, "right", 500),
    "field15_amount": _pos(2, 400, 515, 24, "right"),
    "sectionB_marriage_date": _pos(2, 400, 750, 22, "right"),
    "sectionB_marital_status_checkbox": _pos(2, 700, 920, 28),
    "sectionB_separation_reason": _pos(2, 400, 970, 20, "right", 600),
}


def visual_order(text: str) -> str:
    """
    Reorder a logical-order Hebrew string for left-to-right drawing.

    Hebrew characters are reversed; embedded runs of digits and Latin text
    keep their reading order.
    """
    if not _HEBREW.search(text):
        return text
    runs = []
    last = 0
    for match in _LTR_RUN.finditer(text):
        runs.append(text[last:match.start()][::-1])
        runs.append(match.group(0))
        last = match.end()
    runs.append(text[last:][::-1])
    return "".join(reversed(runs))


def format_amount(value: Any) -> Optional[str]:
    """Shekel amount with thousands separators; None for empty or non-numeric input."""
    if value in (None, ""):
        return None
    try:
        number = float(str(value).replace(",", ""))
    except ValueError:
        return str(value)
    if number.is_integer():
        return f"₪{int(number):,}"
    return f"₪{number:,.2f}"


def _income(data: Mapping[str, Any], party: str) -> Optional[str]:
    return format_amount(data.get(f"{party}GrossSalary") or data.get(f"{party}GrossIncome"))


def _needs_total(rows: Any) -> Optional[float]:
    total = 0.0
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        for amount in row.get("amounts") or []:
            try:
                total += float(str(amount).replace(",", ""))
            except ValueError:
                continue
    return total or None


def _summarise(rows: Any, *keys: str) -> Optional[str]:
    parts = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        text = ", ".join(str(row[key]) for key in keys if row.get(key))
        if text:
            parts.append(text)
    return "; ".join(parts) or None


def build_form4_data(data: Mapping[str, Any]) -> Dict[str, str]:
    """
    Map aggregated document data onto Form 4 field keys.

    Empty values are left out so the blank form shows through.
    """
    relationship = data.get("relationshipType") or ""
    applicant_income = _income(data, "applicant")
    respondent_income = _income(data, "respondent")

    values: Dict[str, Optional[str]] = {
        "header_plaintiff_name": data.get("fullName"),
        "header_defendant_name": data.get("fullName2"),
        "table_row1_col1_name": data.get("fullName"),
        "table_row1_col2_id": data.get("idNumber"),
        "table_row1_col3_address": data.get("address"),
        "table_row1_col4_birthdate": format_date(data.get("birthDate")) or None,
        "table_row1_col5_relationship": RELATIONSHIP_LABELS.get(relationship, relationship) or None,
        "table_row2_col1_name": data.get("fullName2"),
        "table_row2_col2_id": data.get("idNumber2"),
        "table_row2_col3_address": data.get("address2"),
        "table_row2_col4_birthdate": format_date(data.get("birthDate2")) or None,
        "field7_amount": format_amount(data.get("lastAlimonyAmount")),
        "field7_date": format_date(data.get("lastAlimonyDate")) or None,
        "field8_row1_col3": applicant_income,
        "field8_row1_col2": respondent_income,
        "field10_plaintiff_property": data.get("propertyDetails"),
        "field11_plaintiff_income": applicant_income,
        "field11_plaintiff_debts": _summarise(data.get("debts"), "purpose", "amount"),
        "field11_respondent_income": respondent_income,
        "field12_plaintiff_address": data.get("address"),
        "field12_respondent_address": data.get("address2"),
        "field15_amount": format_amount(_needs_total(data.get("needsTable"))),
        "sectionB_marriage_date": format_date(data.get("weddingDay")) or None,
        "sectionB_separation_reason": data.get("separationReason"),
    }

    cases = data.get("otherFamilyCases") or []
    if cases:
        values["field6_checkbox_yes"] = CHECK_MARK
        values["field6_details"] = _summarise(cases, "caseNumber", "court", "caseType")
    else:
        values["field6_checkbox_no"] = CHECK_MARK

    vehicles = data.get("vehicles") or []
    if vehicles:
        values["field14_checkbox_yes"] = CHECK_MARK
        values["field14_details"] = _summarise(vehicles, "owner", "purchaseDate")
    else:
        values["field14_checkbox_no"] = CHECK_MARK

    for index, account in enumerate((data.get("savings") or [])[:4], start=1):
        if not isinstance(account, dict):
            continue
        values[f"field13_bank{index}_serial"] = str(index)
        values[f"field13_bank{index}_name"] = account.get("owner")
        values[f"field13_bank{index}_account"] = format_amount(account.get("amount"))

    if data.get("livingTogether") == "no":
        values["sectionB_marital_status_checkbox"] = CHECK_MARK

    return {key: str(value) for key, value in values.items() if value not in (None, "")}


class Form4Overlay:
    """Draws values onto the blank Form 4 page images."""

    def __init__(self, pages_dir: str = "assets/form4", font_path: Optional[str] = None,
                 page_count: int = PAGE_COUNT):
        self.pages_dir = Path(pages_dir)
        self.font_path = font_path
        self.page_count = page_count
        self._fonts: Dict[int, Any] = {}

    def page_paths(self) -> List[Path]:
        paths = [self.pages_dir / PAGE_FILENAME.format(number=n) for n in range(1, self.page_count + 1)]
        missing = [path.name for path in paths if not path.exists()]
        if missing:
            logger.error(f"Form 4 pages missing from {self.pages_dir}: {', '.join(missing)}")
            raise TemplateNotFoundError.for_claim("form4")
        return paths

    def _font(self, size: int):
        if size not in self._fonts:
            if self.font_path and Path(self.font_path).exists():
                self._fonts[size] = ImageFont.truetype(self.font_path, size)
            else:
                self._fonts[size] = ImageFont.load_default(size=size)
        return self._fonts[size]

    def _wrap(self, draw: ImageDraw.ImageDraw, text: str, font, max_width: Optional[int]) -> List[str]:
        if not max_width:
            return [text]
        lines: List[str] = []
        current = ""
        for word in text.split(" "):
            candidate = f"{current} {word}" if current else word
            if current and draw.textlength(visual_order(candidate), font=font) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        if current:
            lines.append(current)
        return lines

    def _draw(self, draw: ImageDraw.ImageDraw, text: str, position: FieldPosition) -> None:
        font = self._font(position.font_size)
        line_height = int(position.font_size * 1.2)
        for index, line in enumerate(self._wrap(draw, text, font, position.max_width)):
            visual = visual_order(line)
            width = draw.textlength(visual, font=font)
            if position.align == "center":
                x = position.x - width / 2
            elif position.align == "right":
                x = position.x - width
            else:
                x = position.x
            draw.text((x, position.y + index * line_height), visual, font=font, fill=(0, 0, 0))

    def render(self, values: Mapping[str, str]) -> List[bytes]:
        """
        Draw every known field onto its page.

        Keys without coordinates are skipped with a warning.

        Returns:
            One PNG per page, in page order
        """
        by_page: Dict[int, List[Tuple[str, FieldPosition]]] = {}
        for key, text in values.items():
            position = FORM4_FIELD_COORDINATES.get(key)
            if position is None:
                logger.warning(f"No coordinates defined for Form 4 field: {key}")
                continue
            by_page.setdefault(position.page, []).append((text, position))

        pages: List[bytes] = []
        for index, path in enumerate(self.page_paths()):
            try:
                with Image.open(path) as source:
                    image = source.convert("RGB")
                draw = ImageDraw.Draw(image)
                for text, position in by_page.get(index, []):
                    self._draw(draw, text, position)
                buffer = io.BytesIO()
                image.save(buffer, format="PNG", dpi=(DPI, DPI))
            except OSError as e:
                raise DocumentBuildError.build_failed("form4", e) from e
            pages.append(buffer.getvalue())
            logger.debug(f"Rendered Form 4 page {index + 1} with {len(by_page.get(index, []))} field(s)")

        logger.info(f"Rendered Form 4: {len(pages)} page(s), {len(values)} value(s)")
        return pages


def pages_to_pdf(pages: List[bytes]) -> bytes:
    """Bundle page PNGs into one PDF, one image per page at its own pixel size."""
    buffer = io.BytesIO()
    pdf = None
    for png in pages:
        reader = ImageReader(io.BytesIO(png))
        width, height = reader.getSize()
        # pixels at DPI -> points
        size = (width * 72.0 / DPI, height * 72.0 / DPI)
        if pdf is None:
            pdf = canvas.Canvas(buffer, pagesize=size)
        else:
            pdf.setPageSize(size)
        pdf.drawImage(reader, 0, 0, width=size[0], height=size[1])
        pdf.showPage()
    if pdf is None:
        raise DocumentBuildError.build_failed("form4", ValueError("no pages to bundle"))
    pdf.save()
    return buffer.getvalue()
