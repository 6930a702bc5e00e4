"""Right-to-left Word document helpers on top of python-docx."""

import io
from typing import Iterable, Optional, Sequence

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_BREAK
from docx.oxml import parse_xml
from docx.oxml.ns import nsdecls, qn
from docx.shared import Inches, Pt, RGBColor

from lawintake.documents.templates import SIGNATURE_MARKER

FONT_NAME = "David"
BODY_SIZE = Pt(12)
HEADING_COLOR = RGBColor(0x1A, 0x1A, 0x2E)


# Successor tags keep inserted elements in OOXML schema order
_PPR_AFTER_BIDI = (
    "w:adjustRightInd", "w:snapToGrid", "w:spacing", "w:ind", "w:contextualSpacing",
    "w:mirrorIndents", "w:suppressOverlap", "w:jc", "w:textDirection", "w:textAlignment",
    "w:textboxTightWrap", "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr", "w:pPrChange",
)
_RPR_AFTER_RTL = ("w:cs", "w:em", "w:lang", "w:eastAsianLayout", "w:specVanish", "w:oMath")
_TBLPR_AFTER_BIDI = (
    "w:tblStyleRowBandSize", "w:tblStyleColBandSize", "w:tblW", "w:jc", "w:tblCellSpacing",
    "w:tblInd", "w:tblBorders", "w:shd", "w:tblLayout", "w:tblCellMar", "w:tblLook",
)
_SECTPR_AFTER_BIDI = ("w:rtlGutter", "w:docGrid", "w:printerSettings", "w:sectPrChange")


def _insert_flag(parent, tag: str, successors) -> None:
    if parent.find(qn(tag)) is None:
        parent.insert_element_before(parse_xml(f"<{tag} {nsdecls('w')}/>"), *successors)


def _set_rtl(paragraph) -> None:
    _insert_flag(paragraph._p.get_or_add_pPr(), "w:bidi", _PPR_AFTER_BIDI)


def _style_run(run, size=BODY_SIZE, bold: bool = False, underline: bool = False, color=None) -> None:
    run.font.name = FONT_NAME
    run.font.size = size
    run.font.bold = bold
    run.font.underline = underline
    if color is not None:
        run.font.color.rgb = color
    r_pr = run._r.get_or_add_rPr()
    _insert_flag(r_pr, "w:rtl", _RPR_AFTER_RTL)
    fonts = r_pr.find(qn("w:rFonts"))
    if fonts is not None:
        fonts.set(qn("w:cs"), FONT_NAME)


def set_cell_shading(cell, color_hex: str) -> None:
    tc_pr = cell._tc.get_or_add_tcPr()
    tc_pr.append(parse_xml(f'<w:shd {nsdecls("w")} w:fill="{color_hex}" w:val="clear"/>'))


class LegalDocument:
    """A Hebrew court document being assembled paragraph by paragraph."""

    def __init__(self, signature_png: Optional[bytes] = None, lawyer_signature_png: Optional[bytes] = None):
        self.doc = Document()
        self.signature_png = signature_png
        self.lawyer_signature_png = lawyer_signature_png

        normal = self.doc.styles["Normal"]
        normal.font.name = FONT_NAME
        normal.font.size = BODY_SIZE

        section = self.doc.sections[0]
        section.right_margin = Inches(1)
        section.left_margin = Inches(1)
        # RTL section layout
        _insert_flag(section._sectPr, "w:bidi", _SECTPR_AFTER_BIDI)

    # Text

    def title(self, text: str, size: int = 16):
        return self.paragraph(text, bold=True, underline=True, size=Pt(size),
                              align=WD_ALIGN_PARAGRAPH.CENTER, color=HEADING_COLOR)

    def heading(self, text: str):
        return self.paragraph(text, bold=True, underline=True, size=Pt(13), color=HEADING_COLOR)

    def paragraph(self, text: str = "", bold: bool = False, underline: bool = False,
                  size=BODY_SIZE, align=WD_ALIGN_PARAGRAPH.RIGHT, color=None):
        paragraph = self.doc.add_paragraph()
        paragraph.alignment = align
        _set_rtl(paragraph)
        paragraph.paragraph_format.space_after = Pt(6)
        if text:
            _style_run(paragraph.add_run(text), size=size, bold=bold, underline=underline, color=color)
        return paragraph

    def labelled(self, label: str, value: str):
        """Bold label followed by a plain value on one line."""
        paragraph = self.paragraph()
        _style_run(paragraph.add_run(f"{label}: "), bold=True)
        _style_run(paragraph.add_run(value or "___________"))
        return paragraph

    def numbered(self, items: Iterable[str], start: int = 1) -> int:
        """Numbered paragraphs; returns the next number so sections can continue counting."""
        number = start
        for item in items:
            if not item:
                continue
            self.paragraph(f"{number}. {item}")
            number += 1
        return number

    def text_block(self, text: str) -> None:
        """
        Add filled template text line by line.

        A line holding the signature marker becomes the signature image.
        """
        for line in text.strip("\n").split("\n"):
            if SIGNATURE_MARKER in line:
                label = line.replace(SIGNATURE_MARKER, "").strip()
                self.signature(label or "חתימה:")
            else:
                self.paragraph(line)

    # Images

    def signature(self, label: str = "חתימה:", image: Optional[bytes] = None) -> None:
        paragraph = self.paragraph(label)
        png = image or self.signature_png
        if png:
            paragraph.add_run().add_picture(io.BytesIO(png), width=Inches(1.8))
        else:
            _style_run(paragraph.add_run(" ___________"))

    def lawyer_signature(self, lawyer_name: str) -> None:
        paragraph = self.paragraph(f"עו\"ד {lawyer_name}".strip())
        if self.lawyer_signature_png:
            paragraph.add_run().add_picture(io.BytesIO(self.lawyer_signature_png), width=Inches(1.8))
        else:
            _style_run(paragraph.add_run(" ___________"))

    def image_page(self, png: bytes, caption: Optional[str] = None, width: float = 6.3) -> None:
        self.page_break()
        if caption:
            self.paragraph(caption, bold=True, align=WD_ALIGN_PARAGRAPH.CENTER)
        paragraph = self.doc.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        paragraph.add_run().add_picture(io.BytesIO(png), width=Inches(width))

    # Layout

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]):
        table = self.doc.add_table(rows=1 + len(rows), cols=len(headers))
        table.alignment = WD_TABLE_ALIGNMENT.CENTER
        table.style = "Table Grid"
        _insert_flag(table._tbl.tblPr, "w:bidiVisual", _TBLPR_AFTER_BIDI)

        for index, header in enumerate(headers):
            cell = table.rows[0].cells[index]
            cell.text = ""
            paragraph = cell.paragraphs[0]
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            _style_run(paragraph.add_run(header), size=Pt(10), bold=True)
            set_cell_shading(cell, "D6E8F5")

        for row_index, values in enumerate(rows, start=1):
            for col_index, value in enumerate(values):
                cell = table.rows[row_index].cells[col_index]
                cell.text = ""
                paragraph = cell.paragraphs[0]
                paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
                _set_rtl(paragraph)
                _style_run(paragraph.add_run(str(value)), size=Pt(10))
        return table

    def page_break(self) -> None:
        self.doc.add_paragraph().add_run().add_break(WD_BREAK.PAGE)

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.doc.save(buffer)
        return buffer.getvalue()
