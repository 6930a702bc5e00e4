"""Tests for claim document generation and the Form 4 overlay."""

import base64
import io

import pytest
from docx import Document
from PIL import Image

from conftest import make_png
from lawintake.documents.attachments import decode_attachments, decode_base64
from lawintake.documents.form_overlay import (
    FORM4_FIELD_COORDINATES,
    PAGE_COUNT,
    PAGE_SIZE,
    Form4Overlay,
    build_form4_data,
    format_amount,
    pages_to_pdf,
    visual_order,
)
from lawintake.documents.service import DocumentGenerationService
from lawintake.documents.templates import build_template_data
from lawintake.models.claim import ClaimType
from lawintake.models.document import DOCX_MIME
from lawintake.utils.errors import DocumentBuildError, TemplateNotFoundError, ValidationFailedError


def _text(content: bytes) -> str:
    document = Document(io.BytesIO(content))
    parts = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells)
    return "\n".join(parts)


@pytest.fixture
def documents(config) -> DocumentGenerationService:
    return DocumentGenerationService(config)


def test_property_document(documents, property_payload):
    document = documents.generate("property", property_payload)
    assert document.mime_type == DOCX_MIME
    assert document.filename == "תביעת-רכושית.docx"
    assert document.missing_tokens == []

    text = _text(document.content)
    assert "ישראל ישראלי" in text
    assert "שרה ישראלי" in text
    assert "חלוקת הדירה בחלקים שווים" in text
    assert "{{" not in text


@pytest.mark.parametrize("claim", [claim.value for claim in ClaimType])
def test_every_claim_builds(claim, documents, valid_basic_info, child, signature_b64):
    payload = {
        "basicInfo": valid_basic_info,
        "formData": {"children": [child], "hasAssets": "no"},
        "selectedClaims": [claim],
        "signature": signature_b64,
    }
    document = documents.generate(claim, payload)
    assert document.size > 0
    assert document.claim_type == claim


def test_alimony_embeds_form4_pages(documents, valid_basic_info, child):
    payload = {
        "basicInfo": valid_basic_info,
        "formData": {"children": [child], "needsTable": [{"name": "מזון", "amounts": [1500]}]},
        "selectedClaims": ["alimony"],
    }
    document = documents.generate("alimony", payload)
    assert len(document.page_images) == PAGE_COUNT


def test_alimony_without_form4_pages_still_builds(config, valid_basic_info, child, tmp_path):
    config.documents.form4_dir = str(tmp_path / "empty")
    document = DocumentGenerationService(config).generate("alimony", {
        "basicInfo": valid_basic_info,
        "formData": {"children": [child]},
        "selectedClaims": ["alimony"],
    })
    assert document.page_images == []


def test_unknown_claim_type(documents, property_payload):
    with pytest.raises(TemplateNotFoundError):
        documents.generate("inheritance", property_payload)


def test_bad_signature_is_a_validation_error(documents, property_payload):
    property_payload["signature"] = "data:image/png;base64,abc"
    with pytest.raises(ValidationFailedError):
        documents.generate("property", property_payload)


def test_image_attachment_appendix(documents, property_payload):
    property_payload["attachments"] = [{
        "name": "receipt.png",
        "mimeType": "image/png",
        "label": "קבלה",
        "data": base64.b64encode(make_png((300, 200))).decode("ascii"),
    }]
    text = _text(documents.generate("property", property_payload).content)
    assert "נספח 1: קבלה" in text


def test_generate_all_and_save(documents, property_payload, tmp_path):
    property_payload["selectedClaims"] = ["property", "divorce"]
    generated = documents.generate_all(property_payload)
    assert set(generated) == {"property", "divorce"}

    path = documents.save_to_temp(generated["divorce"])
    assert path.startswith(str(tmp_path))
    with open(path, "rb") as f:
        assert f.read() == generated["divorce"].content


def test_available_templates_fall_back_to_builders(documents):
    templates = documents.available_templates()
    assert {item["claimType"] for item in templates} == {claim.value for claim in ClaimType}
    assert all(item["source"] == "builder" for item in templates)


def test_word_template_takes_precedence(config, property_payload, tmp_path):
    templates_dir = tmp_path / "document_templates"
    templates_dir.mkdir()
    template = Document()
    template.add_paragraph("תובע: {{fullName}} נגד {{fullName2}} {{doesNotExist}}")
    template.save(str(templates_dir / "property.docx"))

    document = DocumentGenerationService(config).generate("property", property_payload)
    assert _text(document.content).strip() == "תובע: ישראל ישראלי נגד שרה ישראלי {{doesNotExist}}"
    assert document.missing_tokens == ["doesNotExist"]


def test_decode_attachments_rejects_empty_data():
    with pytest.raises(ValidationFailedError) as info:
        decode_attachments([{"name": "a.pdf", "data": ""}])
    assert info.value.errors == {"attachments.0.data": "קובץ ריק"}


def test_decode_attachments_rejects_malformed_entries():
    with pytest.raises(ValidationFailedError) as info:
        decode_attachments([1, {"name": "a.pdf", "data": "JVBERi0="}])
    assert info.value.errors == {"attachments.0": "ערך לא תקין"}

    with pytest.raises(ValidationFailedError) as info:
        decode_attachments({"name": "a.pdf"})
    assert info.value.errors == {"attachments": "ערך לא תקין"}


def test_decode_base64_strips_data_url():
    assert decode_base64("data:text/plain;base64,aGk=") == b"hi"


# Form 4


def test_form4_coordinates_inside_pages():
    for key, position in FORM4_FIELD_COORDINATES.items():
        assert 0 <= position.page < PAGE_COUNT, key
        assert 0 <= position.x <= PAGE_SIZE[0], key
        assert 0 <= position.y <= PAGE_SIZE[1], key
        assert position.align in ("right", "center", "left"), key


def test_form4_data_mapping(valid_basic_info):
    data = build_template_data(valid_basic_info, {
        "applicantGrossSalary": 12000,
        "vehicles": [{"owner": "ישראל ישראלי", "purchaseDate": "2019-01-01"}],
        "savings": [{"owner": "שרה ישראלי", "amount": 20000}],
        "needsTable": [{"name": "מזון", "amounts": [1000, "500"]}],
    }, ["alimony"])
    values = build_form4_data(data)

    assert values["header_plaintiff_name"] == "ישראל ישראלי"
    assert values["table_row1_col5_relationship"] == "נשואים"
    assert values["field11_plaintiff_income"] == "₪12,000"
    assert values["field14_checkbox_yes"] == "X"
    assert values["field6_checkbox_no"] == "X"
    assert values["field13_bank1_name"] == "שרה ישראלי"
    assert values["field15_amount"] == "₪1,500"
    assert set(values) <= set(FORM4_FIELD_COORDINATES)
    assert all(values.values())


def test_format_amount():
    assert format_amount(1234.5) == "₪1,234.50"
    assert format_amount("2,000") == "₪2,000"
    assert format_amount("") is None


def test_visual_order_keeps_numbers():
    assert visual_order("abc 123") == "abc 123"
    assert visual_order("שלום 123") == "123 םולש"


def test_overlay_renders_every_page(form4_dir):
    pages = Form4Overlay(str(form4_dir)).render({"header_plaintiff_name": "ישראל", "unknown_key": "x"})
    assert len(pages) == PAGE_COUNT
    with Image.open(io.BytesIO(pages[0])) as first:
        assert first.size == PAGE_SIZE


def test_overlay_missing_pages(tmp_path):
    with pytest.raises(TemplateNotFoundError):
        Form4Overlay(str(tmp_path)).render({})


def test_pages_to_pdf(form4_dir):
    pdf = pages_to_pdf(Form4Overlay(str(form4_dir)).render({}))
    assert pdf.startswith(b"%PDF")


def test_form4_pdf_from_payload(documents, valid_basic_info):
    pdf = documents.form4_pdf({"basicInfo": valid_basic_info, "formData": {}, "selectedClaims": ["alimony"]})
    assert pdf.startswith(b"%PDF")


def test_build_failure_keeps_detail_out_of_response():
    error = DocumentBuildError.build_failed("property", OSError("/srv/templates/property.docx is locked"))
    assert error.to_response()["error"] == "יצירת המסמך נכשלה, נא לנסות שוב"
    assert "/srv/templates" not in str(error.to_response())
    assert "/srv/templates" in str(error)
