"""Tests for token filling and the aggregated template data."""

from datetime import date

import pytest

from lawintake.documents.templates import (
    BLANK,
    SIGNATURE_MARKER,
    TEMPLATES,
    MissingTokenPolicy,
    build_template_data,
    fill_template,
    find_tokens,
    format_claim_types_list,
    format_date,
    generate_children_block,
    render_template,
)
from lawintake.utils.errors import TemplateFillError


def test_fill_replaces_known_tokens():
    result = fill_template("שלום {{fullName}}, ת.ז. {{ idNumber }}", {"fullName": "דנה", "idNumber": "000000018"})
    assert result.text == "שלום דנה, ת.ז. 000000018"
    assert result.complete


def test_unknown_token_stays_literal_by_default():
    result = fill_template("{{fullName}} {{doesNotExist}}", {"fullName": "דנה"})
    assert result.text == "דנה {{doesNotExist}}"
    assert result.missing_tokens == ["doesNotExist"]


def test_none_is_missing_but_empty_string_is_a_value():
    result = fill_template("[{{a}}][{{b}}]", {"a": None, "b": ""})
    assert result.text == "[{{a}}][]"
    assert result.missing_tokens == ["a"]


def test_remove_policy_blanks_missing_tokens():
    result = fill_template("x{{gone}}y{{gone}}", {}, MissingTokenPolicy.REMOVE)
    assert result.text == "xy"
    assert result.missing_tokens == ["gone"]


def test_error_policy_raises():
    with pytest.raises(TemplateFillError):
        fill_template("{{gone}}", {}, "error")


def test_find_tokens_in_order():
    assert find_tokens("{{b}} {{a}} {{b}}") == ["b", "a"]


def test_children_block_empty():
    assert generate_children_block([]) == "ילדים: אין ילדים משותפים"
    assert generate_children_block(None) == "ילדים: אין ילדים משותפים"


def test_children_block_lines(child):
    second = {"firstName": "יואב", "lastName": "ישראלי"}
    block = generate_children_block([child, second])
    assert block.splitlines() == [
        "ילדים משותפים:",
        "1. נועה ישראלי, ת.ז. 000000026, נולד/ה ביום 11/02/2014",
        f"2. יואב ישראלי, ת.ז. {BLANK}, נולד/ה ביום {BLANK}",
    ]


def test_claim_types_list():
    assert format_claim_types_list(["property", "custody"]) == (
        "1. תביעת/כתב הגנה רכושית\n2. תביעת/כתב הגנה משמורת"
    )


def test_format_date():
    assert format_date("2010-06-20") == "20/06/2010"
    assert format_date("2010-06-20T10:00:00Z") == "20/06/2010"
    assert format_date(date(2025, 1, 2)) == "02/01/2025"
    assert format_date("yesterday") == "yesterday"
    assert format_date(None) == ""


def test_build_template_data(valid_basic_info, property_form_data, today):
    data = build_template_data(valid_basic_info, property_form_data, ["property"], "דנה כהן", today=today)
    assert data["birthDate"] == "15/03/1985"
    assert data["weddingDay"] == "20/06/2010"
    assert data["weddingDate"] == "20/06/2010"
    assert data["relationshipType"] == "נשואים"
    assert data["applicantFullName"] == "ישראל ישראלי"
    assert data["respondentIdNumber"] == "123456782"
    assert data["date"] == "01/05/2025"
    assert data["signature"] == SIGNATURE_MARKER
    assert data["lawyerName"] == "דנה כהן"
    assert data["claimTypes"] == "1. תביעת/כתב הגנה רכושית"
    assert data["childrenBlock"].startswith("ילדים משותפים:")
    assert data["hasAssets"] == "yes"


def test_not_married_gets_placeholder_wedding_day(valid_basic_info):
    valid_basic_info["relationshipType"] = "notMarried"
    valid_basic_info.pop("weddingDay")
    data = build_template_data(valid_basic_info, {}, [], has_signature=False)
    assert data["weddingDay"] == "לא רלוונטי"
    assert data["signature"] == BLANK
    assert "lawyerName" not in data


@pytest.mark.parametrize("name", sorted(TEMPLATES))
def test_bundled_templates_fill_completely(name, valid_basic_info, property_form_data, today):
    data = build_template_data(valid_basic_info, property_form_data, ["property"], "דנה כהן", today=today)
    result = render_template(name, data)
    assert "{{" not in result.text, result.missing_tokens
    assert result.complete
