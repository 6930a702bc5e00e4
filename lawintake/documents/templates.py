"""
Text templates for legal documents and the `{{token}}` substitution engine.

Unmatched tokens are handled by a MissingTokenPolicy: kept as literal text
(default), removed, or raised as TemplateFillError. The FillResult always
lists them so callers can warn or fail.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from lawintake.models.claim import ClaimType, claim_label
from lawintake.utils.errors import TemplateFillError

TOKEN_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

SIGNATURE_MARKER = "[חתימה דיגיטלית]"
BLANK = "___________"

RELATIONSHIP_LABELS = {
    "married": "נשואים",
    "commonLaw": "ידועים בציבור",
    "separated": "פרודים",
    "notMarried": "לא נשואים",
}


class MissingTokenPolicy(str, Enum):
    KEEP = "keep"
    REMOVE = "remove"
    ERROR = "error"


@dataclass
class FillResult:
    """
    Attributes:
        text: Filled template
        missing_tokens: Token names with no value, in order of first appearance
    """
    text: str
    missing_tokens: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing_tokens


POWER_OF_ATTORNEY_TEMPLATE = """
ייפוי כוח לייצוג משפטי

אני הח"מ, {{fullName}}, ת.ז. {{idNumber}}, כתובת: {{address}},
טלפון: {{phone}}, דוא"ל: {{email}}

מיפה בזאת את כוחו של עו"ד {{lawyerName}} ו/או מי מטעמו לייצג אותי בתביעה בבית המשפט לענייני משפחה בעניין:

{{claimTypes}}

ייפוי כוח זה כולל את הסמכויות הבאות:
• להגיש בשמי כל תביעה, בקשה, או מסמך הנדרש
• להופיע בשמי בכל הליך שיפוטי
• לקבל החלטות משפטיות בשמי בהתייעצות עימי
• לחתום על כל מסמך הנדרש לצורך ייצוגי
• להגיע להסכמות ופשרות בכפוף לאישורי

ייפוי כוח זה תקף עד לסיום ההליכים המשפטיים הנוגעים לנושאים המפורטים לעיל או עד לביטולו בכתב על ידי.

תאריך: {{date}}

חתימה: {{signature}}

_______________________
{{fullName}}
"""

FORM_3_TEMPLATE = """
בית המשפט לענייני משפחה
טופס 3 - הרצאת פרטים

פרטי המבקש/ת:
שם מלא: {{fullName}}
מספר זהות: {{idNumber}}
כתובת: {{address}}
טלפון: {{phone}}
דוא"ל: {{email}}
תאריך לידה: {{birthDate}}

פרטי הנתבע/ת:
שם מלא: {{fullName2}}
מספר זהות: {{idNumber2}}
כתובת: {{address2}}
טלפון: {{phone2}}
דוא"ל: {{email2}}

פרטי הנישואין:
סטטוס: {{relationshipType}}
תאריך נישואין: {{weddingDay}}

{{childrenBlock}}

סוגי התביעות:
{{claimTypes}}

הנני מצהיר/ה בזאת כי הפרטים לעיל נכונים ומלאים למיטב ידיעתי.

תאריך: {{date}}

חתימה: {{signature}}

_______________________
{{fullName}}
"""

AFFIDAVIT_TEMPLATE = """
תצהיר

אני הח"מ, {{fullName}}, ת.ז. {{idNumber}}, לאחר שהוזהרתי כי עליי לומר את האמת וכי אהיה צפוי/ה לעונשים הקבועים בחוק אם לא אעשה כן, מצהיר/ה בזה כדלקמן:

אני המבקש/ת בתביעה זו ועושה תצהירי זה בתמיכה לכתב התביעה בעניין:
{{claimTypes}}

הנני מצהיר/ה כי זהו שמי, זו חתימתי ותוכן תצהירי אמת.

תאריך: {{date}}

חתימה: {{signature}}
"""

TEMPLATES: Dict[str, str] = {
    "powerOfAttorney": POWER_OF_ATTORNEY_TEMPLATE,
    "form3": FORM_3_TEMPLATE,
    "affidavit": AFFIDAVIT_TEMPLATE,
}


def find_tokens(template: str) -> List[str]:
    seen: List[str] = []
    for match in TOKEN_PATTERN.finditer(template):
        if match.group(1) not in seen:
            seen.append(match.group(1))
    return seen


def fill_template(
    template: str,
    data: Mapping[str, Any],
    policy: MissingTokenPolicy = MissingTokenPolicy.KEEP,
) -> FillResult:
    """
    Substitute every `{{token}}` with the matching value from data.

    A token is missing when its key is absent or None; an empty string is a
    real (empty) value.

    Raises:
        TemplateFillError: policy is ERROR and at least one token is missing
    """
    policy = MissingTokenPolicy(policy)
    missing: List[str] = []

    def substitute(match: "re.Match[str]") -> str:
        key = match.group(1)
        value = data.get(key)
        if value is None:
            if key not in missing:
                missing.append(key)
            return "" if policy == MissingTokenPolicy.REMOVE else match.group(0)
        return str(value)

    text = TOKEN_PATTERN.sub(substitute, template)
    if missing and policy == MissingTokenPolicy.ERROR:
        raise TemplateFillError.missing_tokens(missing)
    return FillResult(text=text, missing_tokens=missing)


def render_template(name: str, data: Mapping[str, Any],
                    policy: MissingTokenPolicy = MissingTokenPolicy.KEEP) -> FillResult:
    return fill_template(TEMPLATES[name], data, policy)


def generate_children_block(children: Optional[Sequence[Mapping[str, Any]]]) -> str:
    """One numbered line per child, or a no-shared-children line."""
    if not children:
        return "ילדים: אין ילדים משותפים"

    lines = ["ילדים משותפים:"]
    for index, child in enumerate(children, start=1):
        name = f"{child.get('firstName') or ''} {child.get('lastName') or ''}".strip()
        lines.append(
            f"{index}. {name}, "
            f"ת.ז. {child.get('idNumber') or BLANK}, "
            f"נולד/ה ביום {format_date(child.get('birthDate')) or BLANK}"
        )
    return "\n".join(lines)


def format_claim_types_list(claims: Iterable[str]) -> str:
    lines = []
    for index, claim in enumerate(claims, start=1):
        try:
            label = claim_label(ClaimType(claim))
        except ValueError:
            label = str(claim)
        lines.append(f"{index}. {label}")
    return "\n".join(lines)


def format_date(value: Any) -> str:
    """ISO date -> dd/mm/yyyy; anything unparseable is returned unchanged."""
    if not value:
        return ""
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    text = str(value)
    try:
        return date.fromisoformat(text[:10]).strftime("%d/%m/%Y")
    except ValueError:
        return text


def build_template_data(
    basic_info: Mapping[str, Any],
    form_data: Mapping[str, Any],
    claims: Iterable[str],
    lawyer_name: str = "",
    today: Optional[date] = None,
    has_signature: bool = True,
) -> Dict[str, Any]:
    """
    Aggregate wizard data into the flat record templates are filled from.

    Includes derived values (claim list, children block, formatted dates) and
    the applicant*/respondent* aliases used by court-form layouts.
    """
    claims = list(claims)
    data: Dict[str, Any] = {}
    data.update(form_data or {})
    data.update(basic_info or {})

    for key in ("birthDate", "birthDate2", "weddingDay"):
        if basic_info.get(key):
            data[key] = format_date(basic_info[key])

    relationship = basic_info.get("relationshipType")
    if relationship:
        data["relationshipType"] = RELATIONSHIP_LABELS.get(relationship, relationship)
    if relationship == "notMarried" and not basic_info.get("weddingDay"):
        data["weddingDay"] = "לא רלוונטי"

    data["claimTypes"] = format_claim_types_list(claims)
    data["childrenBlock"] = generate_children_block((form_data or {}).get("children") or [])
    data["date"] = format_date(today or date.today())
    data["signature"] = SIGNATURE_MARKER if has_signature else BLANK
    if lawyer_name:
        data["lawyerName"] = lawyer_name

    for prefix, suffix in (("applicant", ""), ("respondent", "2")):
        for field_name, alias in (
            ("fullName", "FullName"),
            ("idNumber", "IdNumber"),
            ("address", "Address"),
            ("phone", "Phone"),
            ("email", "Email"),
            ("birthDate", "BirthDate"),
        ):
            value = data.get(f"{field_name}{suffix}")
            if value is not None:
                data[f"{prefix}{alias}"] = value
    if data.get("weddingDay"):
        data["weddingDate"] = data["weddingDay"]

    return data
