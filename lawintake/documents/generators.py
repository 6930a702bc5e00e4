"""
Per-claim court document builders.

Every builder produces the same skeleton (court header, parties, claim
title, facts, remedies, Form 3, power of attorney, affidavit, signature,
attachments appendix); subclasses supply the claim-specific facts and
remedies.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from lawintake.documents.docx_builder import LegalDocument
from lawintake.documents.templates import (
    BLANK,
    MissingTokenPolicy,
    format_date,
    render_template,
)
from lawintake.models.claim import ClaimType

logger = logging.getLogger(__name__)

COURT_NAME = "בית המשפט לענייני משפחה"
COURT_FEE = "388₪ לפי סעיף 6ב לתוספת הראשונה לתקנות בית המשפט לענייני משפחה (אגרות), תשנ\"ו-1995."

CUSTODY_LABELS = {
    "exclusive": "משמורת בלעדית",
    "shared": "משמורת משותפת",
    "equal": "אחריות הורית שווה",
}
LIVING_WITH_LABELS = {
    "with_applicant": "הקטינים מתגוררים עם התובע/ת.",
    "with_respondent": "הקטינים מתגוררים עם הנתבע/ת.",
    "still_together": "הקטינים מתגוררים תחת קורת גג אחת, עם הוריהם.",
}
AGREEMENT_LABELS = {
    "agreed": "הצדדים הגיעו להסכמה",
    "notAgreed": "טרם הושגה הסכמה",
    "notRelevant": "לא רלוונטי",
}
ASSET_GROUPS = (
    ("apartments", "דירות", "מתי נרכש", "purchaseDate"),
    ("vehicles", "רכבים", "מתי נרכש", "purchaseDate"),
    ("benefits", "תנאים סוציאליים", "סכום", "amount"),
    ("savings", "חסכונות", "סכום", "amount"),
    ("debts", "חובות", "סכום", "amount"),
)


@dataclass
class BuildContext:
    """
    Everything a builder needs for one claim.

    Attributes:
        claim: Claim being built
        data: Aggregated template data (basic info + answers + derived values)
        signature_png: Client signature, decoded
        lawyer_signature_png: Office signature, when configured
        lawyer_name: Name printed under the power of attorney
        attachment_pages: (caption, png) pairs for the appendix
        form4_pages: Rendered Form 4 pages (alimony only)
        policy: Missing-token policy for the text templates
    """
    claim: ClaimType
    data: Dict[str, Any]
    signature_png: Optional[bytes] = None
    lawyer_signature_png: Optional[bytes] = None
    lawyer_name: str = ""
    attachment_pages: List[Tuple[str, bytes]] = field(default_factory=list)
    form4_pages: List[bytes] = field(default_factory=list)
    policy: MissingTokenPolicy = MissingTokenPolicy.KEEP


def _text(value: Any) -> str:
    if value is None or value == "":
        return BLANK
    return str(value)


def _child_name(child: Mapping[str, Any]) -> str:
    return f"{child.get('firstName') or ''} {child.get('lastName') or ''}".strip() or "הקטין/ה"


def _amount(value: Any) -> str:
    if value in (None, ""):
        return BLANK
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    return f"{number:,.0f} ₪"


def describe_employment(data: Mapping[str, Any], party: str, title: str) -> Optional[str]:
    """One sentence on a party's employment, or None when nothing was answered."""
    status = data.get(f"{party}EmploymentStatus")
    if status == "employee":
        salary = data.get(f"{party}GrossSalary")
        return f"{title} עובד/ת כשכיר/ה ומשתכר/ת {_amount(salary)} ברוטו לחודש."
    if status == "selfEmployed":
        occupation = data.get(f"{party}Occupation") or "עסק עצמאי"
        income = data.get(f"{party}GrossIncome")
        return f"{title} עובד/ת כעצמאי/ת ({occupation}) ומשתכר/ת {_amount(income)} ברוטו לחודש."
    return None


class ClaimDocumentBuilder:
    """Base builder; subclasses override title, facts and remedies."""

    claim: ClaimType
    title = "כתב תביעה"

    def __init__(self, context: BuildContext):
        self.context = context
        self.data = context.data
        self.doc = LegalDocument(context.signature_png, context.lawyer_signature_png)
        self.missing_tokens: List[str] = []

    def build(self) -> bytes:
        self.court_header()
        self.parties()
        self.doc.title(self.title)
        self.doc.paragraph(f"סכום אגרת בית משפט: {COURT_FEE}")
        self.doc.heading("חלק א: העובדות")
        self.facts(1)
        self.doc.heading("חלק ב: הסעדים המבוקשים")
        self.doc.numbered(self.remedies(), start=1)
        self.closing()
        self.statement_of_details()
        self.power_of_attorney()
        self.affidavit()
        self.attachments_appendix()
        logger.info(
            f"Built {self.claim.value} document: missing_tokens={len(self.missing_tokens)}, "
            f"attachments={len(self.context.attachment_pages)}"
        )
        return self.doc.to_bytes()

    # Shared sections

    def court_header(self) -> None:
        self.doc.paragraph(COURT_NAME, bold=True)
        self.doc.paragraph(f"תמ\"ש {BLANK}")

    def parties(self) -> None:
        for role, suffix in (("התובע/ת", ""), ("הנתבע/ת", "2")):
            self.doc.paragraph(f"{role}:", bold=True, underline=True)
            self.doc.labelled("שם מלא", _text(self.data.get(f"fullName{suffix}")))
            self.doc.labelled("ת.ז.", _text(self.data.get(f"idNumber{suffix}")))
            self.doc.labelled("כתובת", _text(self.data.get(f"address{suffix}")))
            self.doc.labelled("טלפון", _text(self.data.get(f"phone{suffix}")))
            if suffix == "":
                self.doc.paragraph("- נ ג ד -", bold=True)

    def facts(self, start: int) -> int:
        return self.doc.numbered(self.common_facts(), start=start)

    def common_facts(self) -> List[str]:
        facts = []
        relationship = self.data.get("relationshipType")
        wedding = self.data.get("weddingDay")
        if wedding and wedding != "לא רלוונטי":
            facts.append(f"הצדדים נישאו זה לזו ביום {wedding} ({relationship}).")
        elif relationship:
            facts.append(f"מעמד הצדדים: {relationship}.")
        children = self.data.get("children") or []
        if children:
            names = ", ".join(
                f"{_child_name(child)} (נולד/ה ביום {format_date(child.get('birthDate')) or BLANK})"
                for child in children
            )
            facts.append(f"לצדדים {len(children)} ילדים משותפים: {names}.")
        if self.data.get("relationshipDescription"):
            facts.append(str(self.data["relationshipDescription"]))
        return facts

    def remedies(self) -> List[str]:
        extra = self.data.get("remedies")
        return [str(extra)] if extra else []

    def closing(self) -> None:
        self.doc.paragraph()
        self.doc.paragraph(
            "לאור כל האמור לעיל, מתבקש בית המשפט הנכבד לזמן את הנתבע/ת לדין "
            "ולהעניק לתובע/ת את הסעדים המבוקשים."
        )
        self.doc.paragraph(f"תאריך: {self.data.get('date') or BLANK}")
        self.doc.lawyer_signature(self.context.lawyer_name)

    def _template_section(self, name: str) -> None:
        result = render_template(name, self.data, self.context.policy)
        for token in result.missing_tokens:
            if token not in self.missing_tokens:
                self.missing_tokens.append(token)
        self.doc.page_break()
        self.doc.text_block(result.text)

    def statement_of_details(self) -> None:
        self._template_section("form3")

    def power_of_attorney(self) -> None:
        self._template_section("powerOfAttorney")

    def affidavit(self) -> None:
        self._template_section("affidavit")
        self.doc.paragraph(
            f"אני הח\"מ, עו\"ד {self.context.lawyer_name or BLANK}, מאשר/ת כי הופיע/ה בפניי "
            f"{_text(self.data.get('fullName'))} ולאחר שהזהרתיו/ה חתם/ה על תצהירו/ה."
        )
        self.doc.lawyer_signature(self.context.lawyer_name)

    def attachments_appendix(self) -> None:
        if not self.context.attachment_pages:
            return
        self.doc.page_break()
        self.doc.title("נספחים")
        for number, (caption, _) in enumerate(self.context.attachment_pages, start=1):
            self.doc.paragraph(f"נספח {number}: {caption}")
        for number, (caption, png) in enumerate(self.context.attachment_pages, start=1):
            self.doc.image_page(png, caption=f"נספח {number} - {caption}")

    # Helpers for subclasses

    def children_table(self, children: Sequence[Mapping[str, Any]]) -> None:
        rows = [
            [
                _child_name(child),
                _text(child.get("idNumber")),
                format_date(child.get("birthDate")) or BLANK,
                _text(child.get("address")),
            ]
            for child in children
        ]
        self.doc.table(["שם הקטין/ה", "ת.ז.", "תאריך לידה", "כתובת"], rows)

    def employment_facts(self) -> List[str]:
        facts = [
            describe_employment(self.data, "applicant", "התובע/ת"),
            describe_employment(self.data, "respondent", "הנתבע/ת"),
        ]
        return [fact for fact in facts if fact]


class PropertyClaimBuilder(ClaimDocumentBuilder):
    claim = ClaimType.PROPERTY
    title = "כתב תביעה רכושית"

    def facts(self, start: int) -> int:
        number = self.doc.numbered(self.common_facts(), start=start)
        if self.data.get("hasAssets") == "yes":
            number = self.doc.numbered(["לצדדים רכוש משותף הטעון חלוקה, כמפורט להלן:"], start=number)
            for key, label, column, value_key in ASSET_GROUPS:
                items = self.data.get(key) or []
                if not items:
                    continue
                self.doc.paragraph(label, bold=True)
                rows = []
                for item in items:
                    value = item.get(value_key)
                    rows.append([
                        _text(item.get("owner")),
                        _amount(value) if value_key == "amount" else (format_date(value) or BLANK),
                        _text(item.get("purpose")) if key == "debts" else "",
                    ])
                headers = ["על שם", column, "מטרת החוב" if key == "debts" else "הערות"]
                self.doc.table(headers, rows)
        else:
            number = self.doc.numbered(["לטענת התובע/ת אין לצדדים רכוש משותף לחלוקה."], start=number)

        facts = self.employment_facts()
        if self.data.get("livingTogether") == "no":
            since = format_date(self.data.get("separationDate"))
            facts.append(f"הצדדים אינם מתגוררים יחד{' החל מיום ' + since if since else ''}.")
        elif self.data.get("livingTogether") == "yes":
            facts.append("הצדדים מתגוררים יחד נכון למועד הגשת התביעה.")
        if self.data.get("courtProceedings") == "yes":
            facts.append("בין הצדדים נפתחו הליכים נוספים בבית המשפט, כמפורט בנספחים.")
        return self.doc.numbered(facts, start=number)

    def remedies(self) -> List[str]:
        return [
            "להצהיר על זכויות הצדדים ברכוש המשותף ולהורות על איזון משאבים ביניהם.",
            "להורות על פירוק השיתוף בנכסים המשותפים וחלוקת התמורה בין הצדדים.",
            "לחייב את הנתבע/ת בהוצאות משפט ושכר טרחת עורך דין.",
        ] + super().remedies()


class CustodyClaimBuilder(ClaimDocumentBuilder):
    claim = ClaimType.CUSTODY
    title = "כתב תביעה למשמורת קטינים"

    def facts(self, start: int) -> int:
        number = self.doc.numbered(self.common_facts(), start=start)
        children = self.data.get("children") or []
        if children:
            self.children_table(children)
            for child in children:
                if child.get("childRelationship"):
                    self.doc.paragraph(f"הקשר עם {_child_name(child)}:", bold=True)
                    number = self.doc.numbered([str(child["childRelationship"])], start=number)
        facts = []
        custody = self.data.get("custodyType")
        if custody:
            facts.append(f"התובע/ת מבקש/ת {CUSTODY_LABELS.get(custody, custody)}.")
        if self.data.get("whoShouldHaveCustody"):
            facts.append(str(self.data["whoShouldHaveCustody"]))
        facts.append("טובת הילד היא עיקרון העל המנחה את בית המשפט בכל החלטה הנוגעת לקטינים.")
        return self.doc.numbered(facts, start=number)

    def remedies(self) -> List[str]:
        custody = CUSTODY_LABELS.get(self.data.get("custodyType") or "", "משמורת")
        return [
            f"לקבוע כי הקטינים יהיו ב{custody} בהתאם לטובתם.",
            "לקבוע הסדרי שהות וחלוקת זמנים בפועל, לפי טובת הילדים.",
            "למנות פקיד סעד שיגיש תסקיר.",
            "ליתן סעדים זמניים, ככל שבית המשפט יחשוב שזה עולה בקנה אחד עם טובת הילדים.",
        ] + super().remedies()


class AlimonyClaimBuilder(ClaimDocumentBuilder):
    claim = ClaimType.ALIMONY
    title = "כתב תביעה למזונות קטינים"

    def needs_rows(self) -> Tuple[List[str], List[List[str]], float]:
        children = self.data.get("children") or []
        headers = ["הצורך"] + [_child_name(child) for child in children]
        rows: List[List[str]] = []
        total = 0.0
        for row in self.data.get("needsTable") or []:
            amounts = list(row.get("amounts") or [])
            cells = [str(row.get("name") or "")]
            for index in range(len(children)):
                value = amounts[index] if index < len(amounts) else None
                cells.append(_amount(value))
                try:
                    total += float(value or 0)
                except (TypeError, ValueError):
                    logger.debug(f"Ignoring non-numeric need amount: {value!r}")
            rows.append(cells)
        return headers, rows, total

    def facts(self, start: int) -> int:
        number = self.doc.numbered(self.common_facts(), start=start)
        children = self.data.get("children") or []
        if children:
            self.children_table(children)
        facts = []
        living = self.data.get("childrenLivingWith")
        if living:
            facts.append(LIVING_WITH_LABELS.get(living, str(living)))
        facts.extend(self.employment_facts())
        if self.data.get("hasChildrenNeeds") == "yes":
            facts.append("לקטינים צרכים מיוחדים, כמפורט בטבלת הצרכים להלן.")
        if self.data.get("hasHouseholdNeeds") == "yes":
            facts.append("התובע/ת נושא/ת בהוצאות מדור ואחזקת בית עבור הקטינים.")
        number = self.doc.numbered(facts, start=number)

        headers, rows, total = self.needs_rows()
        if rows:
            self.doc.paragraph("צרכי הקטינים", bold=True)
            self.doc.table(headers, rows)
            self.doc.paragraph(f"סך הצרכים החודשיים: {_amount(total)}", bold=True)
        if self.data.get("propertyDetails"):
            number = self.doc.numbered([f"רכוש הצדדים: {self.data['propertyDetails']}"], start=number)
        return number

    def remedies(self) -> List[str]:
        _, _, total = self.needs_rows()
        amount = f" בסך {_amount(total)} לחודש" if total else ""
        return [
            f"לחייב את הנתבע/ת במזונות הקטינים{amount}, עד הגיעם לגיל 18 ובמהלך שירותם הצבאי.",
            "לחייב את הנתבע/ת בתשלום מדור ואחזקת מדור עבור הקטינים.",
            "לחייב את הנתבע/ת במחצית ההוצאות החריגות של הקטינים.",
            "לפסוק מזונות זמניים עד למתן פסק דין.",
        ] + super().remedies()

    def statement_of_details(self) -> None:
        super().statement_of_details()
        for number, page in enumerate(self.context.form4_pages, start=1):
            caption = "טופס 4 - הרצאת פרטים בתביעת מזונות" if number == 1 else None
            self.doc.image_page(page, caption=caption)


class DivorceClaimBuilder(ClaimDocumentBuilder):
    claim = ClaimType.DIVORCE
    title = "כתב תביעה לגירושין"

    def facts(self, start: int) -> int:
        number = self.doc.numbered(self.common_facts(), start=start)
        facts = []
        if self.data.get("whoWantsDivorceAndWhy"):
            facts.append(str(self.data["whoWantsDivorceAndWhy"]))
        facts.append("לאור האמור, אין עוד סיכוי לשלום בית בין הצדדים.")
        number = self.doc.numbered(facts, start=number)
        proofs = [proof for proof in self.data.get("divorceProofs") or [] if isinstance(proof, dict)]
        if proofs:
            self.doc.paragraph("ראיות לסיבת הגירושין:", bold=True)
            number = self.doc.numbered(
                [proof.get("proofDescription") or "ראיה מצורפת" for proof in proofs], start=number
            )
        return number

    def remedies(self) -> List[str]:
        return [
            "להתיר את קשר הנישואין בין הצדדים.",
            "לחייב את הנתבע/ת ליתן/לקבל גט פיטורין.",
        ] + super().remedies()


class DivorceAgreementBuilder(ClaimDocumentBuilder):
    claim = ClaimType.DIVORCE_AGREEMENT
    title = "הסכם גירושין"

    def parties(self) -> None:
        self.doc.paragraph("שנערך ונחתם ביום " + _text(self.data.get("date")))
        super().parties()

    def facts(self, start: int) -> int:
        facts = self.common_facts()
        for key, label in (
            ("propertyAgreement", "רכוש"),
            ("custodyAgreement", "משמורת"),
            ("alimonyAgreement", "מזונות"),
        ):
            status = self.data.get(key)
            if status:
                facts.append(f"{label}: {AGREEMENT_LABELS.get(status, status)}.")
        if self.data.get("relationshipAgreement"):
            facts.append(str(self.data["relationshipAgreement"]))
        return self.doc.numbered(facts, start=start)

    def remedies(self) -> List[str]:
        return [
            "לאשר את הסכם הגירושין וליתן לו תוקף של פסק דין.",
            "להורות על התרת קשר הנישואין בהתאם להסכם.",
        ]

    def closing(self) -> None:
        self.doc.paragraph()
        self.doc.paragraph("ולראיה באו הצדדים על החתום:", bold=True)
        self.doc.signature(f"{_text(self.data.get('fullName'))}:")
        self.doc.paragraph(f"{_text(self.data.get('fullName2'))}: {BLANK}")


GENERATORS: Dict[ClaimType, Type[ClaimDocumentBuilder]] = {
    ClaimType.PROPERTY: PropertyClaimBuilder,
    ClaimType.CUSTODY: CustodyClaimBuilder,
    ClaimType.ALIMONY: AlimonyClaimBuilder,
    ClaimType.DIVORCE: DivorceClaimBuilder,
    ClaimType.DIVORCE_AGREEMENT: DivorceAgreementBuilder,
}
