"""Question definitions per claim type, plus the global questions asked once."""

from functools import lru_cache
from typing import Any, Dict, List, Sequence

from lawintake.models.claim import ClaimType
from lawintake.schemas.fields import Field, FieldType, Option, compile_fields, yes_no

# Shared field registry

_CHILD_DETAILS = (
    Field(label="שם פרטי", type=FieldType.TEXT, name="firstName", required=True),
    Field(label="שם משפחה", type=FieldType.TEXT, name="lastName", required=True),
    Field(label="תעודת זהות", type=FieldType.TEXT, name="idNumber"),
    Field(label="תאריך לידה", type=FieldType.DATE, name="birthDate", required=True),
    Field(label="כתובת", type=FieldType.TEXT, name="address"),
    Field(label="שם ההורה שאינו המבקש", type=FieldType.TEXT, name="nameOfParent"),
)


def _employment(party: str, title: str, unknown_hint: bool) -> Field:
    hint = " (אם ידוע)" if unknown_hint else ""
    estimate = " (במידה ולא ידוע - אומדן)" if unknown_hint else ""
    placeholder = "הקלד סכום או אומדן" if unknown_hint else None
    return Field(
        label=f"סטטוס תעסוקתי של {title}",
        type=FieldType.RADIO,
        name=f"{party}EmploymentStatus",
        options=(
            Option(
                label="שכיר/ה",
                value="employee",
                fields=(
                    Field(label=f"כמה {title} מרוויח/ה ברוטו{estimate}", type=FieldType.NUMBER,
                          name=f"{party}GrossSalary", placeholder=placeholder),
                    Field(label=f"תלושים אחרונים{' (אם יש)' if unknown_hint else ''}", type=FieldType.FILE_LIST,
                          name=f"{party}PaySlips"),
                ),
            ),
            Option(
                label="עצמאי/ת",
                value="selfEmployed",
                fields=(
                    Field(label=f"מהות העיסוק{hint}", type=FieldType.TEXT, name=f"{party}Occupation"),
                    Field(label=f"מתי הוקם העסק{hint}", type=FieldType.DATE, name=f"{party}EstablishedDate"),
                    Field(label=f"על שם מי רשום{hint}", type=FieldType.TEXT, name=f"{party}RegisteredOwner"),
                    Field(label=f"כמה {title} מרוויח/ה ברוטו{estimate}", type=FieldType.NUMBER,
                          name=f"{party}GrossIncome", placeholder=placeholder),
                    Field(label='אישור רו"ח על השתכרות חודשית' + hint, type=FieldType.FILE,
                          name=f"{party}IncomeProof"),
                ),
            ),
        ),
    )


SHARED_FIELDS: Dict[str, Any] = {
    "children": (
        Field(label="אנא רשום עד חמש שורות על מערכת היחסים עם הילד", type=FieldType.TEXTAREA,
              name="childRelationship", max_rows=5),
    ) + _CHILD_DETAILS,
    "childrenSimple": _CHILD_DETAILS,
    "relationshipDescription": Field(
        label="אנא רשום עד 5 שורות על מערכת היחסים שלכם",
        type=FieldType.TEXTAREA,
        name="relationshipDescription",
        max_rows=5,
    ),
    "applicantEmployment": _employment("applicant", "המבקש/ת", unknown_hint=False),
    "respondentEmployment": _employment("respondent", "הנתבע/ת", unknown_hint=True),
}


def _owned_asset(label: str, name: str, value_field: Field, extra: Sequence[Field] = ()) -> Field:
    return Field(
        label=label,
        type=FieldType.REPEATER,
        name=name,
        fields=(
            value_field,
            Field(label="על שם מי", type=FieldType.SELECT, name="owner", use_dynamic_names=True),
        ) + tuple(extra),
    )


_PURCHASE_DATE = Field(label="מתי נרכש", type=FieldType.DATE, name="purchaseDate")
_AMOUNT = Field(label="כמות", type=FieldType.NUMBER, name="amount")
_DOCUMENT = Field(label="מסמך רלוונטי", type=FieldType.FILE, name="document")


PROPERTY_QUESTIONS: List[Field] = [
    Field(label="ילדים", type=FieldType.SHARED, shared_key="childrenSimple"),
    Field(label="", type=FieldType.SHARED, shared_key="relationshipDescription"),
    yes_no("האם קיים רכוש משותף לחלוקה?", "hasAssets", required=True),
    _owned_asset("דירות", "apartments", _PURCHASE_DATE),
    _owned_asset("רכבים", "vehicles", _PURCHASE_DATE),
    _owned_asset("תנאים סוציאליים", "benefits", _AMOUNT),
    _owned_asset("חסכונות", "savings", _AMOUNT, extra=(_DOCUMENT,)),
    _owned_asset(
        "חובות", "debts", _AMOUNT,
        extra=(Field(label="למה נלקח החוב", type=FieldType.TEXT, name="purpose"), _DOCUMENT),
    ),
    Field(label="", type=FieldType.SHARED, shared_key="applicantEmployment"),
    Field(label="", type=FieldType.SHARED, shared_key="respondentEmployment"),
    yes_no(
        "האם נפתחו הליכים בבית משפט", "courtProceedings",
        yes_fields=(Field(label="נא לצרף מסמך", type=FieldType.FILE, name="courtDocument"),),
    ),
    yes_no(
        "האם אתם מתגוררים יחד", "livingTogether",
        no_fields=(Field(label="ממתי לא מתגוררים יחד", type=FieldType.DATE, name="separationDate"),),
    ),
    Field(label="סעדים מבוקשים", type=FieldType.TEXTAREA, name="remedies"),
]

CUSTODY_QUESTIONS: List[Field] = [
    Field(label="ילדים", type=FieldType.SHARED, shared_key="children"),
    Field(
        label="סוג המשמורת המבוקשת",
        type=FieldType.RADIO,
        name="custodyType",
        options=(
            Option(label="משמורת בלעדית", value="exclusive"),
            Option(label="משמורת משותפת", value="shared"),
            Option(label="אחריות הורית שווה", value="equal"),
        ),
    ),
    Field(label="האם המשמורת צריכה להיות אצלך / אצלו ולמה?", type=FieldType.TEXTAREA,
          name="whoShouldHaveCustody", max_rows=5),
]

ALIMONY_QUESTIONS: List[Field] = [
    Field(label="ילדים", type=FieldType.SHARED, shared_key="children"),
    Field(
        label="האם הילדים גרים כרגע?",
        type=FieldType.RADIO,
        name="childrenLivingWith",
        options=(
            Option(label="אצל המבקש/ת", value="with_applicant"),
            Option(label="אצל הנתבע/ת", value="with_respondent"),
            Option(label="עדיין גרים תחת קורת גג משותפת", value="still_together"),
        ),
    ),
    Field(label="", type=FieldType.SHARED, shared_key="applicantEmployment"),
    Field(label="", type=FieldType.SHARED, shared_key="respondentEmployment"),
    yes_no("האם יש צרכים מיוחדים לילדים?", "hasChildrenNeeds", required=True),
    yes_no("האם יש הוצאות מדור ואחזקת בית?", "hasHouseholdNeeds", required=True),
    Field(label="צרכי הקטין", type=FieldType.NEEDS_TABLE, name="needsTable", depends_on="children"),
    Field(
        label="העלאת קבלות/אישורים",
        type=FieldType.FILE_LIST,
        name="receipts",
        description="העלו כאן קבלות או אישורים (ניתן לגרור ולשחרר קבצים או להעלות קבצים אחד אחרי השני)",
    ),
    Field(label="נא לפרט בקצרה רכיבי רכוש", type=FieldType.TEXTAREA, name="propertyDetails",
          placeholder="כתבו כאן פירוט קצר של רכיבי הרכוש", max_rows=4),
]

DIVORCE_QUESTIONS: List[Field] = [
    Field(label="", type=FieldType.SHARED, shared_key="relationshipDescription"),
    Field(label="ילדים", type=FieldType.SHARED, shared_key="children"),
    Field(label="מי רוצה להתגרש ולמה?", type=FieldType.TEXTAREA, name="whoWantsDivorceAndWhy", max_rows=5),
    Field(
        label="אם יש הוכחות לסיבת הגירושין, צרפו כאן",
        type=FieldType.REPEATER,
        name="divorceProofs",
        fields=(
            Field(label="קובץ הוכחה", type=FieldType.FILE, name="proofFile"),
            Field(label="הסבר קצר (לא חובה)", type=FieldType.TEXT, name="proofDescription"),
        ),
    ),
]

_AGREED = (
    Option(label="הגענו להסכמה", value="agreed"),
    Option(label="טרם הגענו להסכמה", value="notAgreed"),
    Option(label="לא רלוונטי", value="notRelevant"),
)

DIVORCE_AGREEMENT_QUESTIONS: List[Field] = [
    Field(label="ילדים", type=FieldType.SHARED, shared_key="childrenSimple"),
    Field(label="הסכמות לגבי הרכוש", type=FieldType.RADIO, name="propertyAgreement", options=_AGREED, required=True),
    Field(label="הסכמות לגבי המשמורת", type=FieldType.RADIO, name="custodyAgreement", options=_AGREED, required=True),
    Field(label="הסכמות לגבי המזונות", type=FieldType.RADIO, name="alimonyAgreement", options=_AGREED, required=True),
    Field(label="אנא רשום עד 5 שורות על מה הסכמתם", type=FieldType.TEXTAREA,
          name="relationshipAgreement", max_rows=5),
]

CLAIM_QUESTIONS: Dict[ClaimType, List[Field]] = {
    ClaimType.PROPERTY: PROPERTY_QUESTIONS,
    ClaimType.CUSTODY: CUSTODY_QUESTIONS,
    ClaimType.ALIMONY: ALIMONY_QUESTIONS,
    ClaimType.DIVORCE: DIVORCE_QUESTIONS,
    ClaimType.DIVORCE_AGREEMENT: DIVORCE_AGREEMENT_QUESTIONS,
}


def _global_yes_no(label: str, name: str, yes_fields: Sequence[Field] = ()) -> Field:
    return yes_no(label, name, yes_fields=yes_fields, yes="כן", no="לא", required=True)


_HOME_TYPES = (
    Option(label="בבעלות משותפת של בני הזוג", value="jointOwnership"),
    Option(label="בבעלות המבקש/ת", value="applicantOwnership"),
    Option(label="בבעלות הנתבע/ת", value="respondentOwnership"),
    Option(label="בשכירות", value="rental"),
    Option(label="אחר", value="other"),
)

GLOBAL_QUESTIONS: List[Field] = [
    Field(label="נישואין קודמים / ילדים", type=FieldType.HEADING),
    _global_yes_no("האם המבקש/ת היה/תה נשוי/אה בעבר?", "marriedBefore"),
    _global_yes_no("האם יש להמבקש/ת ילדים מנישואין קודמים?", "hadChildrenFromPrevious"),
    _global_yes_no("האם הנתבע/ת היה/תה נשוי/אה בעבר?", "marriedBefore2"),
    _global_yes_no("האם להנתבע/ת יש ילדים מנישואין קודמים?", "hadChildrenFromPrevious2"),
    Field(label="מצב דיור", type=FieldType.HEADING),
    Field(label="הדירה שבה גר/ה המבקש/ת היא:", type=FieldType.RADIO, name="applicantHomeType",
          options=_HOME_TYPES, required=True),
    Field(label="הדירה שבה גר/ה הנתבע/ת היא:", type=FieldType.RADIO, name="partnerHomeType",
          options=_HOME_TYPES, required=True),
    Field(label="אלימות במשפחה", type=FieldType.HEADING),
    _global_yes_no(
        "הוגשה בעבר בקשה לבית המשפט או לבית דין דתי למתן צו הגנה לפי החוק למניעת אלימות במשפחה?",
        "protectionOrderRequested",
        yes_fields=(
            Field(label="מתי", type=FieldType.DATE, name="protectionOrderDate"),
            Field(label="כנגד מי", type=FieldType.SELECT, name="protectionOrderAgainst", use_dynamic_names=True),
            Field(label="מספר התיק", type=FieldType.TEXT, name="protectionOrderCaseNumber"),
            Field(label="בפני מי נדון התיק", type=FieldType.TEXT, name="protectionOrderJudge"),
            yes_no(
                "האם ניתן צו הגנה?", "protectionOrderGiven", yes="כן", no="לא",
                yes_fields=(
                    Field(label="ניתן צו הגנה ביום", type=FieldType.DATE, name="protectionOrderGivenDate"),
                    Field(label="תוכן הצו", type=FieldType.TEXTAREA, name="protectionOrderContent"),
                ),
            ),
        ),
    ),
    _global_yes_no(
        "האם היו בעבר אירועי אלימות שהוגשה בגללם תלונה למשטרה ולא הוגשה בקשה לצו הגנה?",
        "pastViolenceReported",
        yes_fields=(Field(label="אם כן – פרט/י", type=FieldType.TEXTAREA, name="pastViolenceReportedDetails"),),
    ),
    Field(
        label="נתונים על תיקים אחרים בענייני המשפחה בין בני הזוג: (פרט לגבי כל תיק בנפרד)",
        type=FieldType.REPEATER,
        name="otherFamilyCases",
        fields=(
            Field(label="מספר התיק", type=FieldType.TEXT, name="caseNumber"),
            Field(label="בפני מי נדון התיק", type=FieldType.TEXT, name="court"),
            Field(label="מהות התיק", type=FieldType.TEXT, name="caseType"),
            Field(label="מתי הסתיים הדיון בתיק", type=FieldType.TEXT, name="status"),
        ),
    ),
    Field(label="רווחה וייעוץ", type=FieldType.HEADING),
    _global_yes_no("האם היית/ם בקשר עם מחלקת הרווחה?", "contactedWelfare"),
    _global_yes_no("האם היית/ם בקשר עם ייעוץ נישואין או ייעוץ זוגי?", "contactedMarriageCounseling"),
    _global_yes_no("האם אתם מוכנים להצטרף לייעוץ משפחתי?", "willingToJoinFamilyCounseling"),
    _global_yes_no("האם אתם מוכנים להצטרף להליך גישור?", "willingToJoinMediation"),
    Field(label="האם יש לכם ילדים משותפים?", type=FieldType.RADIO, name="hasSharedChildren",
          options=(Option(label="כן", value="yes"), Option(label="לא", value="no"))),
]


@lru_cache(maxsize=None)
def compiled_claim_fields(claim: ClaimType) -> List[Field]:
    """Claim questions with shared fields resolved; built once per claim type."""
    claim = ClaimType(claim)
    return compile_fields(claim.value, CLAIM_QUESTIONS[claim], SHARED_FIELDS)


@lru_cache(maxsize=1)
def compiled_global_fields() -> List[Field]:
    return compile_fields("global", GLOBAL_QUESTIONS, SHARED_FIELDS)


def compile_all() -> Dict[str, List[Field]]:
    """Compile every schema; raises SchemaError on the first malformed one."""
    compiled = {claim.value: compiled_claim_fields(claim) for claim in ClaimType}
    compiled["global"] = compiled_global_fields()
    return compiled
