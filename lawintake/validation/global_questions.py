"""Schema for questions asked once per wizard, regardless of the selected claims."""

from typing import ClassVar, Dict, List, Literal

from pydantic import Field

from lawintake.validation.base import HebrewYesNo, IntakeModel, OptionalDate, OptionalText, OptionalYesNo

HomeType = Literal["jointOwnership", "applicantOwnership", "respondentOwnership", "rental", "other"]

_REQUIRED_CHOICES = (
    "marriedBefore",
    "hadChildrenFromPrevious",
    "marriedBefore2",
    "hadChildrenFromPrevious2",
    "applicantHomeType",
    "partnerHomeType",
    "protectionOrderRequested",
    "pastViolenceReported",
    "contactedWelfare",
    "contactedMarriageCounseling",
    "willingToJoinFamilyCounseling",
    "willingToJoinMediation",
)


class FamilyCase(IntakeModel):
    case_number: OptionalText = None
    court: OptionalText = None
    case_type: OptionalText = None
    status: OptionalText = None


class GlobalQuestions(IntakeModel):
    married_before: HebrewYesNo
    had_children_from_previous: HebrewYesNo
    married_before2: HebrewYesNo
    had_children_from_previous2: HebrewYesNo

    applicant_home_type: HomeType
    partner_home_type: HomeType

    protection_order_requested: HebrewYesNo
    protection_order_date: OptionalDate = None
    protection_order_against: OptionalText = None
    protection_order_case_number: OptionalText = None
    protection_order_judge: OptionalText = None
    protection_order_given: OptionalText = None
    protection_order_given_date: OptionalDate = None
    protection_order_content: OptionalText = None

    past_violence_reported: HebrewYesNo
    past_violence_reported_details: OptionalText = None

    other_family_cases: List[FamilyCase] = Field(default_factory=list)

    contacted_welfare: HebrewYesNo
    contacted_marriage_counseling: HebrewYesNo
    willing_to_join_family_counseling: HebrewYesNo
    willing_to_join_mediation: HebrewYesNo

    has_shared_children: OptionalYesNo = None

    field_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        name: {"missing": "יש לבחור אופציה", "literal_error": "יש לבחור אופציה"}
        for name in _REQUIRED_CHOICES
    }
