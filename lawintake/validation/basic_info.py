"""Schema for the first wizard step: both parties' details and the relationship."""

from typing import ClassVar, Dict, Literal

from lawintake.validation.base import (
    Address,
    AdultBirthDate,
    Email,
    FullName,
    IdNumber,
    IntakeModel,
    OptionalText,
    Phone,
)

RelationshipType = Literal["married", "commonLaw", "separated", "notMarried"]


class BasicInfo(IntakeModel):
    """
    Applicant (תובע/ת) and respondent (נתבע/ת) details.

    Respondent fields mirror the applicant's with a `2` suffix.
    """

    # Applicant
    full_name: FullName
    id_number: IdNumber
    address: Address
    phone: Phone
    email: Email
    birth_date: AdultBirthDate

    # Respondent
    full_name2: FullName
    id_number2: IdNumber
    address2: Address
    phone2: Phone
    email2: Email
    birth_date2: AdultBirthDate

    relationship_type: RelationshipType
    wedding_day: OptionalText = None

    field_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "relationshipType": {
            "missing": "יש לבחור סטטוס זוגי",
            "literal_error": "יש לבחור סטטוס זוגי",
        },
    }

    def cross_field_errors(self) -> Dict[str, str]:
        if self.relationship_type != "notMarried" and not self.wedding_day:
            return {"weddingDay": "תאריך נישואין נדרש"}
        return {}
