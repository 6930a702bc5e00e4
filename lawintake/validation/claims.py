"""Typed answer schemas, one per claim type."""

from typing import Any, ClassVar, Dict, List, Literal, Optional, Type

from pydantic import Field

from lawintake.models.claim import ClaimType
from lawintake.validation.base import (
    IntakeModel,
    OptionalDate,
    OptionalNumber,
    OptionalText,
    OptionalYesNo,
    RequiredText,
    YesNo,
)

AT_LEAST_ONE_CHILD = "יש להוסיף לפחות ילד אחד"
CHOOSE_OPTION = "יש לבחור אופציה"

EmploymentStatus = Literal["employee", "selfEmployed"]
AgreementStatus = Literal["agreed", "notAgreed", "notRelevant"]


class ChildSimple(IntakeModel):
    """Child entry without the relationship narrative."""

    first_name: RequiredText
    last_name: RequiredText
    birth_date: RequiredText
    id_number: OptionalText = None
    address: OptionalText = None
    name_of_parent: OptionalText = None


class ChildFull(ChildSimple):
    """Child entry used where custody or support is argued; the ID is required."""

    id_number: RequiredText
    child_relationship: OptionalText = None


class OwnedAsset(IntakeModel):
    purchase_date: OptionalDate = None
    amount: OptionalNumber = None
    owner: OptionalText = None
    purpose: OptionalText = None
    document: Optional[Any] = None


class NeedRow(IntakeModel):
    """One row of the minors' needs table: a need and an amount per child."""

    name: str = ""
    amounts: List[Any] = Field(default_factory=list)


class DivorceProof(IntakeModel):
    proof_file: Optional[Any] = None
    proof_description: OptionalText = None


class EmploymentAnswers(IntakeModel):
    """Shared applicant/respondent employment fields."""

    applicant_employment_status: Optional[EmploymentStatus] = None
    applicant_gross_salary: OptionalNumber = None
    applicant_occupation: OptionalText = None
    applicant_established_date: OptionalDate = None
    applicant_registered_owner: OptionalText = None
    applicant_gross_income: OptionalNumber = None

    respondent_employment_status: Optional[EmploymentStatus] = None
    respondent_gross_salary: OptionalNumber = None
    respondent_occupation: OptionalText = None
    respondent_established_date: OptionalDate = None
    respondent_registered_owner: OptionalText = None
    respondent_gross_income: OptionalNumber = None


class PropertyAnswers(EmploymentAnswers):
    children: List[ChildSimple] = Field(default_factory=list)
    relationship_description: OptionalText = None
    has_assets: YesNo
    apartments: List[OwnedAsset] = Field(default_factory=list)
    vehicles: List[OwnedAsset] = Field(default_factory=list)
    benefits: List[OwnedAsset] = Field(default_factory=list)
    savings: List[OwnedAsset] = Field(default_factory=list)
    debts: List[OwnedAsset] = Field(default_factory=list)
    court_proceedings: OptionalYesNo = None
    living_together: OptionalYesNo = None
    separation_date: OptionalDate = None
    remedies: OptionalText = None

    field_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "hasAssets": {"missing": CHOOSE_OPTION, "literal_error": CHOOSE_OPTION},
    }


class CustodyAnswers(IntakeModel):
    children: List[ChildFull] = Field(min_length=1)
    custody_type: Optional[Literal["exclusive", "shared", "equal"]] = None
    who_should_have_custody: OptionalText = None

    field_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "children": {"missing": AT_LEAST_ONE_CHILD, "too_short": AT_LEAST_ONE_CHILD},
    }


class AlimonyAnswers(EmploymentAnswers):
    children: List[ChildFull] = Field(min_length=1)
    children_living_with: Optional[Literal["with_applicant", "with_respondent", "still_together"]] = None
    has_children_needs: YesNo
    has_household_needs: YesNo
    needs_table: List[NeedRow] = Field(default_factory=list)
    property_details: OptionalText = None

    field_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "children": {"missing": AT_LEAST_ONE_CHILD, "too_short": AT_LEAST_ONE_CHILD},
        "hasChildrenNeeds": {"missing": CHOOSE_OPTION, "literal_error": CHOOSE_OPTION},
        "hasHouseholdNeeds": {"missing": CHOOSE_OPTION, "literal_error": CHOOSE_OPTION},
    }


class DivorceAnswers(IntakeModel):
    relationship_description: OptionalText = None
    children: List[ChildFull] = Field(default_factory=list)
    who_wants_divorce_and_why: OptionalText = None
    divorce_proofs: List[DivorceProof] = Field(default_factory=list)


class DivorceAgreementAnswers(IntakeModel):
    children: List[ChildSimple] = Field(default_factory=list)
    property_agreement: AgreementStatus
    custody_agreement: AgreementStatus
    alimony_agreement: AgreementStatus
    relationship_agreement: OptionalText = None

    field_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        name: {"missing": CHOOSE_OPTION, "literal_error": CHOOSE_OPTION}
        for name in ("propertyAgreement", "custodyAgreement", "alimonyAgreement")
    }


CLAIM_ANSWER_MODELS: Dict[ClaimType, Type[IntakeModel]] = {
    ClaimType.PROPERTY: PropertyAnswers,
    ClaimType.CUSTODY: CustodyAnswers,
    ClaimType.ALIMONY: AlimonyAnswers,
    ClaimType.DIVORCE: DivorceAnswers,
    ClaimType.DIVORCE_AGREEMENT: DivorceAgreementAnswers,
}
