"""Step validation: run a schema and collect field-keyed Hebrew messages."""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, Mapping, Optional, Type

from pydantic import ValidationError

from lawintake.models.claim import ClaimType
from lawintake.validation.base import IntakeModel, SignatureImage
from lawintake.validation.basic_info import BasicInfo
from lawintake.validation.claims import CLAIM_ANSWER_MODELS
from lawintake.validation.global_questions import GlobalQuestions

# Generic messages per pydantic error type; custom validators carry their own
ERROR_MESSAGES: Dict[str, str] = {
    "missing": "שדה חובה",
    "literal_error": "יש לבחור אופציה",
    "enum": "יש לבחור אופציה",
    "string_type": "ערך לא תקין",
    "float_parsing": "יש להזין מספר",
    "float_type": "יש להזין מספר",
    "int_parsing": "יש להזין מספר",
    "list_type": "ערך לא תקין",
    "model_type": "ערך לא תקין",
    "dict_type": "ערך לא תקין",
    "bool_type": "ערך לא תקין",
    "bool_parsing": "ערך לא תקין",
    "too_short": "יש להוסיף לפחות פריט אחד",
}

INVALID_SECTION = "ערך לא תקין"
ROOT_ERROR = "__root__"


class SignatureStep(IntakeModel):
    signature: SignatureImage

    field_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "signature": {"missing": "נא לחתום על המסמכים"},
    }


class PaymentStep(IntakeModel):
    paid: bool = False

    def cross_field_errors(self) -> Dict[str, str]:
        if not self.paid:
            return {"paid": "יש להשלים את התשלום"}
        return {}


STEP_SCHEMAS: Dict[str, Type[IntakeModel]] = {
    "basicInfo": BasicInfo,
    "globalQuestions": GlobalQuestions,
    "signature": SignatureStep,
    "payment": PaymentStep,
    **{claim.value: model for claim, model in CLAIM_ANSWER_MODELS.items()},
}


@dataclass
class ValidationResult:
    """
    Outcome of validating one record.

    Attributes:
        valid: True when there are no errors
        data: Parsed record in wire (camelCase) form; empty when invalid
        errors: Field path (e.g. "children.0.idNumber") -> message
    """
    valid: bool
    data: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    def merge(self, other: "ValidationResult", prefix: Optional[str] = None) -> "ValidationResult":
        errors = dict(self.errors)
        for path, message in other.errors.items():
            errors[f"{prefix}.{path}" if prefix else path] = message
        return ValidationResult(valid=not errors, data=self.data, errors=errors)


def _error_path(loc: Iterable[Any]) -> str:
    return ".".join(str(part) for part in loc)


def _error_message(model: Type[IntakeModel], error: Mapping[str, Any]) -> str:
    loc = error.get("loc") or ()
    top = str(loc[0]) if loc else ""
    override = model.field_messages.get(top, {}).get(error["type"]) if len(loc) == 1 else None
    if override:
        return override
    return ERROR_MESSAGES.get(error["type"], error["msg"])


def validate_model(model: Type[IntakeModel], record: Optional[Mapping[str, Any]]) -> ValidationResult:
    """
    Validate a record against a schema without raising.

    Field-level errors come first; cross-field rules only run once the record
    parsed, and their messages are keyed by the field they concern.
    """
    if record is None:
        record = {}
    if not isinstance(record, Mapping):
        return ValidationResult(valid=False, errors={ROOT_ERROR: INVALID_SECTION})
    try:
        parsed = model.model_validate(dict(record))
    except ValidationError as exc:
        errors: Dict[str, str] = {}
        for error in exc.errors():
            path = _error_path(error.get("loc") or (ROOT_ERROR,))
            errors.setdefault(path, _error_message(model, error))
        return ValidationResult(valid=False, errors=errors)

    cross = parsed.cross_field_errors()
    if cross:
        return ValidationResult(valid=False, errors=cross)
    return ValidationResult(valid=True, data=parsed.model_dump(by_alias=True))


def validate_step(step: str, record: Optional[Mapping[str, Any]]) -> ValidationResult:
    """Validate a record for a named step ("basicInfo", "globalQuestions", a claim type, "signature", "payment")."""
    model = STEP_SCHEMAS.get(step)
    if model is None:
        raise KeyError(f"Unknown validation step: {step}")
    return validate_model(model, record)


def validate_claims(claims: Iterable[str], form_data: Optional[Mapping[str, Any]]) -> ValidationResult:
    """Validate the flat formData against every selected claim; errors are prefixed by claim type."""
    result = ValidationResult(valid=True)
    for claim in claims:
        claim_result = validate_model(CLAIM_ANSWER_MODELS[ClaimType(claim)], form_data)
        result = result.merge(claim_result, prefix=ClaimType(claim).value)
    return result
