"""Base model and reusable annotated field types for the wizard schemas."""

import base64
import binascii
import io
from datetime import date
from typing import Annotated, Any, ClassVar, Dict, Literal, Optional

from PIL import Image, UnidentifiedImageError
from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from lawintake.validation.validators import (
    parse_date,
    validate_email,
    validate_israeli_id,
    validate_phone,
)


class IntakeModel(BaseModel):
    """
    Base for every wizard schema.

    Attributes are snake_case in Python and camelCase on the wire. Unknown keys
    are kept, since formData is one flat record shared by all claim schemas.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    # top-level field alias -> {pydantic error type -> message}
    field_messages: ClassVar[Dict[str, Dict[str, str]]] = {}

    def cross_field_errors(self) -> Dict[str, str]:
        """Rules spanning several fields; run only after field-level parsing passed."""
        return {}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def length(min_length: int, max_length: int, too_short: str, too_long: str) -> AfterValidator:
    def check(value: str) -> str:
        if len(value) < min_length:
            raise PydanticCustomError("text_too_short", too_short)
        if len(value) > max_length:
            raise PydanticCustomError("text_too_long", too_long)
        return value
    return AfterValidator(check)


def _check_id_number(value: str) -> str:
    if len(value) < 9:
        raise PydanticCustomError("id_too_short", "מספר זהות חייב להכיל 9 ספרות")
    if not validate_israeli_id(value):
        raise PydanticCustomError("israeli_id", "מספר זהות לא תקין")
    return value


def _check_phone(value: str) -> str:
    if not validate_phone(value):
        raise PydanticCustomError("phone", "מספר טלפון לא תקין")
    return value


def _check_email(value: str) -> str:
    if not validate_email(value):
        raise PydanticCustomError("email", "כתובת מייל לא תקינה")
    return value


def _check_adult_birth_date(value: str) -> str:
    if not value:
        raise PydanticCustomError("birth_date_missing", "יש למלא תאריך לידה")
    born = parse_date(value)
    if born is None:
        raise PydanticCustomError("date", "תאריך לא תקין")
    age = date.today().year - born.year
    if not 18 <= age <= 120:
        raise PydanticCustomError("adult", "יש להיות מעל גיל 18")
    return value


def _check_date(value: Optional[str]) -> Optional[str]:
    if value is not None and parse_date(value) is None:
        raise PydanticCustomError("date", "תאריך לא תקין")
    return value


def _required_text(value: str) -> str:
    if not value.strip():
        raise PydanticCustomError("required_text", "שדה חובה")
    return value


def _check_signature(value: str) -> str:
    try:
        if value.startswith("data:"):
            header, separator, encoded = value.partition(",")
            if not separator or ";base64" not in header:
                raise ValueError("not a base64 data URL")
        else:
            encoded = value
        raw = base64.b64decode(encoded, validate=True)
        with Image.open(io.BytesIO(raw)) as image:
            image.verify()
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError, SyntaxError):
        raise PydanticCustomError("signature", "החתימה אינה תקינה, נא לחתום מחדש")
    return value


FullName = Annotated[str, length(2, 100, "שם חייב להכיל לפחות 2 תווים", "שם ארוך מדי")]
Address = Annotated[str, length(5, 200, "כתובת חייבת להכיל לפחות 5 תווים", "כתובת ארוכה מדי")]
IdNumber = Annotated[str, AfterValidator(_check_id_number)]
Phone = Annotated[str, AfterValidator(_check_phone)]
Email = Annotated[str, AfterValidator(_check_email)]
AdultBirthDate = Annotated[str, AfterValidator(_check_adult_birth_date)]
RequiredText = Annotated[str, AfterValidator(_required_text)]
OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
OptionalDate = Annotated[Optional[str], BeforeValidator(_blank_to_none), AfterValidator(_check_date)]
OptionalNumber = Annotated[Optional[float], BeforeValidator(_blank_to_none)]
SignatureImage = Annotated[str, AfterValidator(_check_signature)]

YesNo = Literal["yes", "no"]
OptionalYesNo = Annotated[Optional[YesNo], BeforeValidator(_blank_to_none)]
HebrewYesNo = Literal["כן", "לא"]
