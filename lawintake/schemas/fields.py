"""Field descriptors and the compile step that resolves shared fields."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from lawintake.utils.errors import SchemaError


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    EMAIL = "email"
    TEL = "tel"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    FILE = "file"
    FILE_LIST = "fileList"
    REPEATER = "repeater"
    NEEDS_TABLE = "needsTable"
    HEADING = "heading"
    SHARED = "shared"


# Types that render but never hold an answer
NON_VALUE_TYPES = {FieldType.HEADING, FieldType.SHARED}


@dataclass(frozen=True)
class Option:
    """A choice of a radio/select field; picking it reveals `fields`."""
    label: str
    value: str
    fields: Sequence["Field"] = ()


@dataclass(frozen=True)
class Field:
    """
    Declarative question descriptor.

    Attributes:
        label: Hebrew label shown to the user
        type: FieldType tag interpreted by the form renderer
        name: Answer key; unique within a claim's flattened field set
        options: Choices for radio/select fields
        fields: Sub-fields of a repeater (scoped to each repeated item)
        depends_on: Name of an answer that must be non-empty for this field to render
        shared_key: For `shared` entries, the key into SHARED_FIELDS
        use_dynamic_names: Select options are the two party names from basic info
    """
    label: str
    type: FieldType
    name: Optional[str] = None
    options: Sequence[Option] = ()
    fields: Sequence["Field"] = ()
    depends_on: Optional[str] = None
    shared_key: Optional[str] = None
    required: bool = False
    placeholder: Optional[str] = None
    use_dynamic_names: bool = False
    max_rows: Optional[int] = None
    description: Optional[str] = None

    @property
    def holds_value(self) -> bool:
        return self.type not in NON_VALUE_TYPES

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"label": self.label, "type": self.type.value}
        if self.name:
            payload["name"] = self.name
        if self.options:
            payload["options"] = [
                {
                    "label": option.label,
                    "value": option.value,
                    **({"fields": [f.to_dict() for f in option.fields]} if option.fields else {}),
                }
                for option in self.options
            ]
        if self.fields:
            payload["fields"] = [f.to_dict() for f in self.fields]
        for key, value in (
            ("dependsOn", self.depends_on),
            ("sharedKey", self.shared_key),
            ("placeholder", self.placeholder),
            ("maxRows", self.max_rows),
            ("description", self.description),
        ):
            if value is not None:
                payload[key] = value
        if self.required:
            payload["required"] = True
        if self.use_dynamic_names:
            payload["useDynamicNames"] = True
        return payload


def yes_no(label: str, name: str, yes_fields: Sequence[Field] = (), no_fields: Sequence[Field] = (),
           yes: str = "yes", no: str = "no", required: bool = False) -> Field:
    """Radio field with a yes/no pair of options."""
    return Field(
        label=label,
        type=FieldType.RADIO,
        name=name,
        required=required,
        options=(
            Option(label="כן", value=yes, fields=tuple(yes_fields)),
            Option(label="לא", value=no, fields=tuple(no_fields)),
        ),
    )


def resolve_shared(entry: Field, registry: Mapping[str, Any], claim: str) -> Field:
    """Expand a `shared` entry into the concrete field it references."""
    target = registry.get(entry.shared_key or "")
    if target is None:
        raise SchemaError.invalid(claim, f"unknown shared key '{entry.shared_key}'")

    if isinstance(target, Field):
        if entry.label and entry.label != target.label:
            return replace(target, label=entry.label)
        return target

    # A list of fields is a repeated group; every children variant stores under "children"
    return Field(
        label=entry.label or entry.shared_key,
        type=FieldType.REPEATER,
        name="children" if entry.shared_key.startswith("children") else entry.shared_key,
        fields=tuple(target),
        depends_on=entry.depends_on,
    )


def flatten_fields(fields: Sequence[Field]) -> Iterator[Field]:
    """
    Yield every field in the top-level answer namespace.

    Option sub-fields are conditional but share the namespace; repeater
    sub-fields are scoped to each item and are not yielded.
    """
    for item in fields:
        yield item
        for option in item.options:
            yield from flatten_fields(option.fields)


def compile_fields(claim: str, entries: Sequence[Field], registry: Mapping[str, Any]) -> List[Field]:
    """
    Resolve shared entries and check that answer names are unique.

    Args:
        claim: Schema name used in error messages
        entries: Declared fields, possibly containing `shared` indirections
        registry: Shared field registry

    Returns:
        Field list with no `shared` entries left

    Raises:
        SchemaError: On an unknown shared key or a duplicate answer name
    """
    resolved = [
        resolve_shared(entry, registry, claim) if entry.type == FieldType.SHARED else entry
        for entry in entries
    ]

    seen: Dict[str, str] = {}
    for item in flatten_fields(resolved):
        if not item.holds_value:
            continue
        if not item.name:
            raise SchemaError.invalid(claim, f"field '{item.label}' has no name")
        if item.name in seen:
            raise SchemaError.invalid(claim, f"duplicate field name '{item.name}'")
        seen[item.name] = item.label
        _check_repeater(claim, item)

    return resolved


def _check_repeater(claim: str, item: Field) -> None:
    if item.type != FieldType.REPEATER:
        return
    names = [sub.name for sub in flatten_fields(item.fields) if sub.holds_value]
    duplicates = {name for name in names if names.count(name) > 1}
    if duplicates:
        raise SchemaError.invalid(
            claim, f"duplicate field name(s) {sorted(duplicates)} in repeater '{item.name}'"
        )


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, dict, tuple)):
        return len(value) > 0
    return True


def iter_visible_fields(fields: Sequence[Field], answers: Mapping[str, Any]) -> Iterator[Field]:
    """
    Yield the fields a renderer should show for the current answers.

    A field with `depends_on` is hidden until that answer is non-empty; the
    sub-fields of an option appear only while that option is selected.
    """
    for item in fields:
        if item.depends_on and not _has_value(answers.get(item.depends_on)):
            continue
        yield item
        if item.options and item.name:
            selected = answers.get(item.name)
            for option in item.options:
                if option.value == selected:
                    yield from iter_visible_fields(option.fields, answers)
