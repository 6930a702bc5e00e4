"""Declarative question schemas for the wizard."""

from .fields import Field, FieldType, Option, compile_fields, flatten_fields, iter_visible_fields
from .questions import (
    CLAIM_QUESTIONS,
    GLOBAL_QUESTIONS,
    SHARED_FIELDS,
    compile_all,
    compiled_claim_fields,
    compiled_global_fields,
)

__all__ = [
    'CLAIM_QUESTIONS',
    'GLOBAL_QUESTIONS',
    'SHARED_FIELDS',
    'Field',
    'FieldType',
    'Option',
    'compile_all',
    'compile_fields',
    'compiled_claim_fields',
    'compiled_global_fields',
    'flatten_fields',
    'iter_visible_fields',
]
