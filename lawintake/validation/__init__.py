"""Validation schemas for each wizard step."""

from .basic_info import BasicInfo
from .claims import CLAIM_ANSWER_MODELS, ChildFull, ChildSimple
from .global_questions import GlobalQuestions
from .steps import STEP_SCHEMAS, ValidationResult, validate_claims, validate_model, validate_step
from .validators import calculate_age, is_legal_adult, validate_email, validate_israeli_id, validate_phone

__all__ = [
    'BasicInfo',
    'CLAIM_ANSWER_MODELS',
    'ChildFull',
    'ChildSimple',
    'GlobalQuestions',
    'STEP_SCHEMAS',
    'ValidationResult',
    'calculate_age',
    'is_legal_adult',
    'validate_claims',
    'validate_email',
    'validate_israeli_id',
    'validate_model',
    'validate_phone',
    'validate_step',
]
