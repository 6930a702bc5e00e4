"""Wizard state and navigation."""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional

from lawintake.models.claim import PRICE_PER_CLAIM, ClaimType, calculate_total
from lawintake.models.session import PaymentRecord
from lawintake.utils.errors import IntakeError, handle_secondary_failure
from lawintake.validation.steps import ValidationResult, validate_claims, validate_step

logger = logging.getLogger(__name__)


class WizardStep(IntEnum):
    BASIC_INFO = 0
    QUESTIONS = 1
    DOCUMENT_REVIEW = 2
    SIGNATURE = 3
    PAYMENT = 4


LAST_STEP = max(WizardStep)

STEP_TITLES: Dict[WizardStep, str] = {
    WizardStep.BASIC_INFO: "פרטים אישיים ובחירת תביעות",
    WizardStep.QUESTIONS: "שאלון",
    WizardStep.DOCUMENT_REVIEW: "סקירת מסמכים",
    WizardStep.SIGNATURE: "חתימה",
    WizardStep.PAYMENT: "תשלום ושליחה",
}


@dataclass
class WizardState:
    """
    Serializable snapshot of an in-progress wizard.

    Attributes:
        current_step: Step the user is on
        max_reached_step: Furthest step unlocked; never decreases
        selected_claims: Claim types in selection order
        basic_info: Both parties' details (camelCase keys)
        global_answers: Answers to the questions asked once per wizard
        claim_answers: Answers per claim type; shared fields repeat across claims
        signature: Base64 PNG signature
        payment: Simulated payment record
        session_id: Recovery session this state is mirrored into
        email: Address captured for that session
    """
    current_step: int = 0
    max_reached_step: int = 0
    selected_claims: List[ClaimType] = field(default_factory=list)
    basic_info: Dict[str, Any] = field(default_factory=dict)
    global_answers: Dict[str, Any] = field(default_factory=dict)
    claim_answers: Dict[ClaimType, Dict[str, Any]] = field(default_factory=dict)
    signature: Optional[str] = None
    payment: PaymentRecord = field(default_factory=PaymentRecord)
    session_id: Optional[str] = None
    email: Optional[str] = None

    @property
    def form_data(self) -> Dict[str, Any]:
        """Flat record of all answers, as sent to document generation and submission."""
        merged: Dict[str, Any] = dict(self.global_answers)
        for claim in self.selected_claims:
            merged.update(self.claim_answers.get(claim, {}))
        return merged

    def total(self, price_per_claim: int = PRICE_PER_CLAIM) -> int:
        return calculate_total((claim.value for claim in self.selected_claims), price_per_claim)

    def to_dict(self, price_per_claim: int = PRICE_PER_CLAIM) -> Dict[str, Any]:
        return {
            "currentStep": self.current_step,
            "maxReachedStep": self.max_reached_step,
            "selectedClaims": [claim.value for claim in self.selected_claims],
            "basicInfo": self.basic_info,
            "globalAnswers": self.global_answers,
            "claimAnswers": {claim.value: answers for claim, answers in self.claim_answers.items()},
            "formData": self.form_data,
            "signature": self.signature,
            "paymentData": self.payment.to_dict(),
            "totalAmount": self.total(price_per_claim),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "WizardState":
        data = data or {}
        claim_answers = {
            ClaimType(claim): dict(answers)
            for claim, answers in (data.get("claimAnswers") or {}).items()
        }
        selected = [ClaimType(claim) for claim in data.get("selectedClaims") or []]
        # Older snapshots only carry the flat formData
        if not claim_answers and data.get("formData"):
            for claim in selected:
                claim_answers[claim] = dict(data["formData"])
        current = int(data.get("currentStep") or 0)
        return cls(
            current_step=current,
            max_reached_step=max(current, int(data.get("maxReachedStep") or 0)),
            selected_claims=selected,
            basic_info=dict(data.get("basicInfo") or {}),
            global_answers=dict(data.get("globalAnswers") or {}),
            claim_answers=claim_answers,
            signature=data.get("signature"),
            payment=PaymentRecord.from_dict(data.get("paymentData")),
        )


class WizardStore:
    """
    Single source of truth for one user's wizard.

    Every mutation is mirrored into the recovery session once an email has
    been captured and a session exists, so a user who saved and left can
    resume from the emailed link.
    """

    def __init__(self, state: Optional[WizardState] = None, session_service: Any = None,
                 price_per_claim: int = PRICE_PER_CLAIM):
        self.state = state or WizardState()
        self.session_service = session_service
        self.price_per_claim = price_per_claim

    @property
    def total_amount(self) -> int:
        return self.state.total(self.price_per_claim)

    def snapshot(self) -> Dict[str, Any]:
        return self.state.to_dict(self.price_per_claim)

    # Mutations

    def set_basic_info(self, data: Dict[str, Any]) -> None:
        self.state.basic_info.update(data)
        self._mirror()

    def toggle_claim(self, claim: str) -> bool:
        """Add or remove a claim; returns True when the claim is now selected."""
        claim = ClaimType(claim)
        if claim in self.state.selected_claims:
            self.state.selected_claims.remove(claim)
            selected = False
        else:
            self.state.selected_claims.append(claim)
            selected = True
        self._mirror()
        return selected

    def set_claim_answers(self, claim: str, data: Dict[str, Any]) -> None:
        claim = ClaimType(claim)
        self.state.claim_answers.setdefault(claim, {}).update(data)
        self._mirror()

    def set_global_answers(self, data: Dict[str, Any]) -> None:
        self.state.global_answers.update(data)
        self._mirror()

    def set_signature(self, signature: Optional[str]) -> None:
        self.state.signature = signature
        self._mirror()

    def set_payment_data(self, payment: PaymentRecord) -> None:
        self.state.payment = payment
        self._mirror()

    def attach_session(self, session_id: str, email: str) -> None:
        self.state.session_id = session_id
        self.state.email = email
        self._mirror()

    def reset(self) -> None:
        session_service = self.session_service
        self.state = WizardState()
        self.session_service = session_service

    # Navigation

    def validate_current_step(self) -> ValidationResult:
        step = WizardStep(self.state.current_step)
        if step == WizardStep.BASIC_INFO:
            result = validate_step("basicInfo", self.state.basic_info)
            if not self.state.selected_claims:
                result = result.merge(
                    ValidationResult(valid=False, errors={"selectedClaims": "יש לבחור לפחות תביעה אחת"})
                )
            return result
        if step == WizardStep.QUESTIONS:
            result = validate_step("globalQuestions", self.state.global_answers)
            for claim in self.state.selected_claims:
                result = result.merge(
                    validate_claims([claim], self.state.claim_answers.get(claim, {}))
                )
            return result
        if step == WizardStep.SIGNATURE:
            return validate_step("signature", {"signature": self.state.signature})
        if step == WizardStep.PAYMENT:
            return validate_step("payment", {"paid": self.state.payment.paid})
        return ValidationResult(valid=True)

    def next_step(self) -> ValidationResult:
        """Advance one step if the current step validates; the last step is a ceiling."""
        result = self.validate_current_step()
        if not result.valid:
            logger.info(
                f"Step {self.state.current_step} blocked by {len(result.errors)} validation error(s)"
            )
            return result
        if self.state.current_step < LAST_STEP:
            self.state.current_step += 1
            self.state.max_reached_step = max(self.state.max_reached_step, self.state.current_step)
            self._mirror()
        return result

    def prev_step(self) -> None:
        if self.state.current_step > 0:
            self.state.current_step -= 1
            self._mirror()

    def go_to_step(self, step: int) -> bool:
        """
        Jump to a step already unlocked.

        The step right after the frontier is reachable only through next_step
        from the frontier itself; anything further ahead is rejected.
        """
        if step < 0 or step > LAST_STEP:
            return False
        if step <= self.state.max_reached_step:
            self.state.current_step = step
            self._mirror()
            return True
        if step == self.state.max_reached_step + 1 and self.state.current_step == self.state.max_reached_step:
            return self.next_step().valid
        return False

    # Recovery session mirroring

    def _mirror(self) -> None:
        if not (self.session_service and self.state.session_id and self.state.email):
            return
        try:
            self.session_service.update_wizard_data(self.state.session_id, self.snapshot())
        except IntakeError as exc:
            handle_secondary_failure(exc, "session mirror", logger)
