"""Tests for wizard navigation and recovery-session mirroring."""

from lawintake.models.claim import ClaimType
from lawintake.models.session import PaymentRecord
from lawintake.services.sessions import SessionService
from lawintake.wizard.store import LAST_STEP, WizardState, WizardStep, WizardStore


def _store_on_questions(valid_basic_info) -> WizardStore:
    store = WizardStore()
    store.set_basic_info(valid_basic_info)
    store.toggle_claim("property")
    assert store.next_step().valid
    return store


def test_basic_info_step_needs_a_claim(valid_basic_info):
    store = WizardStore()
    store.set_basic_info(valid_basic_info)
    result = store.next_step()
    assert not result.valid
    assert result.errors == {"selectedClaims": "יש לבחור לפחות תביעה אחת"}
    assert store.state.current_step == WizardStep.BASIC_INFO


def test_toggle_claim_keeps_selection_order():
    store = WizardStore()
    assert store.toggle_claim("custody")
    assert store.toggle_claim("property")
    assert not store.toggle_claim("custody")
    assert store.state.selected_claims == [ClaimType.PROPERTY]
    assert store.total_amount == 3900


def test_next_step_advances_frontier(valid_basic_info):
    store = _store_on_questions(valid_basic_info)
    assert store.state.current_step == WizardStep.QUESTIONS
    assert store.state.max_reached_step == WizardStep.QUESTIONS


def test_go_to_step_rules(valid_basic_info):
    store = _store_on_questions(valid_basic_info)

    # back to an unlocked step, then forward again
    assert store.go_to_step(0)
    assert store.go_to_step(1)
    # two past the frontier
    assert not store.go_to_step(3)
    # out of range
    assert not store.go_to_step(-1)
    assert not store.go_to_step(LAST_STEP + 1)
    # one past the frontier, but the questions step does not validate yet
    assert not store.go_to_step(2)
    assert store.state.current_step == WizardStep.QUESTIONS


def test_go_to_next_step_only_from_frontier(valid_basic_info):
    store = _store_on_questions(valid_basic_info)
    store.go_to_step(0)
    assert not store.go_to_step(2)
    assert store.state.current_step == WizardStep.BASIC_INFO


def test_max_reached_step_never_decreases(valid_basic_info):
    store = _store_on_questions(valid_basic_info)
    store.prev_step()
    assert store.state.current_step == 0
    assert store.state.max_reached_step == 1


def test_questions_step_collects_per_claim_errors(valid_basic_info):
    store = _store_on_questions(valid_basic_info)
    store.toggle_claim("custody")
    result = store.validate_current_step()
    assert "property.hasAssets" in result.errors
    assert "custody.children" in result.errors
    assert "marriedBefore" in result.errors


def test_document_review_step_always_passes():
    store = WizardStore(WizardState(current_step=WizardStep.DOCUMENT_REVIEW, max_reached_step=2))
    assert store.next_step().valid
    assert store.state.current_step == WizardStep.SIGNATURE


def test_signature_and_payment_steps(signature_b64):
    store = WizardStore(WizardState(current_step=WizardStep.SIGNATURE, max_reached_step=3))
    assert not store.next_step().valid
    store.set_signature(signature_b64)
    assert store.next_step().valid

    assert not store.next_step().valid
    store.set_payment_data(PaymentRecord(paid=True, amount=3900, reference="SIM-1"))
    assert store.next_step().valid
    # last step is a ceiling
    assert store.state.current_step == LAST_STEP


def test_form_data_merges_global_and_claim_answers():
    state = WizardState(selected_claims=[ClaimType.PROPERTY, ClaimType.CUSTODY])
    state.global_answers = {"marriedBefore": "לא"}
    state.claim_answers = {
        ClaimType.PROPERTY: {"children": [], "hasAssets": "no"},
        ClaimType.CUSTODY: {"children": [{"firstName": "א"}], "custodyType": "shared"},
    }
    assert state.form_data == {
        "marriedBefore": "לא",
        "hasAssets": "no",
        "children": [{"firstName": "א"}],
        "custodyType": "shared",
    }


def test_state_round_trips_through_snapshot(valid_basic_info):
    store = _store_on_questions(valid_basic_info)
    store.set_claim_answers("property", {"hasAssets": "no"})
    restored = WizardState.from_dict(store.state.to_dict())
    assert restored.selected_claims == [ClaimType.PROPERTY]
    assert restored.claim_answers[ClaimType.PROPERTY] == {"hasAssets": "no"}
    assert restored.current_step == 1


def test_legacy_snapshot_spreads_form_data():
    restored = WizardState.from_dict({
        "currentStep": 2,
        "selectedClaims": ["property", "custody"],
        "formData": {"hasAssets": "yes"},
    })
    assert restored.max_reached_step == 2
    assert restored.claim_answers[ClaimType.CUSTODY] == {"hasAssets": "yes"}


def test_mutations_mirror_into_session(repository, config, valid_basic_info):
    sessions = SessionService(repository, config.sessions)
    session = sessions.create("israel@example.com", {})
    store = WizardStore(session_service=sessions)
    store.attach_session(session.session_id, "israel@example.com")
    store.set_basic_info(valid_basic_info)

    stored = sessions.get(session.session_id)
    assert stored.wizard_data["basicInfo"]["fullName"] == "ישראל ישראלי"
    assert stored.full_name == "ישראל ישראלי"


def test_mirror_failure_does_not_break_the_wizard(repository, config):
    sessions = SessionService(repository, config.sessions)
    store = WizardStore(session_service=sessions)
    store.attach_session("DW-2025-GONE00", "gone@example.com")
    store.toggle_claim("divorce")
    assert store.state.selected_claims == [ClaimType.DIVORCE]
    assert repository.get("DW-2025-GONE00") is None


def test_session_without_email_is_not_mirrored(repository, config, valid_basic_info):
    sessions = SessionService(repository, config.sessions)
    session = sessions.create("israel@example.com", {})
    store = WizardStore(session_service=sessions)
    store.state.session_id = session.session_id
    store.set_basic_info(valid_basic_info)
    assert sessions.get(session.session_id).wizard_data.get("basicInfo") is None

    store.attach_session(session.session_id, "israel@example.com")
    assert sessions.get(session.session_id).wizard_data["basicInfo"]["fullName"] == "ישראל ישראלי"


def test_configured_price_flows_into_totals(repository, config):
    config.submission.price_per_claim = 4500
    sessions = SessionService(repository, config.sessions, price_per_claim=config.submission.price_per_claim)
    store = WizardStore(session_service=sessions, price_per_claim=config.submission.price_per_claim)
    store.toggle_claim("property")
    store.toggle_claim("custody")

    assert store.total_amount == 9000
    assert store.snapshot()["totalAmount"] == 9000

    session = sessions.create("israel@example.com", {"selectedClaims": ["property"]})
    assert session.wizard_data["totalAmount"] == 4500
    store.attach_session(session.session_id, "israel@example.com")
    assert sessions.get(session.session_id).wizard_data["totalAmount"] == 9000
