"""Streamlit front end for the divorce wizard."""

from __future__ import annotations

import base64
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import streamlit as st

from lawintake.documents.service import DocumentGenerationService
from lawintake.models.claim import CLAIM_DESCRIPTIONS, CLAIM_LABELS, ClaimType
from lawintake.models.session import PaymentRecord, PaymentStatus, utcnow
from lawintake.schemas.fields import Field, FieldType, iter_visible_fields
from lawintake.schemas.questions import compiled_claim_fields, compiled_global_fields
from lawintake.services.email import EmailService
from lawintake.services.sessions import SessionService
from lawintake.services.submission import SubmissionService
from lawintake.storage.cloud_storage import S3Storage
from lawintake.storage.cms_client import CMSClient
from lawintake.storage.session_repository import CMSSessionRepository, InMemorySessionRepository
from lawintake.utils.config import Config
from lawintake.utils.errors import (
    ConfigurationError,
    IntakeError,
    SubmissionIncompleteError,
    ValidationFailedError,
)
from lawintake.utils.logging import setup_logging
from lawintake.validation.steps import ValidationResult
from lawintake.validation.validators import validate_email
from lawintake.wizard.store import LAST_STEP, STEP_TITLES, WizardState, WizardStep, WizardStore

logger = logging.getLogger(__name__)

APP_TITLE = "אשף גירושין"

RELATIONSHIP_OPTIONS = {
    "married": "נשואים",
    "commonLaw": "ידועים בציבור",
    "separated": "פרודים",
    "notMarried": "לא נשואים",
}

BASIC_INFO_FIELDS = [
    ("fullName", "שם מלא"),
    ("idNumber", "תעודת זהות"),
    ("address", "כתובת"),
    ("phone", "טלפון"),
    ("email", "אימייל"),
    ("birthDate", "תאריך לידה"),
]


@st.cache_resource
def get_services() -> Dict[str, Any]:
    """Build the services once per Streamlit server process."""
    config = Config.load()
    setup_logging(config.logging.level, config.logging.format, config.logging.file or None)

    if config.sessions.backend == "cms":
        repository = CMSSessionRepository(CMSClient(config.cms))
    else:
        repository = InMemorySessionRepository()
    sessions = SessionService(repository, config.sessions, config.app.base_url, config.submission.price_per_claim)
    email = EmailService(config.email)
    documents = DocumentGenerationService(config)

    submission = None
    try:
        submission = SubmissionService(config, S3Storage(config.storage), documents, email, sessions)
    except ConfigurationError as exc:
        logger.warning(f"Submission disabled: {exc}")

    return {
        "config": config,
        "sessions": sessions,
        "email": email,
        "documents": documents,
        "submission": submission,
    }


def _init_state() -> WizardStore:
    services = get_services()
    if "store" not in st.session_state:
        st.session_state.store = WizardStore(
            session_service=services["sessions"],
            price_per_claim=services["config"].submission.price_per_claim,
        )
        resume_id = st.query_params.get("session")
        if resume_id:
            _resume(st.session_state.store, resume_id)
    st.session_state.setdefault("errors", {})
    st.session_state.setdefault("submission_result", None)
    return st.session_state.store


def _resume(store: WizardStore, session_id: str) -> None:
    try:
        session = get_services()["sessions"].get(session_id)
    except IntakeError as exc:
        st.error(f"לא ניתן לשחזר את ההתקדמות: {exc.context.message}")
        return
    store.state = WizardState.from_dict(session.wizard_data)
    store.state.session_id = session.session_id
    store.state.email = session.email
    if session.payment_status == PaymentStatus.PAID:
        store.state.payment.paid = True
    st.success(f"ההתקדמות שוחזרה ({session.session_id})")


def _collect_files(value: Any) -> List[Dict[str, Any]]:
    """Every uploaded file in the answers, in answer order."""
    if isinstance(value, dict):
        if {"name", "data", "mimeType"} <= set(value):
            return [value]
        return [found for item in value.values() for found in _collect_files(item)]
    if isinstance(value, list):
        return [found for item in value for found in _collect_files(item)]
    return []


def _payload(store: WizardStore) -> Dict[str, Any]:
    state = store.state
    return {
        "basicInfo": state.basic_info,
        "formData": state.form_data,
        "selectedClaims": [claim.value for claim in state.selected_claims],
        "signature": state.signature,
        "sessionId": state.session_id,
        "attachments": _collect_files(state.form_data),
    }


def _show_errors(result: ValidationResult) -> None:
    st.session_state.errors = result.errors
    if result.errors:
        st.error("יש לתקן את השדות המסומנים")
        for path, message in result.errors.items():
            st.caption(f"• {path}: {message}")


# Field rendering


def _encode_upload(upload) -> Dict[str, str]:
    return {
        "name": upload.name,
        "mimeType": upload.type or "application/octet-stream",
        "data": base64.b64encode(upload.getvalue()).decode("ascii"),
    }


def _party_names(store: WizardStore) -> List[str]:
    info = store.state.basic_info
    return [name for name in (info.get("fullName"), info.get("fullName2")) if name]


def _render_field(item: Field, answers: Dict[str, Any], key: str, store: WizardStore) -> Any:
    current = answers.get(item.name)
    label = item.label
    if item.type in (FieldType.TEXT, FieldType.EMAIL, FieldType.TEL):
        return st.text_input(label, value=current or "", key=key, placeholder=item.placeholder or "")
    if item.type == FieldType.TEXTAREA:
        return st.text_area(label, value=current or "", key=key, height=120 if (item.max_rows or 5) > 3 else 80)
    if item.type == FieldType.NUMBER:
        return st.number_input(label, value=float(current or 0), min_value=0.0, step=100.0, key=key)
    if item.type == FieldType.DATE:
        chosen = st.date_input(
            label,
            value=date.fromisoformat(current) if current else None,
            min_value=date(1900, 1, 1),
            key=key,
        )
        return chosen.isoformat() if chosen else ""
    if item.type in (FieldType.RADIO, FieldType.SELECT):
        if item.use_dynamic_names:
            values = _party_names(store) or ["תובע/ת", "נתבע/ת"]
            labels = dict(zip(values, values))
        else:
            labels = {option.value: option.label for option in item.options}
            values = list(labels)
        index = values.index(current) if current in values else None
        widget = st.radio if item.type == FieldType.RADIO else st.selectbox
        return widget(label, values, index=index, format_func=labels.get, key=key)
    if item.type == FieldType.FILE:
        upload = st.file_uploader(label, key=key)
        return _encode_upload(upload) if upload else current
    if item.type == FieldType.FILE_LIST:
        uploads = st.file_uploader(label, accept_multiple_files=True, key=key)
        return [_encode_upload(upload) for upload in uploads] if uploads else (current or [])
    if item.type == FieldType.REPEATER:
        return _render_repeater(item, list(current or []), key, store)
    if item.type == FieldType.NEEDS_TABLE:
        return _render_needs_table(item, list(current or []), answers, key)
    return current


def _render_repeater(item: Field, items: List[Dict[str, Any]], key: str, store: WizardStore) -> List[Dict[str, Any]]:
    st.markdown(f"**{item.label}**")
    count = int(st.number_input("מספר פריטים", min_value=0, max_value=20, value=len(items), key=f"{key}.count"))
    items = (items + [{} for _ in range(count)])[:count]
    rendered = []
    for index, entry in enumerate(items):
        with st.expander(f"{item.label} #{index + 1}", expanded=True):
            rendered.append(render_fields(item.fields, dict(entry), f"{key}.{index}", store))
    return rendered


def _render_needs_table(item: Field, rows: List[Dict[str, Any]], answers: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """Needs rows as an editable grid: one column per child."""
    children = [child.get("firstName") or f"ילד {i + 1}" for i, child in enumerate(answers.get("children") or [])]
    st.markdown(f"**{item.label}**")
    table = []
    for row in rows or [{"name": "", "amounts": []}]:
        amounts = list(row.get("amounts") or []) + [None] * len(children)
        table.append({"name": row.get("name", ""), **dict(zip(children, amounts))})
    edited = st.data_editor(table, num_rows="dynamic", key=key)
    return [
        {"name": row.get("name", ""), "amounts": [row.get(child) for child in children]}
        for row in edited
        if row.get("name")
    ]


def render_fields(fields: Sequence[Field], answers: Dict[str, Any], prefix: str, store: WizardStore) -> Dict[str, Any]:
    """Render the visible fields and return the updated answers."""
    errors = st.session_state.get("errors") or {}
    for item in iter_visible_fields(fields, answers):
        if item.type == FieldType.HEADING:
            st.subheader(item.label)
            if item.description:
                st.caption(item.description)
            continue
        key = f"{prefix}.{item.name}"
        answers[item.name] = _render_field(item, answers, key, store)
        message = errors.get(key) or errors.get(key.split(".", 1)[-1])
        if message:
            st.caption(f":red[{message}]")
    return answers


# Steps


def render_basic_info(store: WizardStore) -> None:
    info = dict(store.state.basic_info)
    columns = st.columns(2)
    for column, suffix, title in ((columns[0], "", "פרטי התובע/ת"), (columns[1], "2", "פרטי הנתבע/ת")):
        with column:
            st.subheader(title)
            for name, label in BASIC_INFO_FIELDS:
                key = f"{name}{suffix}"
                if name == "birthDate":
                    chosen = st.date_input(
                        label,
                        value=date.fromisoformat(info[key]) if info.get(key) else None,
                        min_value=date(1900, 1, 1),
                        key=f"basic.{key}",
                    )
                    info[key] = chosen.isoformat() if chosen else ""
                else:
                    info[key] = st.text_input(label, value=info.get(key, ""), key=f"basic.{key}")

    relationship = st.radio(
        "סטטוס זוגי",
        list(RELATIONSHIP_OPTIONS),
        index=list(RELATIONSHIP_OPTIONS).index(info["relationshipType"]) if info.get("relationshipType") else None,
        format_func=RELATIONSHIP_OPTIONS.get,
        horizontal=True,
    )
    info["relationshipType"] = relationship
    if relationship and relationship != "notMarried":
        wedding = st.date_input(
            "תאריך נישואין",
            value=date.fromisoformat(info["weddingDay"]) if info.get("weddingDay") else None,
            min_value=date(1900, 1, 1),
        )
        info["weddingDay"] = wedding.isoformat() if wedding else ""
    store.set_basic_info(info)

    st.subheader("בחירת תביעות")
    for claim in ClaimType:
        selected = claim in store.state.selected_claims
        checked = st.checkbox(CLAIM_LABELS[claim], value=selected, help=CLAIM_DESCRIPTIONS[claim], key=f"claim.{claim.value}")
        if checked != selected:
            store.toggle_claim(claim.value)
    st.info(f"סה\"כ לתשלום: ₪{store.total_amount:,}")


def render_questions(store: WizardStore) -> None:
    st.subheader("שאלות כלליות")
    store.set_global_answers(render_fields(compiled_global_fields(), dict(store.state.global_answers), "global", store))

    claims = store.state.selected_claims
    if not claims:
        return
    for tab, claim in zip(st.tabs([CLAIM_LABELS[claim] for claim in claims]), claims):
        with tab:
            answers = dict(store.state.claim_answers.get(claim, {}))
            store.set_claim_answers(claim.value, render_fields(compiled_claim_fields(claim), answers, claim.value, store))


def render_review(store: WizardStore) -> None:
    documents: DocumentGenerationService = get_services()["documents"]
    payload = _payload(store)
    for claim in store.state.selected_claims:
        st.markdown(f"### {CLAIM_LABELS[claim]}")
        if st.button("הפקת טיוטה", key=f"draft.{claim.value}"):
            try:
                document = documents.generate(claim.value, payload)
            except IntakeError as exc:
                st.error(exc.context.message)
                continue
            st.download_button(
                "הורדת המסמך",
                data=document.content,
                file_name=document.filename,
                mime=document.mime_type,
                key=f"download.{claim.value}",
            )
            for page in document.page_images:
                st.image(page, caption="טופס 4")


def render_signature(store: WizardStore) -> None:
    st.write("יש להעלות תמונת חתימה (PNG) על רקע לבן.")
    upload = st.file_uploader("חתימה", type=["png"], key="signature.upload")
    if upload:
        store.set_signature(f"data:image/png;base64,{base64.b64encode(upload.getvalue()).decode('ascii')}")
    if store.state.signature:
        st.image(base64.b64decode(store.state.signature.split(",", 1)[-1]), width=300)


def render_payment(store: WizardStore) -> None:
    services = get_services()
    st.metric("סה\"כ לתשלום", f"₪{store.total_amount:,}")

    if not store.state.payment.paid:
        if st.button("תשלום (סימולציה)", type="primary"):
            record = PaymentRecord(paid=True, date=utcnow(), amount=store.total_amount,
                                   reference=f"SIM-{utcnow().strftime('%H%M%S%f')}")
            store.set_payment_data(record)
            if store.state.session_id:
                try:
                    services["sessions"].update_payment_status(
                        store.state.session_id, PaymentStatus.PAID.value, record.reference
                    )
                except IntakeError as exc:
                    st.warning(exc.context.message)
            st.rerun()
        return

    st.success(f"התשלום התקבל ({store.state.payment.reference})")
    submission: Optional[SubmissionService] = services["submission"]
    if submission is None:
        st.warning("שליחת התביעה אינה זמינה כרגע")
        return
    if st.button("שליחת התביעה", type="primary"):
        try:
            st.session_state.submission_result = submission.submit(_payload(store))
        except ValidationFailedError as exc:
            _show_errors(ValidationResult(valid=False, errors=exc.errors))
        except SubmissionIncompleteError as exc:
            st.error(exc.context.message)
            st.json(exc.failures)
        except IntakeError as exc:
            st.error(exc.context.message)
    result = st.session_state.submission_result
    if result:
        st.balloons()
        st.success(result["message"])
        st.write(f"תיקייה: {result['folderName']}")


STEP_RENDERERS = {
    WizardStep.BASIC_INFO: render_basic_info,
    WizardStep.QUESTIONS: render_questions,
    WizardStep.DOCUMENT_REVIEW: render_review,
    WizardStep.SIGNATURE: render_signature,
    WizardStep.PAYMENT: render_payment,
}


# Layout


def render_sidebar(store: WizardStore) -> None:
    services = get_services()
    with st.sidebar:
        st.header("שלבים")
        for step in WizardStep:
            reachable = step <= store.state.max_reached_step
            marker = "▶" if step == store.state.current_step else ("✓" if reachable else "○")
            if st.button(f"{marker} {STEP_TITLES[step]}", key=f"nav.{step.value}", disabled=not reachable):
                store.go_to_step(step.value)
                st.rerun()

        st.divider()
        st.subheader("שמירת התקדמות")
        if store.state.session_id:
            st.caption(f"מספר שמירה: {store.state.session_id}")
            return
        email = st.text_input("אימייל לקבלת קישור", value=store.state.basic_info.get("email", ""))
        if st.button("שמירה"):
            if not validate_email(email):
                st.error("כתובת האימייל אינה תקינה")
                return
            sessions: SessionService = services["sessions"]
            session = sessions.create(email, store.snapshot(), store.state.basic_info.get("phone"))
            store.attach_session(session.session_id, email)
            url = sessions.recovery_url(session.session_id)
            if not services["email"].send_session_saved(email, session.full_name or "", session.session_id, url):
                st.warning("לא ניתן היה לשלוח אימייל, שמרו את הקישור:")
            st.success(url)


def main() -> None:
    st.set_page_config(page_title=APP_TITLE, layout="wide")
    config = get_services()["config"]
    st.markdown("<style>body, .stApp { direction: rtl; text-align: right; }</style>", unsafe_allow_html=True)

    store = _init_state()
    render_sidebar(store)

    step = WizardStep(store.state.current_step)
    st.title(config.app.title)
    st.progress((step.value + 1) / (LAST_STEP + 1), text=f"שלב {step.value + 1}: {STEP_TITLES[step]}")

    STEP_RENDERERS[step](store)

    st.divider()
    back, forward = st.columns(2)
    with back:
        if st.button("הקודם", disabled=step == WizardStep.BASIC_INFO):
            store.prev_step()
            st.session_state.errors = {}
            st.rerun()
    with forward:
        if step < LAST_STEP and st.button("הבא", type="primary"):
            result = store.next_step()
            if result.valid:
                st.session_state.errors = {}
                st.rerun()
            _show_errors(result)


main()
