"""FastAPI backend for the divorce intake site: wizard API, documents, submission and blog."""

from __future__ import annotations

import hmac
import io
import logging
import os
import uuid
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Optional, Type
from urllib.parse import quote

from fastapi import Depends, FastAPI, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from lawintake.documents.service import DocumentGenerationService
from lawintake.models.claim import calculate_total
from lawintake.models.document import PDF_MIME
from lawintake.models.session import PaymentRecord, PaymentStatus, SubmissionStatus, to_iso, utcnow
from lawintake.services.blog import SLUG_TO_CATEGORY, BlogService
from lawintake.services.email import EmailService
from lawintake.services.sessions import SessionService
from lawintake.services.submission import SubmissionService
from lawintake.storage.cloud_storage import CloudStorage, S3Storage
from lawintake.storage.cms_client import CMSClient
from lawintake.storage.session_repository import (
    CMSSessionRepository,
    InMemorySessionRepository,
    SessionRepository,
)
from lawintake.utils.config import Config
from lawintake.utils.errors import (
    IntakeError,
    UpstreamServiceError,
    ValidationFailedError,
)
from lawintake.utils.logging import setup_logging
from lawintake.validation.validators import validate_email

logger = logging.getLogger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.yaml")
GENERIC_ERROR = "אירעה שגיאה בלתי צפויה, נא לנסות שוב מאוחר יותר"
INVALID_EMAIL = "כתובת האימייל אינה תקינה"
REQUIRED_FIELDS = "נא למלא את כל השדות הנדרשים"


# Dependency providers


@lru_cache(maxsize=1)
def get_config() -> Config:
    return Config.load(CONFIG_PATH)


@lru_cache(maxsize=1)
def _memory_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


def get_session_repository(config: Config = Depends(get_config)) -> SessionRepository:
    if config.sessions.backend == "cms":
        return CMSSessionRepository(CMSClient(config.cms))
    return _memory_repository()


def get_storage(config: Config = Depends(get_config)) -> CloudStorage:
    return S3Storage(config.storage)


def get_email_service(config: Config = Depends(get_config)) -> EmailService:
    return EmailService(config.email)


def get_session_service(
    config: Config = Depends(get_config),
    repository: SessionRepository = Depends(get_session_repository),
) -> SessionService:
    return SessionService(repository, config.sessions, config.app.base_url, config.submission.price_per_claim)


def get_document_service(config: Config = Depends(get_config)) -> DocumentGenerationService:
    return DocumentGenerationService(config)


def get_blog_service(config: Config = Depends(get_config)) -> BlogService:
    return BlogService(CMSClient(config.cms))


def get_submission_service(
    config: Config = Depends(get_config),
    storage: CloudStorage = Depends(get_storage),
    documents: DocumentGenerationService = Depends(get_document_service),
    email_service: EmailService = Depends(get_email_service),
    session_service: SessionService = Depends(get_session_service),
) -> SubmissionService:
    return SubmissionService(config, storage, documents, email_service, session_service)


# Application


_config = get_config()
setup_logging(_config.logging.level, _config.logging.format, _config.logging.file or None)

app = FastAPI(title=_config.app.title)
templates = Jinja2Templates(directory="templates")


@app.exception_handler(IntakeError)
async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc}")
    return JSONResponse(jsonable_encoder(exc.to_response()), status_code=exc.status_code)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
    return JSONResponse({"success": False, "error": GENERIC_ERROR}, status_code=500)


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationFailedError.from_errors({"body": "גוף הבקשה אינו JSON תקין"}) from e
    if not isinstance(body, dict):
        raise ValidationFailedError.from_errors({"body": "גוף הבקשה אינו JSON תקין"})
    return body


def _parse_status(enum: Type[Enum], value: Any, field: str) -> str:
    allowed = {member.value for member in enum}
    if value not in allowed:
        raise ValidationFailedError.from_errors({field: f"ערך לא תקין: {value}"})
    return value


def _attachment_headers(filename: str, **extra: str) -> Dict[str, str]:
    headers = {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}
    headers.update(extra)
    return headers


# Contact


@app.post("/api/contact")
async def contact(
    request: Request,
    email_service: EmailService = Depends(get_email_service),
) -> JSONResponse:
    body = await _json_body(request)
    values = {key: str(body.get(key) or "").strip() for key in ("name", "email", "message")}
    missing = [key for key, value in values.items() if not value]
    if missing:
        raise ValidationFailedError.missing_fields(missing, message=REQUIRED_FIELDS)
    if not validate_email(values["email"]):
        raise ValidationFailedError.from_errors({"email": INVALID_EMAIL}, message=INVALID_EMAIL)
    phone = str(body.get("phone") or "").strip() or None

    notified = await run_in_threadpool(
        email_service.send_contact_notification, values["name"], values["email"], values["message"], phone
    )
    if not notified:
        raise UpstreamServiceError.email_failed("contact notification")

    replied = await run_in_threadpool(email_service.send_contact_auto_reply, values["email"], values["name"])
    if not replied:
        logger.warning(f"Contact auto-reply to {values['email']} was not sent")

    return JSONResponse({"success": True, "message": "ההודעה נשלחה בהצלחה"})


# Sessions


@app.post("/api/sessions/create")
async def create_session(
    request: Request,
    session_service: SessionService = Depends(get_session_service),
    email_service: EmailService = Depends(get_email_service),
) -> JSONResponse:
    body = await _json_body(request)
    email = str(body.get("email") or "").strip()
    if not email or not validate_email(email):
        raise ValidationFailedError.from_errors({"email": INVALID_EMAIL}, message=INVALID_EMAIL)
    wizard_data = body.get("wizardState") or body.get("wizardData") or {}
    if not isinstance(wizard_data, dict):
        raise ValidationFailedError.from_errors({"wizardState": "ערך לא תקין"})

    session = await run_in_threadpool(session_service.create, email, wizard_data, body.get("phone"))
    recovery_url = session_service.recovery_url(session.session_id)

    sent = await run_in_threadpool(
        email_service.send_session_saved, email, session.full_name or "", session.session_id, recovery_url
    )
    if not sent:
        logger.warning(f"Session-saved email for {session.session_id} was not sent")

    return JSONResponse({"success": True, "sessionId": session.session_id, "recoveryUrl": recovery_url})


@app.get("/api/sessions/{session_id}")
async def read_session(
    session_id: str,
    session_service: SessionService = Depends(get_session_service),
) -> JSONResponse:
    session = await run_in_threadpool(session_service.get, session_id)
    return JSONResponse({"success": True, "session": session.to_dict()})


@app.patch("/api/sessions/{session_id}")
async def update_session(
    session_id: str,
    request: Request,
    session_service: SessionService = Depends(get_session_service),
) -> JSONResponse:
    body = await _json_body(request)
    session = None
    if body.get("paymentStatus") is not None:
        status = _parse_status(PaymentStatus, body["paymentStatus"], "paymentStatus")
        session = await run_in_threadpool(
            session_service.update_payment_status, session_id, status, body.get("paymentIntentId")
        )
    if body.get("submissionStatus") is not None:
        status = _parse_status(SubmissionStatus, body["submissionStatus"], "submissionStatus")
        session = await run_in_threadpool(
            session_service.update_submission_status, session_id, status, body.get("driveSubmissionId")
        )
    if isinstance(body.get("wizardData"), dict):
        session = await run_in_threadpool(session_service.update_wizard_data, session_id, body["wizardData"])
    if session is None:
        session = await run_in_threadpool(session_service.get, session_id)
    return JSONResponse({"success": True, "session": session.to_dict()})


@app.get("/resume/{session_id}")
async def resume(session_id: str, config: Config = Depends(get_config)) -> RedirectResponse:
    return RedirectResponse(url=f"{config.app.wizard_url}/?session={quote(session_id)}", status_code=303)


# Cron


@app.api_route("/api/cron/send-reminders", methods=["GET", "POST"])
async def send_reminders(
    authorization: Optional[str] = Header(default=None),
    config: Config = Depends(get_config),
    session_service: SessionService = Depends(get_session_service),
    email_service: EmailService = Depends(get_email_service),
) -> JSONResponse:
    secret = config.app.cron_secret
    if secret and not hmac.compare_digest(authorization or "", f"Bearer {secret}"):
        logger.warning("Rejected reminder run with a bad or missing cron secret")
        return JSONResponse({"success": False, "error": "Unauthorized"}, status_code=401)

    result = await run_in_threadpool(session_service.send_reminders, email_service)
    return JSONResponse({"success": True, **result})


# Documents


@app.post("/api/generate-document")
async def generate_document(
    request: Request,
    documents: DocumentGenerationService = Depends(get_document_service),
):
    body = await _json_body(request)
    missing = [key for key in ("basicInfo", "formData", "selectedClaims") if body.get(key) is None]
    if missing:
        raise ValidationFailedError.missing_fields(missing, message="חסרים שדות חובה: basicInfo, formData, selectedClaims")
    claim_type = body.get("claimType")
    if not claim_type and not body.get("generateAll"):
        raise ValidationFailedError.missing_fields(["claimType"], message="יש לציין claimType או generateAll")

    if body.get("generateAll"):
        generated = await run_in_threadpool(documents.generate_all, body)
        paths = {}
        for claim, document in generated.items():
            paths[claim] = await run_in_threadpool(documents.save_to_temp, document)
        return JSONResponse({"success": True, "documents": paths, "count": len(paths)})

    document = await run_in_threadpool(documents.generate, claim_type, body)
    path = await run_in_threadpool(documents.save_to_temp, document)
    return StreamingResponse(
        io.BytesIO(document.content),
        media_type=document.mime_type,
        headers=_attachment_headers(document.filename, **{"X-File-Path": path}),
    )


@app.get("/api/generate-document")
async def list_templates(
    documents: DocumentGenerationService = Depends(get_document_service),
) -> JSONResponse:
    return JSONResponse({"success": True, "templates": documents.available_templates()})


@app.post("/api/documents/form4")
async def form4(
    request: Request,
    documents: DocumentGenerationService = Depends(get_document_service),
) -> StreamingResponse:
    body = await _json_body(request)
    pdf = await run_in_threadpool(documents.form4_pdf, body)
    return StreamingResponse(io.BytesIO(pdf), media_type=PDF_MIME, headers=_attachment_headers("form4.pdf"))


# Submission and payment


async def _run_submission(body: Dict[str, Any], submission: SubmissionService) -> JSONResponse:
    result = await run_in_threadpool(submission.submit, body)
    return JSONResponse(jsonable_encoder(result))


@app.post("/api/submission")
async def submission(
    request: Request,
    submission_service: SubmissionService = Depends(get_submission_service),
) -> JSONResponse:
    body = await _json_body(request)
    return await _run_submission(body, submission_service)


@app.post("/api/submit")
async def submit(
    request: Request,
    submission_service: SubmissionService = Depends(get_submission_service),
) -> JSONResponse:
    body = await _json_body(request)
    missing = [key for key in ("basicInfo", "selectedClaims", "signature") if not body.get(key)]
    if missing:
        raise ValidationFailedError.missing_fields(missing, message=REQUIRED_FIELDS)
    body = {**body, "submittedAt": to_iso(utcnow()), "source": body.get("source") or "wizard"}
    return await _run_submission(body, submission_service)


@app.post("/api/payment")
async def payment(
    request: Request,
    config: Config = Depends(get_config),
    session_service: SessionService = Depends(get_session_service),
    email_service: EmailService = Depends(get_email_service),
) -> JSONResponse:
    """Simulated checkout: always succeeds and marks the session paid."""
    body = await _json_body(request)
    session_id = body.get("sessionId")
    session = await run_in_threadpool(session_service.get, session_id) if session_id else None

    claims = body.get("selectedClaims")
    if claims is None and session is not None:
        claims = session.wizard_data.get("selectedClaims")
    record = PaymentRecord(
        paid=True,
        date=utcnow(),
        amount=calculate_total(claims or [], config.submission.price_per_claim),
        reference=f"SIM-{uuid.uuid4().hex[:10].upper()}",
    )
    logger.info(f"Simulated payment {record.reference} for {record.amount}")

    if session is not None:
        await run_in_threadpool(
            session_service.update_payment_status, session.session_id, PaymentStatus.PAID.value, record.reference
        )
        sent = await run_in_threadpool(
            email_service.send_payment_confirmation,
            session.email,
            session.full_name or "",
            record.amount,
            record.reference,
            session_service.recovery_url(session.session_id),
        )
        if not sent:
            logger.warning(f"Payment confirmation for {session.session_id} was not sent")

    return JSONResponse({"success": True, "payment": record.to_dict()})


# Blog


@app.get("/api/blog/latest")
async def latest_posts(blog: BlogService = Depends(get_blog_service)) -> JSONResponse:
    posts = await run_in_threadpool(blog.latest_posts)
    return JSONResponse({"success": True, "posts": posts})


@app.get("/blog", response_class=HTMLResponse)
async def blog_index(request: Request, blog: BlogService = Depends(get_blog_service)) -> HTMLResponse:
    posts = await run_in_threadpool(blog.list_posts)
    categories = await run_in_threadpool(blog.categories)
    context = {
        "title": "הבלוג",
        "posts": posts,
        "categories": categories,
        "active_category": None,
    }
    return templates.TemplateResponse(request, "blog/list.html", context)


@app.get("/blog/category/{category}", response_class=HTMLResponse)
async def blog_category(
    category: str,
    request: Request,
    blog: BlogService = Depends(get_blog_service),
) -> HTMLResponse:
    name = SLUG_TO_CATEGORY.get(category, category)
    posts = await run_in_threadpool(blog.posts_by_category, name)
    categories = await run_in_threadpool(blog.categories)
    context = {
        "title": name,
        "posts": posts,
        "categories": categories,
        "active_category": name,
    }
    return templates.TemplateResponse(request, "blog/list.html", context)


@app.get("/blog/{slug}", response_class=HTMLResponse)
async def blog_post(slug: str, request: Request, blog: BlogService = Depends(get_blog_service)) -> HTMLResponse:
    post = await run_in_threadpool(blog.get_post, slug)
    if post is None:
        context = {"title": "הפוסט לא נמצא", "post": None, "related": []}
        return templates.TemplateResponse(request, "blog/post.html", context, status_code=404)
    related = await run_in_threadpool(blog.related_posts, slug, post.get("category"))
    context = {"title": post.get("title"), "post": post, "related": related}
    return templates.TemplateResponse(request, "blog/post.html", context)


@app.get("/healthz")
async def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}
