"""API tests: FastAPI TestClient with in-memory storage, sessions and email."""

from datetime import datetime, timedelta, timezone

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

import server
from conftest import InMemoryStorage
from lawintake.models.document import DOCX_MIME
from lawintake.services.blog import BlogService
from lawintake.services.sessions import SessionService
from lawintake.utils.errors import StorageError


class DeniedStorage(InMemoryStorage):
    def create_folder(self, name, parent_id=None):
        error = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied for arn:aws:s3:::office-bucket"}},
            "PutObject",
        )
        raise StorageError.from_client_error(error, "create_folder")


class OfflineCMSClient:
    is_configured = False

    def query(self, groq, params=None):
        raise AssertionError("unconfigured CMS must not be queried")


@pytest.fixture
def client(config, storage, email_service, repository):
    server.app.dependency_overrides = {
        server.get_config: lambda: config,
        server.get_storage: lambda: storage,
        server.get_email_service: lambda: email_service,
        server.get_session_repository: lambda: repository,
        server.get_blog_service: lambda: BlogService(OfflineCMSClient()),
    }
    with TestClient(server.app) as test_client:
        yield test_client
    server.app.dependency_overrides = {}


@pytest.fixture
def sessions(repository, config) -> SessionService:
    return SessionService(repository, config.sessions, config.app.base_url)


def test_healthcheck(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_submission_end_to_end(client, storage, email_service, property_payload):
    response = client.post("/api/submission", json=property_payload)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["folderName"].startswith("ישראל ישראלי תביעות ")
    assert body["documents"]["property"].endswith("/תביעה רכושית/תביעת-רכושית.docx")
    assert body["documents"]["property"] in storage.objects
    assert len(email_service.sent("submission_confirmation")) == 1


def test_submission_validation_errors(client, storage, property_payload):
    property_payload["basicInfo"]["idNumber"] = "123456789"
    response = client.post("/api/submission", json=property_payload)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"]["basicInfo.idNumber"] == "מספר זהות לא תקין"
    assert storage.objects == {}


def test_storage_failure_hides_provider_detail(client, property_payload):
    server.app.dependency_overrides[server.get_storage] = lambda: DeniedStorage()
    response = client.post("/api/submission", json=property_payload)

    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "שירות חיצוני אינו זמין כרגע, נא לנסות שוב מאוחר יותר"
    assert "arn:aws" not in response.text
    assert "AccessDenied" not in response.text


def test_submit_requires_signature(client, property_payload):
    property_payload["signature"] = ""
    response = client.post("/api/submit", json=property_payload)
    assert response.status_code == 400
    assert "signature" in response.json()["errors"]


def test_submit_rejects_signature_without_payload(client, storage, property_payload):
    property_payload["signature"] = "data:image/png;base64"
    response = client.post("/api/submission", json=property_payload)
    assert response.status_code == 400
    assert "signature" in response.json()["errors"]
    assert storage.objects == {}


@pytest.mark.parametrize("section, value", [
    ("basicInfo", "ישראל"),
    ("formData", [1]),
    ("selectedClaims", {"property": True}),
    ("attachments", [1]),
    ("attachments", "scan.png"),
])
def test_submission_rejects_malformed_sections(client, storage, property_payload, section, value):
    property_payload[section] = value
    response = client.post("/api/submission", json=property_payload)
    assert response.status_code == 400
    assert "ערך לא תקין" in response.json()["errors"].values()
    assert storage.folders == {}


def test_invalid_json_body(client):
    response = client.post("/api/contact", content=b"not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert "body" in response.json()["errors"]


def test_contact_missing_fields(client, email_service):
    response = client.post("/api/contact", json={"name": "דני"})
    assert response.status_code == 400
    assert set(response.json()["errors"]) == {"email", "message"}
    assert email_service.calls == []


def test_contact_sends_notification_and_reply(client, email_service):
    response = client.post("/api/contact", json={
        "name": "דני", "email": "dani@example.com", "message": "שלום", "phone": "0501234567",
    })
    assert response.status_code == 200
    assert email_service.sent("contact_notification") == [
        ("contact_notification", "דני", "dani@example.com", "שלום", "0501234567"),
    ]
    assert email_service.sent("contact_auto_reply") == [("contact_auto_reply", "dani@example.com", "דני")]


def test_contact_notification_failure(client, email_service):
    email_service.result = False
    response = client.post("/api/contact", json={"name": "דני", "email": "dani@example.com", "message": "שלום"})
    assert response.status_code == 500


def test_create_and_read_session(client, email_service):
    response = client.post("/api/sessions/create", json={
        "email": "israel@example.com",
        "wizardState": {"selectedClaims": ["property"], "currentStep": 2},
    })
    assert response.status_code == 200
    body = response.json()
    session_id = body["sessionId"]
    assert body["recoveryUrl"] == f"http://testserver/resume/{session_id}"
    assert email_service.sent("session_saved")[0][3] == session_id

    session = client.get(f"/api/sessions/{session_id}").json()["session"]
    assert session["email"] == "israel@example.com"
    assert session["wizardData"]["currentStep"] == 2


def test_create_session_rejects_bad_email(client):
    assert client.post("/api/sessions/create", json={"email": "nope"}).status_code == 400


def test_create_session_uses_configured_price(client, config, repository):
    config.submission.price_per_claim = 4500
    response = client.post("/api/sessions/create", json={
        "email": "israel@example.com",
        "wizardState": {"selectedClaims": ["property", "custody"]},
    })
    session_id = response.json()["sessionId"]
    assert repository.get(session_id).wizard_data["totalAmount"] == 9000

    response = client.post("/api/sessions/create", json={"email": "israel@example.com", "wizardState": [1]})
    assert response.status_code == 400
    assert response.json()["errors"] == {"wizardState": "ערך לא תקין"}


def test_unknown_session(client):
    response = client.get("/api/sessions/DW-2025-NOPE00")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_expired_session_is_returned_with_410(client, sessions):
    session = sessions.create("old@example.com", {}, now=datetime.now(timezone.utc) - timedelta(days=31))
    response = client.get(f"/api/sessions/{session.session_id}")
    assert response.status_code == 410
    assert response.json()["session"]["sessionId"] == session.session_id


def test_patch_session_status(client, sessions):
    session = sessions.create("a@example.com", {})
    response = client.patch(f"/api/sessions/{session.session_id}", json={"paymentStatus": "paid"})
    assert response.json()["session"]["paymentStatus"] == "paid"

    response = client.patch(f"/api/sessions/{session.session_id}", json={"paymentStatus": "maybe"})
    assert response.status_code == 400


def test_resume_redirects_to_wizard(client):
    response = client.get("/resume/DW-2025-ABC123", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "http://wizard.test/?session=DW-2025-ABC123"


def test_cron_requires_secret(client):
    assert client.get("/api/cron/send-reminders").status_code == 401
    response = client.get("/api/cron/send-reminders", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401


def test_cron_runs_reminders(client):
    response = client.post("/api/cron/send-reminders", headers={"Authorization": "Bearer cron-secret"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "sent": 0, "failed": 0, "errors": [], "total": 0}


def test_generate_document_requires_fields(client, property_payload):
    del property_payload["formData"]
    property_payload["claimType"] = "property"
    response = client.post("/api/generate-document", json=property_payload)
    assert response.status_code == 400
    assert "formData" in response.json()["errors"]


@pytest.mark.parametrize("section, value", [("basicInfo", "ישראל"), ("formData", [1])])
def test_generate_document_rejects_malformed_sections(client, property_payload, section, value):
    property_payload[section] = value
    property_payload["claimType"] = "property"
    response = client.post("/api/generate-document", json=property_payload)
    assert response.status_code == 400
    assert response.json()["errors"] == {section: "ערך לא תקין"}


def test_generate_single_document(client, property_payload):
    property_payload["claimType"] = "property"
    response = client.post("/api/generate-document", json=property_payload)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(DOCX_MIME)
    assert response.content[:2] == b"PK"
    assert response.headers["x-file-path"].endswith(".docx")


def test_generate_all_documents(client, property_payload):
    property_payload["selectedClaims"] = ["property", "divorce"]
    property_payload["generateAll"] = True
    body = client.post("/api/generate-document", json=property_payload).json()
    assert body["count"] == 2
    assert set(body["documents"]) == {"property", "divorce"}


def test_list_templates(client):
    templates = client.get("/api/generate-document").json()["templates"]
    assert {item["claimType"] for item in templates} >= {"property", "custody", "alimony", "divorce"}


def test_payment_marks_session_paid(client, sessions, email_service):
    session = sessions.create("israel@example.com", {"selectedClaims": ["property"]})
    response = client.post("/api/payment", json={"sessionId": session.session_id})

    payment = response.json()["payment"]
    assert payment["paid"] is True
    assert payment["amount"] == 3900
    assert payment["reference"].startswith("SIM-")

    stored = sessions.get(session.session_id)
    assert stored.payment_status.value == "paid"
    assert stored.payment_intent_id == payment["reference"]
    assert len(email_service.sent("payment_confirmation")) == 1


def test_payment_without_session(client):
    payment = client.post("/api/payment", json={"selectedClaims": ["property", "custody"]}).json()["payment"]
    assert payment["amount"] == 7800


def test_blog_pages_without_cms(client):
    assert client.get("/api/blog/latest").json() == {"success": True, "posts": []}
    response = client.get("/blog")
    assert response.status_code == 200
    assert "אין עדיין פוסטים להצגה" in response.text
    assert client.get("/blog/missing-post").status_code == 404
