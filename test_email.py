"""Tests for the SMTP email service with a stubbed transport."""

import smtplib
from pathlib import Path

import pytest

from lawintake.services.email import EmailService

TEMPLATES_DIR = str(Path(__file__).parent / "templates" / "email")


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None, **kwargs):
        self.host = host
        self.port = port
        self.messages = []
        self.started_tls = False
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, user, password):
        if password == "wrong":
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    def send_message(self, message):
        self.messages.append(message)


@pytest.fixture
def smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr("lawintake.services.email.smtplib.SMTP", FakeSMTP)
    return FakeSMTP


@pytest.fixture
def email_config(config):
    config.email.host = "smtp.example.com"
    config.email.port = 587
    config.email.user = "office@example.com"
    config.email.password = "secret"
    config.email.from_address = "office@example.com"
    config.email.office_address = "lawyer@example.com"
    return config.email


def _html(message) -> str:
    return message.get_body(preferencelist=("html",)).get_content()


def test_unconfigured_service_returns_false(config, smtp):
    config.email.host = ""
    service = EmailService(config.email, TEMPLATES_DIR)
    assert service.send_email("a@example.com", "נושא", "<p>x</p>") is False
    assert smtp.instances == []


def test_reminder_is_rendered_and_sent(email_config, smtp):
    service = EmailService(email_config, TEMPLATES_DIR)
    assert service.send_recovery_reminder(
        "client@example.com", "ישראל", "DW-2025-AB12CD", "http://x/resume/DW-2025-AB12CD", 2
    )

    transport = smtp.instances[0]
    assert transport.started_tls
    message = transport.messages[0]
    assert message["To"] == "client@example.com"
    assert message["Subject"] == "תזכורת 2: השלמת הגשת התביעה"
    html = _html(message)
    assert "http://x/resume/DW-2025-AB12CD" in html
    assert "תזכורת מספר 2" in html


def test_contact_notification_goes_to_office(email_config, smtp):
    EmailService(email_config, TEMPLATES_DIR).send_contact_notification("דני", "dani@example.com", "שלום")
    message = smtp.instances[0].messages[0]
    assert message["To"] == "lawyer@example.com"
    assert message["Reply-To"] == "dani@example.com"


def test_submission_confirmation_attachments(email_config, smtp):
    service = EmailService(email_config, TEMPLATES_DIR)
    service.send_submission_confirmation(
        "client@example.com", "ישראל", "ref-1", ["תביעת/כתב הגנה רכושית"],
        attachments=[("claim.docx", b"PK\x03\x04")],
    )
    message = smtp.instances[0].messages[0]
    names = [part.get_filename() for part in message.iter_attachments()]
    assert names == ["claim.docx"]


def test_smtp_failure_returns_false(email_config, smtp):
    email_config.password = "wrong"
    assert EmailService(email_config, TEMPLATES_DIR).send_contact_auto_reply("a@example.com", "דני") is False
