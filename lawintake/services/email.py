"""Transactional email over SMTP with Hebrew RTL HTML bodies."""

import logging
import mimetypes
import smtplib
import ssl
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Iterable, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from lawintake.utils.config import EmailConfig

logger = logging.getLogger(__name__)

SENDER_NAME = "Law4Us"
EMAIL_TEMPLATES_DIR = "templates/email"


class EmailService:
    """
    Sends the system's emails.

    `send_email` never raises: it returns False when SMTP is not configured
    or the send fails, and callers decide whether that matters.
    """

    def __init__(self, config: EmailConfig, templates_dir: str = EMAIL_TEMPLATES_DIR):
        self.config = config
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(["html"]),
        )

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    @property
    def office_address(self) -> str:
        return self.config.office_address or self.config.from_address

    def render(self, template: str, **context: Any) -> str:
        context.setdefault("office_address", self.office_address)
        return self.env.get_template(template).render(**context)

    def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
        attachments: Optional[Iterable[Tuple[str, bytes]]] = None,
        reply_to: Optional[str] = None,
    ) -> bool:
        if not self.is_configured:
            logger.error("Email configuration missing; set EMAIL_HOST, EMAIL_USER and EMAIL_PASSWORD")
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((SENDER_NAME, self.config.from_address or self.config.user))
        message["To"] = to
        if reply_to:
            message["Reply-To"] = reply_to
        message.set_content(text or subject)
        message.add_alternative(html, subtype="html")
        for filename, content in attachments or []:
            maintype, subtype = (mimetypes.guess_type(filename)[0] or "application/octet-stream").split("/", 1)
            message.add_attachment(content, maintype=maintype, subtype=subtype, filename=filename)

        try:
            if self.config.port == 465:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(self.config.host, self.config.port, context=context,
                                      timeout=self.config.timeout) as server:
                    server.login(self.config.user, self.config.password)
                    server.send_message(message)
            else:
                with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout) as server:
                    if self.config.use_tls:
                        server.starttls(context=ssl.create_default_context())
                    server.login(self.config.user, self.config.password)
                    server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}' to {to}: {str(e)}")
            return False

        logger.info(f"Email sent: '{subject}' to {to}")
        return True

    # Messages

    def send_session_saved(self, email: str, name: str, session_id: str, recovery_url: str) -> bool:
        html = self.render("session_saved.html", name=name, session_id=session_id, recovery_url=recovery_url)
        text = (
            f"שלום {name},\n\nההתקדמות שלך נשמרה.\n"
            f"להמשך מילוי הטפסים מכל מכשיר:\n{recovery_url}\n\n"
            "הקישור תקף ל-30 יום."
        )
        return self.send_email(email, "ההתקדמות שלך ב-Law4Us נשמרה", html, text)

    def send_recovery_reminder(self, email: str, name: str, session_id: str,
                               recovery_url: str, reminder_number: int) -> bool:
        html = self.render(
            "reminder.html", name=name, session_id=session_id,
            recovery_url=recovery_url, reminder_number=reminder_number,
        )
        text = (
            f"שלום {name},\n\nהתשלום התקבל אך התביעה טרם נשלחה.\n"
            f"להשלמת התהליך:\n{recovery_url}\n\nמספר תזכורת: {reminder_number}"
        )
        return self.send_email(email, f"תזכורת {reminder_number}: השלמת הגשת התביעה", html, text)

    def send_contact_notification(self, name: str, email: str, message: str, phone: Optional[str] = None) -> bool:
        html = self.render("contact_notification.html", name=name, email=email, phone=phone, message=message)
        text = f"פנייה חדשה מאתר Law4Us\n\nשם: {name}\nאימייל: {email}\nטלפון: {phone or '-'}\n\n{message}"
        return self.send_email(self.office_address, f"פנייה חדשה מ-{name}", html, text, reply_to=email)

    def send_contact_auto_reply(self, email: str, name: str) -> bool:
        html = self.render("contact_auto_reply.html", name=name)
        text = f"שלום {name},\n\nתודה על פנייתך. נחזור אליך בהקדם."
        return self.send_email(email, "קיבלנו את פנייתך", html, text)

    def send_submission_confirmation(self, email: str, name: str, reference: str,
                                     claim_labels: List[str],
                                     attachments: Optional[Iterable[Tuple[str, bytes]]] = None) -> bool:
        html = self.render("submission_confirmation.html", name=name, reference=reference,
                           claim_labels=claim_labels)
        lines = "\n".join(f"- {label}" for label in claim_labels)
        text = f"שלום {name},\n\nהתביעה נשלחה בהצלחה.\n\n{lines}\n\nמספר אסמכתא: {reference}"
        return self.send_email(email, "התביעה שלך נשלחה בהצלחה!", html, text, attachments)

    def send_payment_confirmation(self, email: str, name: str, amount: int,
                                  transaction_id: str, resume_url: str) -> bool:
        paid_at = datetime.now().strftime("%d/%m/%Y %H:%M")
        html = self.render("payment_confirmation.html", name=name, amount=f"{amount:,}",
                           transaction_id=transaction_id, resume_url=resume_url, paid_at=paid_at)
        text = (
            f"שלום {name},\n\nהתשלום בסך ₪{amount:,} התקבל.\n"
            f"מספר עסקה: {transaction_id}\n\nלהמשך: {resume_url}"
        )
        return self.send_email(email, "התשלום התקבל בהצלחה", html, text)

