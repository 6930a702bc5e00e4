"""Shared fixtures: in-memory storage, a recording email service and valid wizard payloads."""

import base64
import io
from datetime import date
from typing import Dict, List, Optional

import pytest
from PIL import Image, ImageDraw

from lawintake.documents.form_overlay import PAGE_COUNT, PAGE_FILENAME, PAGE_SIZE
from lawintake.storage.cloud_storage import CloudStorage, StoredFolder
from lawintake.storage.session_repository import InMemorySessionRepository
from lawintake.utils.config import Config
from lawintake.utils.errors import ErrorContext, ErrorType, StorageError


class InMemoryStorage(CloudStorage):
    """CloudStorage over dicts; filenames listed in `fail_on` raise on upload."""

    def __init__(self, fail_on: Optional[List[str]] = None):
        self.folders: Dict[str, StoredFolder] = {}
        self.parents: Dict[str, Optional[str]] = {}
        self.objects: Dict[str, bytes] = {}
        self.fail_on = set(fail_on or [])

    def create_folder(self, name: str, parent_id: Optional[str] = None) -> StoredFolder:
        folder_id = f"{parent_id}/{name}" if parent_id else name
        folder = self.folders.setdefault(folder_id, StoredFolder(folder_id=folder_id, name=name))
        self.parents[folder_id] = parent_id
        return folder

    def search_folders(self, name_prefix: str, parent_id: Optional[str] = None) -> List[StoredFolder]:
        return [
            folder for folder_id, folder in self.folders.items()
            if self.parents[folder_id] == parent_id and folder.name.startswith(name_prefix)
        ]

    def upload(self, folder_id: str, filename: str, content: bytes, mime_type: str) -> str:
        if filename in self.fail_on:
            raise StorageError(ErrorContext(
                error_type=ErrorType.STORAGE_UPLOAD_FAILED,
                message=f"upload of {filename} failed",
                recoverable=True,
            ))
        key = f"{folder_id}/{filename}"
        self.objects[key] = content
        return key

    def download(self, key: str) -> bytes:
        return self.objects[key]


class FakeEmailService:
    """Records every send; `result` is what each send returns."""

    def __init__(self, result: bool = True):
        self.result = result
        self.calls: List[tuple] = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        return self.result

    def sent(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    def send_session_saved(self, email, name, session_id, recovery_url):
        return self._record("session_saved", email, name, session_id, recovery_url)

    def send_recovery_reminder(self, email, name, session_id, recovery_url, reminder_number):
        return self._record("reminder", email, name, session_id, recovery_url, reminder_number)

    def send_contact_notification(self, name, email, message, phone=None):
        return self._record("contact_notification", name, email, message, phone)

    def send_contact_auto_reply(self, email, name):
        return self._record("contact_auto_reply", email, name)

    def send_submission_confirmation(self, email, name, reference, claim_labels, attachments=None):
        return self._record("submission_confirmation", email, name, reference, claim_labels)

    def send_payment_confirmation(self, email, name, amount, transaction_id, resume_url):
        return self._record("payment_confirmation", email, name, amount, transaction_id, resume_url)


def make_png(size=(200, 80)) -> bytes:
    image = Image.new("RGB", size, color=(255, 255, 255))
    draw = ImageDraw.Draw(image)
    draw.line([(10, 60), (60, 20), (110, 60), (180, 25)], fill=(0, 0, 0), width=3)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def signature_png() -> bytes:
    return make_png()


@pytest.fixture
def signature_b64(signature_png) -> str:
    return "data:image/png;base64," + base64.b64encode(signature_png).decode("ascii")


@pytest.fixture
def valid_basic_info() -> Dict[str, str]:
    return {
        "fullName": "ישראל ישראלי",
        "idNumber": "000000018",
        "address": "רחוב הרצל 1, תל אביב",
        "phone": "0501234567",
        "email": "israel@example.com",
        "birthDate": "1985-03-15",
        "fullName2": "שרה ישראלי",
        "idNumber2": "123456782",
        "address2": "רחוב ויצמן 5, רמת גן",
        "phone2": "052-7654321",
        "email2": "sara@example.com",
        "birthDate2": "1987-07-01",
        "relationshipType": "married",
        "weddingDay": "2010-06-20",
    }


@pytest.fixture
def child() -> Dict[str, str]:
    return {
        "firstName": "נועה",
        "lastName": "ישראלי",
        "idNumber": "000000026",
        "birthDate": "2014-02-11",
        "address": "רחוב הרצל 1, תל אביב",
    }


@pytest.fixture
def property_form_data(child) -> Dict:
    return {
        "children": [child],
        "hasAssets": "yes",
        "apartments": [{"purchaseDate": "2012-01-01", "owner": "ישראל ישראלי"}],
        "debts": [{"purpose": "משכנתא", "amount": 450000, "owner": "ישראל ישראלי"}],
        "applicantEmploymentStatus": "employee",
        "applicantGrossSalary": 15000,
        "remedies": "חלוקת הדירה בחלקים שווים",
    }


@pytest.fixture
def property_payload(valid_basic_info, property_form_data, signature_b64) -> Dict:
    return {
        "basicInfo": valid_basic_info,
        "formData": property_form_data,
        "selectedClaims": ["property"],
        "signature": signature_b64,
    }


@pytest.fixture
def form4_dir(tmp_path):
    directory = tmp_path / "form4"
    directory.mkdir()
    for number in range(1, PAGE_COUNT + 1):
        Image.new("RGB", PAGE_SIZE, color=(255, 255, 255)).save(
            directory / PAGE_FILENAME.format(number=number), "PNG"
        )
    return directory


@pytest.fixture
def config(tmp_path, form4_dir) -> Config:
    config = Config.load(str(tmp_path / "missing.yaml"))
    config.app.base_url = "http://testserver"
    config.app.wizard_url = "http://wizard.test"
    config.app.cron_secret = "cron-secret"
    config.app.lawyer_name = "דנה כהן"
    config.documents.templates_dir = str(tmp_path / "document_templates")
    config.documents.form4_dir = str(form4_dir)
    config.documents.tmp_dir = str(tmp_path / "tmp")
    config.documents.font_path = ""
    config.documents.missing_token_policy = "keep"
    config.storage.lawyer_signature_key = ""
    config.text_generation.enabled = False
    config.submission.fail_fast = False
    config.sessions.backend = "memory"
    return config


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
def repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def today() -> date:
    return date(2025, 5, 1)
