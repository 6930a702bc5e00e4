"""Persistence for recovery sessions."""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from lawintake.models.session import PaymentStatus, SubmissionStatus, WizardSession
from lawintake.storage.cms_client import CMSClient

logger = logging.getLogger(__name__)

SESSION_DOCUMENT_TYPE = "wizardSession"


class SessionRepository(ABC):
    """Storage interface the session service is written against."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[WizardSession]:
        ...

    @abstractmethod
    def insert(self, session: WizardSession) -> WizardSession:
        ...

    @abstractmethod
    def save(self, session: WizardSession) -> WizardSession:
        """Replace the stored copy of an existing session."""

    @abstractmethod
    def delete(self, session_id: str) -> None:
        ...

    @abstractmethod
    def list(
        self,
        payment_status: Optional[PaymentStatus] = None,
        submission_status: Optional[SubmissionStatus] = None,
        email: Optional[str] = None,
    ) -> List[WizardSession]:
        ...


class InMemorySessionRepository(SessionRepository):
    """Process-local repository; used in development and tests."""

    def __init__(self):
        self._sessions: Dict[str, WizardSession] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[WizardSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            return copy.deepcopy(session) if session else None

    def insert(self, session: WizardSession) -> WizardSession:
        with self._lock:
            if session.session_id in self._sessions:
                raise KeyError(f"Session already exists: {session.session_id}")
            self._sessions[session.session_id] = copy.deepcopy(session)
        return session

    def save(self, session: WizardSession) -> WizardSession:
        with self._lock:
            self._sessions[session.session_id] = copy.deepcopy(session)
        return session

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def list(self, payment_status=None, submission_status=None, email=None) -> List[WizardSession]:
        with self._lock:
            sessions = [copy.deepcopy(s) for s in self._sessions.values()]
        return [
            s for s in sessions
            if (payment_status is None or s.payment_status == payment_status)
            and (submission_status is None or s.submission_status == submission_status)
            and (email is None or s.email.lower() == email.lower())
        ]


class CMSSessionRepository(SessionRepository):
    """Sessions stored as `wizardSession` documents in Sanity."""

    def __init__(self, client: CMSClient):
        self.client = client

    @staticmethod
    def _to_document(session: WizardSession) -> Dict:
        document = session.to_dict()
        document["_id"] = session.session_id
        document["_type"] = SESSION_DOCUMENT_TYPE
        return document

    @staticmethod
    def _from_document(document: Dict) -> WizardSession:
        return WizardSession.from_dict(document)

    def get(self, session_id: str) -> Optional[WizardSession]:
        result = self.client.query(
            f'*[_type == "{SESSION_DOCUMENT_TYPE}" && sessionId == $sessionId][0]',
            {"sessionId": session_id},
        )
        return self._from_document(result) if result else None

    def insert(self, session: WizardSession) -> WizardSession:
        self.client.create(self._to_document(session))
        logger.info(f"Stored session {session.session_id} in CMS")
        return session

    def save(self, session: WizardSession) -> WizardSession:
        fields = session.to_dict()
        fields.pop("sessionId")
        self.client.patch(session.session_id, fields)
        return session

    def delete(self, session_id: str) -> None:
        self.client.delete(session_id)

    def list(self, payment_status=None, submission_status=None, email=None) -> List[WizardSession]:
        filters = [f'_type == "{SESSION_DOCUMENT_TYPE}"']
        params = {}
        if payment_status is not None:
            filters.append("paymentStatus == $paymentStatus")
            params["paymentStatus"] = PaymentStatus(payment_status).value
        if submission_status is not None:
            filters.append("submissionStatus == $submissionStatus")
            params["submissionStatus"] = SubmissionStatus(submission_status).value
        if email is not None:
            filters.append("lower(email) == lower($email)")
            params["email"] = email
        results = self.client.query(f"*[{' && '.join(filters)}] | order(createdAt asc)", params) or []
        return [self._from_document(document) for document in results]
