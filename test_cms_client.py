"""Tests for the Sanity client and the CMS-backed session repository."""

import json
from datetime import datetime, timezone

import pytest
import requests

from lawintake.models.session import PaymentStatus, WizardSession
from lawintake.storage.cms_client import CMSClient
from lawintake.storage.session_repository import CMSSessionRepository
from lawintake.utils.errors import ConfigurationError, UpstreamServiceError


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeHTTPSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self.responses.pop(0)


@pytest.fixture
def cms_config(config):
    config.cms.project_id = "abc123"
    config.cms.dataset = "production"
    config.cms.api_version = "2024-01-01"
    config.cms.token = "token"
    return config.cms


def test_query_encodes_params(cms_config):
    http = FakeHTTPSession(FakeResponse({"result": [{"title": "x"}]}))
    result = CMSClient(cms_config, http).query("*[slug.current == $slug]", {"slug": "פוסט"})

    assert result == [{"title": "x"}]
    method, url, kwargs = http.requests[0]
    assert method == "GET"
    assert url == "https://abc123.api.sanity.io/v2024-01-01/data/query/production"
    assert kwargs["params"]["$slug"] == '"פוסט"'
    assert kwargs["headers"]["Authorization"] == "Bearer token"


def test_http_error_becomes_upstream_error(cms_config):
    http = FakeHTTPSession(FakeResponse({}, status_code=500))
    with pytest.raises(UpstreamServiceError):
        CMSClient(cms_config, http).query("*")


def test_unconfigured_and_tokenless(cms_config):
    cms_config.project_id = ""
    with pytest.raises(ConfigurationError):
        CMSClient(cms_config, FakeHTTPSession()).query("*")

    cms_config.project_id = "abc123"
    cms_config.token = ""
    with pytest.raises(ConfigurationError):
        CMSClient(cms_config, FakeHTTPSession()).delete("doc-1")


def test_session_repository_round_trip(cms_config):
    session = WizardSession(
        session_id="DW-2025-AB12CD",
        email="a@example.com",
        created_at=datetime(2025, 5, 1, tzinfo=timezone.utc),
        expires_at=datetime(2025, 5, 31, tzinfo=timezone.utc),
    )
    stored = dict(session.to_dict(), _id=session.session_id, _type="wizardSession")
    http = FakeHTTPSession(
        FakeResponse({"results": [{"document": stored}]}),
        FakeResponse({"result": stored}),
        FakeResponse({"result": [stored]}),
    )
    repository = CMSSessionRepository(CMSClient(cms_config, http))

    repository.insert(session)
    mutation = json.loads(http.requests[0][2]["data"])["mutations"][0]["create"]
    assert mutation["_id"] == "DW-2025-AB12CD"
    assert mutation["_type"] == "wizardSession"

    assert repository.get("DW-2025-AB12CD") == session
    listed = repository.list(payment_status=PaymentStatus.PENDING)
    assert [s.session_id for s in listed] == ["DW-2025-AB12CD"]
    assert http.requests[2][2]["params"]["$paymentStatus"] == '"pending"'
