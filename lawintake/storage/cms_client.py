"""Minimal Sanity HTTP API client (GROQ queries and mutations)."""

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from lawintake.utils.config import CMSConfig
from lawintake.utils.errors import ConfigurationError, ErrorType, UpstreamServiceError

logger = logging.getLogger(__name__)


class CMSClient:
    """
    Thin wrapper over the Sanity query and mutate endpoints.

    Reads work without a token on public datasets; mutations need one.
    """

    def __init__(self, config: CMSConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.base_url = (
            f"https://{config.project_id}.api.sanity.io/v{config.api_version}/data"
            if config.project_id else ""
        )

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def _request(self, method: str, url: str, operation: str, **kwargs) -> Dict[str, Any]:
        if not self.is_configured:
            raise ConfigurationError.missing("SANITY_PROJECT_ID", "CMS is not configured")
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.config.timeout, **kwargs
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"CMS {operation} failed: {str(e)}")
            raise UpstreamServiceError.request_failed(
                "Sanity", operation, e, error_type=ErrorType.CMS_REQUEST_FAILED
            ) from e

    def query(self, groq: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Run a GROQ query; `params` become `$name` query parameters (JSON-encoded)."""
        query_params = {"query": groq}
        for key, value in (params or {}).items():
            query_params[f"${key}"] = json.dumps(value, ensure_ascii=False, default=str)
        data = self._request(
            "GET", f"{self.base_url}/query/{self.config.dataset}", "query", params=query_params
        )
        return data.get("result")

    def mutate(self, mutations: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not self.config.token:
            raise ConfigurationError.missing("SANITY_API_TOKEN", "CMS writes need an API token")
        return self._request(
            "POST",
            f"{self.base_url}/mutate/{self.config.dataset}",
            "mutate",
            params={"returnDocuments": "true"},
            data=json.dumps({"mutations": mutations}, ensure_ascii=False, default=str).encode("utf-8"),
        )

    def create(self, document: Dict[str, Any]) -> Dict[str, Any]:
        result = self.mutate([{"create": document}])
        return (result.get("results") or [{}])[0].get("document") or document

    def patch(self, document_id: str, set_fields: Dict[str, Any]) -> Dict[str, Any]:
        result = self.mutate([{"patch": {"id": document_id, "set": set_fields}}])
        return (result.get("results") or [{}])[0].get("document") or {}

    def delete(self, document_id: str) -> None:
        self.mutate([{"delete": {"id": document_id}}])
