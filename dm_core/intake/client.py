# backend/dm_core/intake/client.py
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from dm_core.intake.constants import CREATE_ASSESSMENT_PATH, HTTP_TIMEOUT_SECONDS, LOGIN_PATH

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """
    Raised when the API refuses (or never answers) a request.
    `envelope` is the server's {success: false, error, errors?} body when there was one.
    """

    def __init__(self, message: str, *, status_code: int | None = None, envelope: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.envelope = envelope or {}

    @property
    def field_errors(self) -> list[dict[str, str]]:
        return list(self.envelope.get("errors") or [])


class AssessmentClient:
    """
    Thin HTTP client used by field devices to talk to the verification API.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.set_token(token)

    def set_token(self, token: str) -> None:
        self.session.headers["Authorization"] = f"Bearer {token}"

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        try:
            response = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise SubmissionError(f"Network error: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            if response.ok:
                raise SubmissionError(
                    f"Unexpected response body (HTTP {response.status_code})", status_code=response.status_code
                )
            body = {}

        if not response.ok:
            message = body.get("error") or body.get("detail") or f"HTTP {response.status_code}"
            raise SubmissionError(message, status_code=response.status_code, envelope=body)
        return body

    # -------------------------
    # Endpoints
    # -------------------------
    def login(self, username: str, password: str) -> str:
        body = self._request("POST", LOGIN_PATH, json={"username": username, "password": password})
        token = body.get("access")
        if not token:
            raise SubmissionError("Login response did not include an access token.")
        self.set_token(token)
        return token

    def submit_assessment(self, request_body: dict[str, Any]) -> dict[str, Any]:
        """
        POST the create request; returns the created assessment (`data` of the envelope).
        """
        body = self._request("POST", CREATE_ASSESSMENT_PATH, json=request_body)
        logger.info("assessment submitted: %s", (body.get("data") or {}).get("id"))
        return body.get("data") or {}

    def my_assessments(self, *, page: int = 1, limit: int = 20) -> dict[str, Any]:
        return self._request("GET", CREATE_ASSESSMENT_PATH, params={"page": page, "limit": limit})
