"""Cloud Trace v1 API client used to report finished traces."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

import google.auth
import requests
from google.auth.exceptions import DefaultCredentialsError
from google.auth.transport.requests import AuthorizedSession

from cloud_trace.errors import ConfigError, ReportError
from cloud_trace.tracer.trace_record import TraceRecord

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://cloudtrace.googleapis.com"
TRACE_APPEND_SCOPE = "https://www.googleapis.com/auth/trace.append"


def authorized_session(credentials=None) -> AuthorizedSession:
    """
    Build a session that signs requests with Google credentials.

    Uses Application Default Credentials when none are given.

    Raises:
        ConfigError: if no default credentials can be found
    """
    if credentials is None:
        try:
            credentials, _ = google.auth.default(scopes=[TRACE_APPEND_SCOPE])
        except DefaultCredentialsError as e:
            raise ConfigError(
                "No Google credentials found for the trace service; "
                "pass service=, session= or credentials=, or set up Application Default Credentials",
                {"error": e},
            ) from e
    return AuthorizedSession(credentials)


class TraceService:
    """
    Reports trace records with the ``projects.patchTraces`` method.

    Requests are signed with ``credentials``, or with Application Default
    Credentials when neither a ``session`` nor an ``access_token`` is given.
    """

    def __init__(
        self,
        project_id: str,
        session: Optional[requests.Session] = None,
        access_token: Optional[str] = None,
        credentials=None,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 5.0,
        headers: Optional[dict] = None,
    ) -> None:
        """
        Initialize the trace service client.

        Args:
            project_id: Project that owns the traces
            session: Optional requests session used for every call
            access_token: Optional OAuth2 access token
            credentials: Optional ``google.auth`` credentials
            endpoint: API root URL
            timeout: Request timeout in seconds
            headers: Optional additional headers

        Raises:
            ConfigError: if no session, token or credentials are given and
                no default credentials can be found
        """
        self.project_id = project_id
        if session is None:
            session = requests.Session() if access_token else authorized_session(credentials)
        self.session = session
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

        self._headers = dict(headers) if headers else {}
        if access_token:
            self._headers["Authorization"] = f"Bearer {access_token}"

    @property
    def url(self) -> str:
        return f"{self.endpoint}/v1/projects/{self.project_id}/traces"

    def patch_traces(self, traces: Union[TraceRecord, Iterable[TraceRecord]]) -> None:
        """
        Send one or more traces.

        Raises:
            ReportError: if the request fails or the API returns an error
        """
        if isinstance(traces, TraceRecord):
            traces = [traces]
        body = {"traces": [trace.to_json() for trace in traces]}
        if not body["traces"]:
            return

        try:
            response = self.session.patch(
                self.url,
                json=body,
                headers=self._headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ReportError(
                "Trace service request failed",
                {"project_id": self.project_id, "error": e},
            ) from e

        if response.status_code >= 400:
            raise ReportError(
                "Trace service returned an error",
                {"project_id": self.project_id, "status": response.status_code, "body": response.text[:200]},
            )
        logger.debug("Reported %d trace(s) to project %s", len(body["traces"]), self.project_id)
