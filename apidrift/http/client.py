"""
HTTP transport for API comparison calls.

Wraps a requests.Session with OAuth client-credentials or basic
authentication. Access tokens are held per client instance and refreshed
when their expiry passes.
"""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import requests

from apidrift.config.settings import Authentication
from apidrift.utils.logger import get_logger, mask_secret

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_TOKEN_LIFETIME_SECONDS = 300.0
TOKEN_REFRESH_MARGIN_SECONDS = 30.0


class TransportError(RuntimeError):
    """Raised when an API or token endpoint cannot be reached or rejects the call."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


@dataclass
class ApiResponse:
    """Response of one API call."""

    status_code: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)
    duration_ms: float = 0.0


class AccessTokenHolder:
    """
    OAuth access token scoped to one ApiClient.

    A token is valid until `expires_at` minus a refresh margin; callers
    ask `is_valid()` before use and `store()` a fresh one when it is not.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0

    def store(self, token: str, expires_in: Optional[float] = None) -> None:
        lifetime = float(expires_in) if expires_in else DEFAULT_TOKEN_LIFETIME_SECONDS
        self._token = token
        self._expires_at = self._clock() + lifetime

    def is_valid(self) -> bool:
        return (
            self._token is not None
            and self._clock() < self._expires_at - TOKEN_REFRESH_MARGIN_SECONDS
        )

    @property
    def token(self) -> Optional[str]:
        return self._token if self.is_valid() else None

    def clear(self) -> None:
        self._token = None
        self._expires_at = 0.0


def construct_url(base_url: Optional[str], path: Optional[str], test_type: Optional[str]) -> str:
    """
    Join base URL and operation path.

    SOAP endpoints are addressed by base URL only. A trailing slash on the
    base is dropped, the path gets a leading slash, and a base that already
    ends with the path is used as-is.
    """
    if test_type and test_type.upper() == "SOAP":
        return base_url or ""
    if base_url is None:
        return ""

    base = base_url[:-1] if base_url.endswith("/") else base_url
    if not path or not path.strip():
        return base

    normalized_path = path if path.startswith("/") else f"/{path}"
    if base.endswith(normalized_path):
        return base
    return base + normalized_path


class ApiClient:
    """
    Client for one side of a comparison.

    Attributes:
        authentication: OAuth / basic auth settings (None for anonymous)
        session: requests.Session (injectable for testing)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        authentication: Optional[Authentication] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        token_holder: Optional[AccessTokenHolder] = None,
    ):
        self.authentication = authentication
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token_holder = token_holder or AccessTokenHolder()

    # ------------------------------------------------------------------ #
    # Authentication
    # ------------------------------------------------------------------ #

    @property
    def uses_oauth(self) -> bool:
        return bool(self.authentication and self.authentication.token_url)

    def _obtain_access_token(self) -> str:
        auth = self.authentication
        if auth is None or not auth.token_url:
            raise TransportError("OAuth token URL is not configured")

        form = {"grant_type": "client_credentials"}
        if auth.client_id:
            form["client_id"] = auth.client_id
        if auth.client_secret:
            form["client_secret"] = auth.client_secret

        context = {"token_url": auth.token_url, "client_id": auth.client_id}
        if auth.client_secret:
            context["client_secret"] = mask_secret(auth.client_secret)
        logger.info("Requesting new access token", operation="obtain_access_token", context=context)
        try:
            response = self.session.post(auth.token_url, data=form, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Token request failed: {e}", url=auth.token_url) from e

        if response.status_code != 200:
            raise TransportError(
                f"Failed to obtain access token. Status: {response.status_code}, Body: {response.text}",
                url=auth.token_url,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(
                f"Token response is not JSON: {response.text}", url=auth.token_url
            ) from e

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise TransportError(
                f"Token response missing access_token field: {response.text}",
                url=auth.token_url,
            )

        self.token_holder.store(token, payload.get("expires_in"))
        logger.info(
            "Obtained new access token",
            operation="obtain_access_token",
            context={"access_token": mask_secret(token), "expires_in": payload.get("expires_in")},
        )
        return token

    def _authorization_header(self) -> Optional[str]:
        if self.uses_oauth:
            token = self.token_holder.token or self._obtain_access_token()
            return f"Bearer {token}"

        auth = self.authentication
        if auth and auth.client_id and auth.client_secret:
            encoded = base64.b64encode(f"{auth.client_id}:{auth.client_secret}".encode("utf-8"))
            return f"Basic {encoded.decode('ascii')}"
        return None

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def send_request(
        self,
        url: str,
        method: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
    ) -> ApiResponse:
        """
        Execute one API call.

        Non-2xx responses are returned, not raised, so they can be
        compared like any other payload.

        Raises:
            TransportError: On network failure or token acquisition failure
        """
        request_headers = dict(headers or {})
        authorization = self._authorization_header()
        if authorization:
            request_headers["Authorization"] = authorization

        data = body.encode("utf-8") if body else None
        context = {"url": url, "method": method.upper()}
        logger.debug("Executing request", operation="send_request", context=context)

        start_time = time.time()
        try:
            response = self.session.request(
                method.upper(), url, headers=request_headers, data=data, timeout=self.timeout
            )
        except requests.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Request failed",
                operation="send_request",
                context=context,
                error=str(e),
                duration_ms=duration_ms,
            )
            raise TransportError(f"Request to {url} failed: {e}", url=url) from e

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Request completed",
            operation="send_request",
            context={**context, "status_code": response.status_code},
            duration_ms=duration_ms,
        )
        return ApiResponse(
            status_code=response.status_code,
            body=response.text,
            headers=dict(response.headers or {}),
            duration_ms=duration_ms,
        )
