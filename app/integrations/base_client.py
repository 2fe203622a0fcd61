"""
Shared HTTP plumbing for the external services the tracker talks to.

Each integration gets its own ``requests.Session``; GET requests may be
retried on transient status codes, nothing else is. Failures are mapped onto
a small exception hierarchy so services can decide what to swallow.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_TIMEOUT = 10.0


@dataclass(eq=False)
class IntegrationError(Exception):
    """Base exception for external service errors."""
    message: str
    status_code: Optional[int] = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class NetworkError(IntegrationError):
    """Raised when the request could not be completed."""
    pass


class AuthenticationError(IntegrationError):
    """Raised when credentials are missing or rejected."""
    pass


class NotFoundError(IntegrationError):
    """Raised when the remote resource does not exist."""
    pass


class RateLimitError(IntegrationError):
    """Raised when the service throttles us."""
    pass


class APIError(IntegrationError):
    """Raised for any other error response or an unexpected payload."""
    pass


def build_session(retry_total: int = 0) -> requests.Session:
    """Create a session, optionally retrying idempotent requests on transient failures."""
    session = requests.Session()
    if retry_total > 0:
        retry_strategy = Retry(
            total=retry_total,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
    return session


class BaseClient:
    """Common request/response handling for an HTTP API."""

    def __init__(self, name: str, base_url: str, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None, retry_total: int = 0,
                 headers: Optional[Dict[str, str]] = None):
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger(f"app.integrations.{name}")
        self.session = session or build_session(retry_total=retry_total)
        if headers:
            self.session.headers.update(headers)

    def _url(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return f"{self.base_url}/{path_or_url.lstrip('/')}"

    def _request(self, method: str, path_or_url: str, **kwargs) -> requests.Response:
        """
        Perform a request and raise an IntegrationError for anything but a 2xx.

        Raises:
            NetworkError: Connection problems and timeouts
            AuthenticationError, NotFoundError, RateLimitError, APIError: Error responses
        """
        url = self._url(path_or_url)
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise NetworkError(f"{self.name} request failed: {e}")

        if not response.ok:
            self._handle_api_error(response)

        return response

    def _handle_api_error(self, response: requests.Response) -> None:
        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError(f"{self.name} rejected the credentials", status)
        if status == 404:
            raise NotFoundError(f"{self.name} resource not found", status)
        if status == 429:
            raise RateLimitError(f"{self.name} rate limit exceeded", status)
        raise APIError(f"{self.name} returned an error", status)

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"{self.name} returned malformed JSON: {e}")

    def get_json(self, path_or_url: str, **kwargs) -> Any:
        return self._json(self._request("GET", path_or_url, **kwargs))
