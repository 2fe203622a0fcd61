"""
GitHub Gist client used for cloud backup of the tracker data.
"""

from typing import Any, Dict, Optional

import requests

from .base_client import APIError, AuthenticationError, BaseClient, DEFAULT_TIMEOUT

BASE_URL = "https://api.github.com"


class GistNotFoundError(APIError):
    """Raised when the gist id does not resolve to a gist."""
    pass


class GistClient(BaseClient):
    """
    Create, update and read a single gist with a personal access token.

    The token needs the ``gist`` scope. No request is retried.
    """

    def __init__(self, token: str, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None, base_url: str = BASE_URL):
        if not token or not token.strip():
            raise AuthenticationError("GitHub token is required")
        super().__init__(
            "github",
            base_url,
            timeout=timeout,
            session=session,
            headers={
                "Authorization": f"token {token.strip()}",
                "Accept": "application/vnd.github+json",
            },
        )

    def _handle_api_error(self, response: requests.Response) -> None:
        if response.status_code == 404:
            raise GistNotFoundError("Gist not found", response.status_code)
        super()._handle_api_error(response)

    @staticmethod
    def _files_payload(files: Dict[str, str]) -> Dict[str, Dict[str, str]]:
        return {filename: {"content": content} for filename, content in files.items()}

    def create_gist(self, files: Dict[str, str], description: str = "", public: bool = False) -> Dict[str, Any]:
        """Create a gist from a filename -> content map and return the API response."""
        response = self._request(
            "POST",
            "/gists",
            json={"description": description, "public": public, "files": self._files_payload(files)},
        )
        data = self._json(response)
        if not isinstance(data, dict) or not data.get("id"):
            raise APIError("GitHub did not return a gist id")
        self.logger.info(f"Created gist {data['id']}")
        return data

    def update_gist(self, gist_id: str, files: Dict[str, str], description: Optional[str] = None) -> Dict[str, Any]:
        """Overwrite the given files of an existing gist."""
        body: Dict[str, Any] = {"files": self._files_payload(files)}
        if description is not None:
            body["description"] = description
        response = self._request("PATCH", f"/gists/{gist_id}", json=body)
        self.logger.info(f"Updated gist {gist_id}")
        return self._json(response)

    def get_gist(self, gist_id: str) -> Dict[str, Any]:
        data = self.get_json(f"/gists/{gist_id}")
        if not isinstance(data, dict):
            raise APIError("GitHub returned an unexpected gist payload")
        return data

    def get_raw(self, raw_url: str) -> str:
        """Fetch the full content of a file that the gist API returned truncated."""
        return self._request("GET", raw_url).text
