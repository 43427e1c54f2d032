"""Backplane API client authenticated with an OCM bearer token."""

from __future__ import annotations

import logging
from typing import Any, Callable

import requests

logger = logging.getLogger(__name__)


class BackplaneApiError(Exception):
    """Raised when the backplane API is unreachable or rejects a request."""


class BackplaneClient:
    """Calls the backplane API on behalf of the token holder."""

    def __init__(
        self,
        url: str,
        access_token: str,
        proxy_url: str = "",
        timeout: int = 30,
    ) -> None:
        if not url:
            raise BackplaneApiError("backplane URL is empty")
        if not access_token:
            raise BackplaneApiError("access token is empty")
        self.url = url.rstrip("/")
        self._timeout = timeout
        self._http = requests.Session()
        self._http.headers["Authorization"] = f"Bearer {access_token}"
        self._http.headers["User-Agent"] = "backplane-broker"
        if proxy_url:
            self._http.proxies = {"http": proxy_url, "https": proxy_url}

    def login_cluster(self, cluster_id: str) -> str:
        """Ask backplane for a proxy route to *cluster_id* and return its URI."""
        data = self._post(f"/backplane/login/{cluster_id}")
        proxy_uri = data.get("proxy_uri")
        if not proxy_uri:
            raise BackplaneApiError(f"backplane login for {cluster_id} returned no proxy_uri")
        logger.debug("Backplane proxy URI for %s: %s", cluster_id, proxy_uri)
        return proxy_uri

    # -- private helpers -----------------------------------------------------

    def _post(self, path: str) -> dict[str, Any]:
        try:
            response = self._http.post(f"{self.url}{path}", timeout=self._timeout)
        except requests.RequestException as exc:
            raise BackplaneApiError(f"request to {path} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None
        if not response.ok:
            message = data.get("message") if isinstance(data, dict) else None
            raise BackplaneApiError(
                f"backplane returned {response.status_code} for {path}: {message or response.text}"
            )
        if not isinstance(data, dict):
            raise BackplaneApiError(f"backplane response from {path} is not a JSON object")
        return data


BackplaneClientFactory = Callable[[str, str, str], BackplaneClient]


def make_client_with_access_token(url: str, access_token: str, proxy_url: str = "") -> BackplaneClient:
    return BackplaneClient(url=url, access_token=access_token, proxy_url=proxy_url)
