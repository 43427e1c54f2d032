"""OCM account-management API client.

Only the handful of calls the access flow needs: the caller's access token,
resolving a cluster key (ID, external ID or name) to its canonical ID, the
cluster's cloud/STS shape, and the STS support jump role.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import pathlib
from typing import Any, Protocol

import requests

logger = logging.getLogger(__name__)

DEFAULT_OCM_URL = "https://api.openshift.com"
_CLUSTERS_PATH = "/api/clusters_mgmt/v1/clusters"


class OcmError(Exception):
    """Raised when an OCM call fails or returns unusable data."""


@dataclasses.dataclass(frozen=True)
class ClusterTarget:
    """A cluster as addressed by the user, resolved to its canonical ID.

    Attributes:
        key:          What the user typed (ID, external ID or name).
        cluster_id:   Canonical OCM cluster ID.
        cluster_name: Human-facing cluster name.
    """

    key: str
    cluster_id: str
    cluster_name: str


@dataclasses.dataclass(frozen=True)
class Cluster:
    cluster_id: str
    name: str
    cloud_provider: str
    sts_enabled: bool = False
    hibernating: bool = False

    @property
    def is_aws(self) -> bool:
        return self.cloud_provider == "aws"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Cluster:
        aws = data.get("aws") or {}
        return cls(
            cluster_id=data["id"],
            name=data.get("name", ""),
            cloud_provider=(data.get("cloud_provider") or {}).get("id", ""),
            sts_enabled=bool((aws.get("sts") or {}).get("enabled", False)),
            hibernating=data.get("state") == "hibernating",
        )


class OcmInterface(Protocol):
    def get_access_token(self) -> str: ...

    def get_target_cluster(self, cluster_key: str) -> ClusterTarget: ...

    def get_cluster(self, cluster_id: str) -> Cluster: ...

    def get_sts_support_jump_role_arn(self, cluster_id: str) -> str: ...


class OcmClient:
    """``OcmInterface`` backed by the OCM REST API."""

    def __init__(
        self,
        url: str | None = None,
        token: str | None = None,
        config_path: str | pathlib.Path | None = None,
        timeout: int = 30,
    ) -> None:
        self._url = (url or os.environ.get("OCM_URL") or DEFAULT_OCM_URL).rstrip("/")
        self._token = token
        self._config_path = pathlib.Path(
            config_path
            or os.environ.get("OCM_CONFIG")
            or pathlib.Path.home() / ".config" / "ocm" / "ocm.json"
        )
        self._timeout = timeout
        self._http = requests.Session()

    def get_access_token(self) -> str:
        """Return the caller's OCM access token.

        ``$OCM_TOKEN`` wins over the ``ocm`` CLI config file.  Token refresh is
        left to the ``ocm`` CLI.
        """
        if self._token:
            return self._token
        token = os.environ.get("OCM_TOKEN")
        if token:
            return token
        if not self._config_path.exists():
            raise OcmError(
                f"OCM config not found at {self._config_path}; run 'ocm login' first"
            )
        try:
            data = json.loads(self._config_path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise OcmError(f"cannot read OCM config {self._config_path}: {exc}") from exc
        token = data.get("access_token")
        if not token:
            raise OcmError("OCM config has no access token; run 'ocm login' first")
        return token

    def get_target_cluster(self, cluster_key: str) -> ClusterTarget:
        # OCM search literals escape a quote by doubling it.
        quoted = cluster_key.replace("'", "''")
        search = (
            f"id = '{quoted}' or external_id = '{quoted}' "
            f"or name = '{quoted}'"
        )
        data = self._get(_CLUSTERS_PATH, params={"search": search, "size": 2})
        items = data.get("items") or []
        if len(items) != 1:
            raise OcmError(f"expected exactly one cluster matching {cluster_key}, got {len(items)}")
        item = items[0]
        return ClusterTarget(
            key=cluster_key,
            cluster_id=item["id"],
            cluster_name=item.get("name", ""),
        )

    def get_cluster(self, cluster_id: str) -> Cluster:
        return Cluster.from_api(self._get(f"{_CLUSTERS_PATH}/{cluster_id}"))

    def get_sts_support_jump_role_arn(self, cluster_id: str) -> str:
        data = self._get(f"{_CLUSTERS_PATH}/{cluster_id}/sts_support_jump_role")
        role_arn = data.get("role_arn")
        if not role_arn:
            raise OcmError(f"cluster {cluster_id} has no STS support jump role")
        return role_arn

    # -- private helpers -----------------------------------------------------

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.get_access_token()}"}
        try:
            response = self._http.get(
                f"{self._url}{path}", params=params, headers=headers, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise OcmError(f"OCM request to {path} failed: {exc}") from exc
        if response.status_code != 200:
            raise OcmError(f"OCM request to {path} returned {response.status_code}: {response.text}")
        try:
            data = response.json()
        except ValueError as exc:
            raise OcmError(f"OCM response from {path} is not JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise OcmError(f"OCM response from {path} is not a JSON object")
        return data
