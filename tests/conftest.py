"""Shared fixtures for tests."""

from __future__ import annotations

import datetime
import pathlib
from unittest.mock import MagicMock

import jwt
import pytest

from backplane_broker.aws.sts import EscalatedCredentials
from backplane_broker.config.backplane import BackplaneConfiguration
from backplane_broker.ocm.client import Cluster, ClusterTarget, OcmClient

TEST_CLUSTER_ID = "test123"
TRUE_CLUSTER_ID = "trueID123"
BACKPLANE_URL = "https://api.integration.backplane.example.com"
PROXY_URL = "http://squid.example.com:3128"
INITIAL_ARN = "arn:aws:iam::123456789:role/ManagedOpenShift-Support-Role"
LEGACY_JUMP_ARN = "arn:aws:iam::123456789:role/RH-Technical-Support-Access"
ISOLATED_JUMP_ARN = "arn:aws:iam::123456789:role/RH-Technical-Support-12345"

_SIGNING_KEY = "test-signing-key-that-is-long-enough-for-hs256"


def make_token(**claims: object) -> str:
    payload = {"sub": "1234567890", "name": "John Doe", "iat": 1516239022}
    payload.update(claims)
    return jwt.encode(payload, _SIGNING_KEY, algorithm="HS256")


def make_credentials(suffix: str = "seed", expires_in: int = 3600) -> EscalatedCredentials:
    return EscalatedCredentials(
        access_key_id=f"AKIA-{suffix}",
        secret_access_key=f"secret-{suffix}",
        session_token=f"token-{suffix}",
        expiration=datetime.datetime.now(datetime.UTC) + datetime.timedelta(seconds=expires_in),
    )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BACKPLANE_URL", "BACKPLANE_CONFIG", "HTTPS_PROXY", "OCM_TOKEN", "KUBECONFIG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def token_with_email() -> str:
    return make_token(email="test@foo.com")


@pytest.fixture
def token_without_email() -> str:
    return make_token()


@pytest.fixture
def bp_config() -> BackplaneConfiguration:
    return BackplaneConfiguration(
        url=BACKPLANE_URL,
        proxy_url=PROXY_URL,
        assume_initial_arn=INITIAL_ARN,
    )


@pytest.fixture
def ocm(token_with_email: str) -> MagicMock:
    """An OCM client that resolves ``test123`` to ``trueID123``."""
    mock = MagicMock(spec=OcmClient)
    mock.get_access_token.return_value = token_with_email
    mock.get_target_cluster.side_effect = lambda key: ClusterTarget(
        key=key, cluster_id=TRUE_CLUSTER_ID, cluster_name=TEST_CLUSTER_ID
    )
    mock.get_cluster.return_value = Cluster(
        cluster_id=TRUE_CLUSTER_ID, name=TEST_CLUSTER_ID, cloud_provider="aws"
    )
    mock.get_sts_support_jump_role_arn.return_value = ISOLATED_JUMP_ARN
    return mock


@pytest.fixture
def backplane_client() -> MagicMock:
    client = MagicMock()
    client.url = BACKPLANE_URL
    client.login_cluster.return_value = f"/backplane/cluster/{TRUE_CLUSTER_ID}/"
    return client


@pytest.fixture
def kubeconfig_path(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "kube" / "config"
