"""Tests for the backplane API client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from backplane_broker.backplane.client import (
    BackplaneApiError,
    BackplaneClient,
    make_client_with_access_token,
)
from conftest import BACKPLANE_URL, PROXY_URL, TRUE_CLUSTER_ID


def _response(status: int, body: object) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    response.json.return_value = body
    response.text = str(body)
    return response


@pytest.fixture
def http():
    with patch("backplane_broker.backplane.client.requests.Session") as session_cls:
        session = session_cls.return_value
        session.headers = {}
        session.proxies = {}
        yield session


class TestConstruction:
    def test_sets_headers_and_proxy(self, http) -> None:
        client = make_client_with_access_token(BACKPLANE_URL + "/", "tok", PROXY_URL)

        assert client.url == BACKPLANE_URL
        assert http.headers["Authorization"] == "Bearer tok"
        assert http.proxies == {"http": PROXY_URL, "https": PROXY_URL}

    def test_no_proxy(self, http) -> None:
        make_client_with_access_token(BACKPLANE_URL, "tok")
        assert http.proxies == {}

    @pytest.mark.parametrize("url,token", [("", "tok"), (BACKPLANE_URL, "")])
    def test_rejects_empty_inputs(self, http, url: str, token: str) -> None:
        with pytest.raises(BackplaneApiError):
            BackplaneClient(url, token)


class TestLoginCluster:
    def test_returns_proxy_uri(self, http) -> None:
        http.post.return_value = _response(200, {"proxy_uri": f"/backplane/cluster/{TRUE_CLUSTER_ID}/"})
        client = BackplaneClient(BACKPLANE_URL, "tok")

        assert client.login_cluster(TRUE_CLUSTER_ID) == f"/backplane/cluster/{TRUE_CLUSTER_ID}/"
        http.post.assert_called_once_with(
            f"{BACKPLANE_URL}/backplane/login/{TRUE_CLUSTER_ID}", timeout=30
        )

    def test_error_status_uses_message(self, http) -> None:
        http.post.return_value = _response(401, {"message": "token expired"})
        client = BackplaneClient(BACKPLANE_URL, "tok")

        with pytest.raises(BackplaneApiError, match="401.*token expired"):
            client.login_cluster(TRUE_CLUSTER_ID)

    def test_missing_proxy_uri(self, http) -> None:
        http.post.return_value = _response(200, {})
        client = BackplaneClient(BACKPLANE_URL, "tok")

        with pytest.raises(BackplaneApiError, match="no proxy_uri"):
            client.login_cluster(TRUE_CLUSTER_ID)

    def test_list_body_is_rejected(self, http) -> None:
        http.post.return_value = _response(200, ["proxy_uri"])
        client = BackplaneClient(BACKPLANE_URL, "tok")

        with pytest.raises(BackplaneApiError, match="not a JSON object"):
            client.login_cluster(TRUE_CLUSTER_ID)

    def test_error_status_with_list_body(self, http) -> None:
        http.post.return_value = _response(502, ["gateway"])
        client = BackplaneClient(BACKPLANE_URL, "tok")

        with pytest.raises(BackplaneApiError, match="502"):
            client.login_cluster(TRUE_CLUSTER_ID)

    def test_non_json_body(self, http) -> None:
        response = _response(200, {})
        response.json.side_effect = ValueError("Expecting value")
        http.post.return_value = response
        client = BackplaneClient(BACKPLANE_URL, "tok")

        with pytest.raises(BackplaneApiError, match="not a JSON object"):
            client.login_cluster(TRUE_CLUSTER_ID)

    def test_transport_failure(self, http) -> None:
        http.post.side_effect = requests.ConnectionError("refused")
        client = BackplaneClient(BACKPLANE_URL, "tok")

        with pytest.raises(BackplaneApiError, match="refused"):
            client.login_cluster(TRUE_CLUSTER_ID)
