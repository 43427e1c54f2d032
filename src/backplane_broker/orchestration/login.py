"""Log in to a cluster through backplane and write its kubeconfig context."""

from __future__ import annotations

import dataclasses
import logging
import os
import pathlib

from backplane_broker.access.classifier import AccessClassifier, AccessMode
from backplane_broker.access.escalator import CredentialEscalator
from backplane_broker.auth import token as token_inspector
from backplane_broker.backplane.client import (
    BackplaneApiError,
    BackplaneClientFactory,
    make_client_with_access_token,
)
from backplane_broker.config.backplane import BACKPLANE_URL_ENV, ConfigProvider
from backplane_broker.errors import ClientConstructionError, ConfigError, MetadataLookupError
from backplane_broker.kube import kubeconfig
from backplane_broker.ocm.client import OcmError, OcmInterface

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class LoginResult:
    cluster_id: str
    cluster_name: str
    access_mode: AccessMode
    server: str
    context_name: str
    kubeconfig_path: pathlib.Path


class LoginOrchestrator:
    """Resolves a cluster key, picks an access path and writes kubeconfig."""

    def __init__(
        self,
        ocm: OcmInterface,
        config_provider: ConfigProvider,
        classifier: AccessClassifier | None = None,
        escalator: CredentialEscalator | None = None,
        client_factory: BackplaneClientFactory = make_client_with_access_token,
    ) -> None:
        self._ocm = ocm
        self._config_provider = config_provider
        self._classifier = classifier or AccessClassifier(ocm)
        self._escalator = escalator or CredentialEscalator(
            ocm,
            config_provider,
            client_factory=client_factory,
            classifier=self._classifier,
        )
        self._client_factory = client_factory

    def login(
        self,
        cluster_key: str,
        kubeconfig_path: pathlib.Path | None = None,
    ) -> LoginResult:
        try:
            target = self._ocm.get_target_cluster(cluster_key)
            cluster = self._ocm.get_cluster(target.cluster_id)
        except OcmError as exc:
            raise MetadataLookupError(f"failed to find cluster {cluster_key}: {exc}") from exc

        if cluster.hibernating:
            logger.warning("Cluster %s is hibernating, login may fail", target.cluster_id)

        try:
            ocm_token = self._ocm.get_access_token()
        except OcmError as exc:
            raise MetadataLookupError(f"failed to retrieve OCM token: {exc}") from exc

        try:
            bp_config = self._config_provider()
        except ConfigError as exc:
            raise ConfigError(f"error retrieving backplane configuration: {exc}") from exc
        url = os.environ.get(BACKPLANE_URL_ENV) or bp_config.url

        decision = self._classifier.decide(cluster)
        mode = decision.mode
        if mode is AccessMode.ISOLATED:
            client = self._escalator.escalate(
                target.cluster_id,
                ocm_token=ocm_token,
                jump_role=decision.jump_role,
                url=url,
            ).client
        else:
            try:
                client = self._client_factory(url, ocm_token, bp_config.proxy_url)
            except BackplaneApiError as exc:
                raise ClientConstructionError(
                    f"failed to create backplane client with access token: {exc}"
                ) from exc

        try:
            proxy_uri = client.login_cluster(target.cluster_id)
        except BackplaneApiError as exc:
            raise MetadataLookupError(f"failed to log in to {target.cluster_id}: {exc}") from exc

        server = f"{client.url}{proxy_uri}" if proxy_uri.startswith("/") else proxy_uri
        path = kubeconfig_path or kubeconfig.default_kubeconfig_path()
        context_name = f"default/{target.cluster_id}/{token_inspector.get_username(ocm_token)}"

        data = kubeconfig.load_kubeconfig(path)
        kubeconfig.set_backplane_context(
            data,
            context_name=context_name,
            server=server,
            token=ocm_token,
            proxy_url=bp_config.proxy_url,
        )
        kubeconfig.save_kubeconfig(path, data)

        logger.info("Logged in to %s (%s) via %s access", target.cluster_id, target.cluster_name, mode.value)
        return LoginResult(
            cluster_id=target.cluster_id,
            cluster_name=target.cluster_name,
            access_mode=mode,
            server=server,
            context_name=context_name,
            kubeconfig_path=path,
        )
