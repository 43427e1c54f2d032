"""Credential escalation for isolated backplane access.

Pattern: Staged Escalation
---------------------------
The escalator encapsulates the multi-step process of turning an OCM bearer
token into credentials for a cluster's jump role:

  1. Fetch the caller's OCM token.
  2. Load backplane configuration and check the initial role is set.
  3. Build a proxy-aware STS client.
  4. Assume the initial role with the token as web identity.
  5. Read the caller's email off the token (session name + tag).
  6. Build the backplane client with the bearer token.
  7. Assume the cluster's jump role with the first-hop credentials.

Each step is its own failure domain and wraps its error with a fixed prefix.
Nothing is retried and nothing is written to disk.
"""

from __future__ import annotations

import dataclasses
import logging

from backplane_broker.access.classifier import AccessClassifier, RoleChain
from backplane_broker.auth import token as token_inspector
from backplane_broker.aws.arn import RoleARN
from backplane_broker.aws.sts import EscalatedCredentials, StsError, StsGateway
from backplane_broker.backplane.client import (
    BackplaneApiError,
    BackplaneClient,
    BackplaneClientFactory,
    make_client_with_access_token,
)
from backplane_broker.config.backplane import ConfigProvider
from backplane_broker.errors import (
    ClaimExtractionError,
    ClientConstructionError,
    ConfigError,
    InvalidArgumentError,
    MetadataLookupError,
    RoleAssumptionError,
)
from backplane_broker.ocm.client import OcmError, OcmInterface

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class EscalationResult:
    """Outcome of a successful escalation.

    Attributes:
        client:      Backplane client authenticated with the bearer token.
        credentials: Jump-role credentials, held in memory only.
        email:       Identity claim used as session name and tag.
        role_chain:  The roles that were assumed, in order.
    """

    client: BackplaneClient
    credentials: EscalatedCredentials
    email: str
    role_chain: RoleChain


class CredentialEscalator:
    """Runs the two-hop STS chain for isolated clusters."""

    def __init__(
        self,
        ocm: OcmInterface,
        config_provider: ConfigProvider,
        sts: StsGateway | None = None,
        client_factory: BackplaneClientFactory = make_client_with_access_token,
        classifier: AccessClassifier | None = None,
    ) -> None:
        self._ocm = ocm
        self._config_provider = config_provider
        self._sts = sts or StsGateway()
        self._client_factory = client_factory
        self._classifier = classifier or AccessClassifier(ocm)

    def escalate(
        self,
        cluster_id: str,
        ocm_token: str | None = None,
        jump_role: RoleARN | None = None,
        url: str | None = None,
    ) -> EscalationResult:
        """Escalate to the jump role of *cluster_id*.

        A caller that already holds the OCM token, the parsed jump role or the
        backplane URL for this login passes them in so that one login uses one
        value of each.  Anything left out is fetched here.
        """
        if not cluster_id:
            raise InvalidArgumentError("must provide non-empty cluster ID")

        # Step 1 — Caller's bearer token.
        if not ocm_token:
            try:
                ocm_token = self._ocm.get_access_token()
            except OcmError as exc:
                raise MetadataLookupError(f"failed to retrieve OCM token: {exc}") from exc

        # Step 2 — Backplane configuration; the initial role is mandatory.
        try:
            bp_config = self._config_provider()
        except ConfigError as exc:
            raise ConfigError(f"error retrieving backplane configuration: {exc}") from exc

        if not bp_config.assume_initial_arn:
            raise ConfigError("backplane config is missing required `assume-initial-arn` property")
        initial_role = RoleARN.parse(bp_config.assume_initial_arn)

        # Step 3 — STS client through the backplane proxy.
        try:
            sts_client = self._sts.client_with_proxy(bp_config.proxy_url)
        except StsError as exc:
            raise ClientConstructionError(f"failed to create sts client: {exc}") from exc

        # Step 4 — First hop: token as web identity.
        try:
            seed_credentials = self._sts.assume_role_with_web_identity(
                ocm_token, initial_role, sts_client
            )
        except StsError as exc:
            raise RoleAssumptionError(f"failed to assume role using JWT: {exc}") from exc

        # Step 5 — Identity label for the second hop.
        try:
            email = token_inspector.get_email(ocm_token)
        except ClaimExtractionError as exc:
            raise ClaimExtractionError(f"unable to extract email from given token: {exc}") from exc

        # Step 6 — Backplane client authenticates with the token, not AWS creds.
        try:
            client = self._client_factory(url or bp_config.url, ocm_token, bp_config.proxy_url)
        except BackplaneApiError as exc:
            raise ClientConstructionError(
                f"failed to create backplane client with access token: {exc}"
            ) from exc

        # Step 7 — Second hop: jump role with the first-hop credentials.
        if jump_role is None:
            jump_role = self._classifier.jump_role(cluster_id)
        try:
            credentials = self._sts.assume_role(
                seed_credentials,
                jump_role,
                session_name=email,
                proxy_url=bp_config.proxy_url,
                tags={"email": email},
            )
        except StsError as exc:
            raise RoleAssumptionError(f"failed to assume jump role: {exc}") from exc

        logger.info("Escalated %s to %s for cluster %s", email, jump_role, cluster_id)
        return EscalationResult(
            client=client,
            credentials=credentials,
            email=email,
            role_chain=RoleChain(initial_role=initial_role, jump_role=jump_role),
        )
