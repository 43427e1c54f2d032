"""Decide whether a cluster needs isolated (STS jump-role) access.

Pattern: Pure Access Decision
------------------------------
Classic (non-STS) and non-AWS clusters are reached directly through
backplane.  STS clusters are reached directly only while they still carry the
legacy support role; any other jump role means the cluster has moved to the
isolated flow, where the caller must chain through the initial role and the
cluster's jump role.

The classifier makes at most one lookup and has no side effects.
"""

from __future__ import annotations

import dataclasses
import enum
import logging

from backplane_broker.aws.arn import RoleARN
from backplane_broker.errors import MetadataLookupError
from backplane_broker.ocm.client import Cluster, OcmError, OcmInterface

logger = logging.getLogger(__name__)

LEGACY_SUPPORT_ROLE_NAME = "RH-Technical-Support-Access"


class AccessMode(enum.Enum):
    DIRECT = "direct"
    ISOLATED = "isolated"


@dataclasses.dataclass(frozen=True)
class RoleChain:
    """Ordered roles assumed during isolated access."""

    initial_role: RoleARN
    jump_role: RoleARN


@dataclasses.dataclass(frozen=True)
class AccessDecision:
    """An access mode and, for STS clusters, the jump role that decided it."""

    mode: AccessMode
    jump_role: RoleARN | None = None


class AccessClassifier:
    """Classifies clusters into ``AccessMode`` values."""

    def __init__(self, ocm: OcmInterface) -> None:
        self._ocm = ocm

    def classify(self, cluster: Cluster) -> AccessMode:
        """Return the access mode for *cluster*."""
        return self.decide(cluster).mode

    def decide(self, cluster: Cluster) -> AccessDecision:
        """Return the access mode for *cluster* with the jump role it was based on.

        Raises ``MetadataLookupError`` if the jump role cannot be fetched and
        ``MalformedARNError`` if it is not a valid role ARN.
        """
        if not cluster.is_aws or not cluster.sts_enabled:
            logger.debug("Cluster %s is not AWS STS, using direct access", cluster.cluster_id)
            return AccessDecision(AccessMode.DIRECT)

        jump_role = self.jump_role(cluster.cluster_id)
        if jump_role.role_name == LEGACY_SUPPORT_ROLE_NAME:
            logger.debug("Cluster %s uses the legacy support role", cluster.cluster_id)
            return AccessDecision(AccessMode.DIRECT, jump_role)

        logger.info("Cluster %s requires isolated access via %s", cluster.cluster_id, jump_role)
        return AccessDecision(AccessMode.ISOLATED, jump_role)

    def jump_role(self, cluster_id: str) -> RoleARN:
        try:
            raw = self._ocm.get_sts_support_jump_role_arn(cluster_id)
        except OcmError as exc:
            raise MetadataLookupError(f"failed to get STS support jump role ARN: {exc}") from exc
        return RoleARN.parse(raw)
