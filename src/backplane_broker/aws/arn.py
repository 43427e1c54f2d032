"""Validated AWS ARN value type."""

from __future__ import annotations

import dataclasses

from backplane_broker.errors import MalformedARNError

_ROLE_PREFIX = "role/"


@dataclasses.dataclass(frozen=True)
class RoleARN:
    """An IAM role ARN, e.g. ``arn:aws:iam::123456789012:role/Support``.

    Only construct through ``RoleARN.parse`` so that every instance in the
    system has been validated.
    """

    partition: str
    service: str
    region: str
    account_id: str
    resource: str

    @classmethod
    def parse(cls, raw: str) -> RoleARN:
        """Parse *raw* into a ``RoleARN``.

        Raises ``MalformedARNError`` if *raw* is not a well-formed ARN or does
        not name an IAM role.
        """
        parts = raw.split(":", 5)
        if len(parts) != 6 or parts[0] != "arn":
            raise MalformedARNError(f"arn: invalid prefix: {raw!r}")

        _, partition, service, region, account_id, resource = parts
        if not partition or not service or not resource:
            raise MalformedARNError(f"arn: not enough sections: {raw!r}")
        if service != "iam" or not resource.startswith(_ROLE_PREFIX):
            raise MalformedARNError(f"arn: not an IAM role: {raw!r}")
        if not resource[len(_ROLE_PREFIX):]:
            raise MalformedARNError(f"arn: empty role name: {raw!r}")

        return cls(
            partition=partition,
            service=service,
            region=region,
            account_id=account_id,
            resource=resource,
        )

    @property
    def role_name(self) -> str:
        """Role name without any IAM path (``role/a/b/Name`` -> ``Name``)."""
        return self.resource.rsplit("/", 1)[-1]

    def __str__(self) -> str:
        return (
            f"arn:{self.partition}:{self.service}:{self.region}:"
            f"{self.account_id}:{self.resource}"
        )
