"""AWS STS operations used by the isolated access flow.

Pattern: Credential Brokering
------------------------------
No component in this system holds long-lived AWS credentials.  Isolated
access is a two-hop chain:

  1. The OCM bearer token is exchanged through ``AssumeRoleWithWebIdentity``
     for credentials of the *initial* role (from backplane configuration).
  2. Those credentials, wrapped as a static provider, assume the
     cluster-specific *jump* role.

All STS traffic goes through the backplane proxy, so every client built here
is bound to a proxy URL.  The resulting credentials only ever live in memory.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from backplane_broker.aws.arn import RoleARN

logger = logging.getLogger(__name__)

DEFAULT_ROLE_SESSION_NAME = "backplane-broker"
DEFAULT_REGION = "us-east-1"


@dataclasses.dataclass(frozen=True)
class EscalatedCredentials:
    """Temporary AWS credentials returned by STS."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime.datetime | None = None

    @property
    def is_expired(self) -> bool:
        if self.expiration is None:
            return False
        return datetime.datetime.now(datetime.UTC) >= self.expiration

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> EscalatedCredentials:
        creds = response.get("Credentials")
        if not creds:
            raise StsError("STS response missing credentials")
        expiration = creds.get("Expiration")
        if expiration is not None and expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=datetime.UTC)
        return cls(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            expiration=expiration,
        )

    def __repr__(self) -> str:
        return f"EscalatedCredentials(access_key_id={self.access_key_id}, expiration={self.expiration})"


class StsError(Exception):
    """Raised when an STS client cannot be built or an STS call fails."""


class StsGateway:
    """Thin wrapper around boto3 STS with proxy support."""

    def __init__(self, region: str = DEFAULT_REGION, timeout: int = 30) -> None:
        self._region = region
        self._timeout = timeout

    def client_with_proxy(self, proxy_url: str, session: boto3.session.Session | None = None) -> Any:
        """Build an STS client that routes all requests through *proxy_url*."""
        config = Config(
            region_name=self._region,
            connect_timeout=self._timeout,
            read_timeout=self._timeout,
            proxies={"http": proxy_url, "https": proxy_url} if proxy_url else None,
        )
        session = session or boto3.session.Session()
        try:
            return session.client("sts", config=config)
        except (BotoCoreError, ValueError) as exc:
            raise StsError(str(exc)) from exc

    def assume_role_with_web_identity(
        self,
        token: str,
        role_arn: RoleARN,
        client: Any,
        session_name: str = DEFAULT_ROLE_SESSION_NAME,
    ) -> EscalatedCredentials:
        """Exchange the bearer *token* for credentials of *role_arn*."""
        logger.debug("Assuming %s with web identity, session name %s", role_arn, session_name)
        try:
            response = client.assume_role_with_web_identity(
                RoleArn=str(role_arn),
                RoleSessionName=session_name,
                WebIdentityToken=token,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StsError(str(exc)) from exc

        credentials = EscalatedCredentials.from_response(response)
        logger.info("Assumed %s with web identity", role_arn)
        return credentials

    def assume_role(
        self,
        credentials: EscalatedCredentials,
        role_arn: RoleARN,
        session_name: str,
        proxy_url: str = "",
        tags: dict[str, str] | None = None,
    ) -> EscalatedCredentials:
        """Assume *role_arn* using *credentials* as the caller identity."""
        session = static_credentials_session(credentials)
        client = self.client_with_proxy(proxy_url, session=session)

        params: dict[str, Any] = {
            "RoleArn": str(role_arn),
            "RoleSessionName": session_name,
        }
        if tags:
            params["Tags"] = [{"Key": key, "Value": value} for key, value in tags.items()]

        logger.debug("Assuming %s as %s", role_arn, session_name)
        try:
            response = client.assume_role(**params)
        except (BotoCoreError, ClientError) as exc:
            raise StsError(str(exc)) from exc

        result = EscalatedCredentials.from_response(response)
        logger.info("Assumed %s with session name %s", role_arn, session_name)
        return result


def static_credentials_session(credentials: EscalatedCredentials) -> boto3.session.Session:
    """Wrap *credentials* as a static credential provider."""
    return boto3.session.Session(
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        aws_session_token=credentials.session_token,
    )
