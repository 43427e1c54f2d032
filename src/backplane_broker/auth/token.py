"""Claim extraction from OCM bearer tokens.

Pattern: Read-Only Token Inspection
------------------------------------
The OCM access token is an OIDC JWT issued by the identity provider.  The
broker never *trusts* it: signature and expiry are validated upstream by the
provider and again by AWS STS when the token is exchanged through
``AssumeRoleWithWebIdentity``.  Here we only decode the payload to read a
claim that is used as an audit label (the STS session name and ``email``
session tag).

Do not use anything in this module to make an authorization decision.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt

from backplane_broker.errors import ClaimExtractionError

logger = logging.getLogger(__name__)

EMAIL_CLAIM = "email"


def decode_unverified(token: str) -> dict[str, Any]:
    """Return the claims of *token* without verifying its signature."""
    try:
        claims = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.exceptions.DecodeError as exc:
        raise ClaimExtractionError(f"unable to decode token: {exc}") from exc
    return claims


def get_claim(token: str, name: str) -> str:
    """Return string claim *name* from *token*.

    Raises ``ClaimExtractionError`` when the claim is missing or empty.
    """
    claims = decode_unverified(token)
    value = claims.get(name)
    if not isinstance(value, str) or not value:
        raise ClaimExtractionError(f"no field {name} on given token")
    return value


def get_email(token: str) -> str:
    return get_claim(token, EMAIL_CLAIM)


def get_username(token: str, default: str = "anonymous") -> str:
    """Best-effort display name for kubeconfig user entries."""
    try:
        return get_claim(token, "preferred_username")
    except ClaimExtractionError:
        logger.debug("Token has no preferred_username claim, using %s", default)
        return default
