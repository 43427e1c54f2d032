"""Error taxonomy for the access decision and credential-escalation flow.

Every step of login and escalation wraps its upstream failure with a fixed,
step-identifying prefix and raises one of the classes below.  The prefix
strings are part of the observable contract: callers (and tests) match on
them to tell failure domains apart without a traceback.

``retryable`` is advisory.  Nothing inside this package retries; the CLI
layer uses it to word its error output.
"""

from __future__ import annotations


class BackplaneError(Exception):
    """Base class for all broker errors."""

    retryable: bool = False


class InvalidArgumentError(BackplaneError):
    """Missing or bad caller input.  The user must fix the input."""


class ConfigError(BackplaneError):
    """Missing or invalid local configuration."""


class MetadataLookupError(BackplaneError):
    """An external metadata fetch (token, jump role, cluster) failed."""

    retryable = True


class MalformedARNError(BackplaneError):
    """Fetched or configured metadata holds something that is not an ARN."""


class ClientConstructionError(BackplaneError):
    """An STS or backplane client could not be built."""

    retryable = True


class RoleAssumptionError(BackplaneError):
    """STS refused a role assumption.  Retry only with a refreshed token."""


class ClaimExtractionError(BackplaneError):
    """The bearer token is malformed or lacks a required claim."""


class KubeconfigError(BackplaneError):
    """The kubeconfig does not hold the state an operation expects."""
