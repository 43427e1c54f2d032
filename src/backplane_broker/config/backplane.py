"""Backplane configuration loading.

The configuration file is the single declarative source for *where* the
backplane API lives, which proxy fronts it, and which AWS role seeds isolated
access.  It is the same JSON file the ``ocm backplane`` tooling uses, read
with PyYAML (a JSON superset) so hand-written YAML works too.

Environment overrides:

  - ``BACKPLANE_URL`` replaces ``url``.
  - ``HTTPS_PROXY`` fills ``proxy-url`` when the file leaves it out.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import pathlib
from typing import Any, Callable

import yaml

from backplane_broker.errors import ConfigError

logger = logging.getLogger(__name__)

BACKPLANE_URL_ENV = "BACKPLANE_URL"
BACKPLANE_CONFIG_ENV = "BACKPLANE_CONFIG"
DEFAULT_SESSION_DIR = pathlib.Path.home() / "backplane"


def default_config_path() -> pathlib.Path:
    env_path = os.environ.get(BACKPLANE_CONFIG_ENV)
    if env_path:
        return pathlib.Path(env_path)
    return pathlib.Path.home() / ".config" / "backplane" / "config.json"


@dataclasses.dataclass(frozen=True)
class BackplaneConfiguration:
    """Resolved backplane settings.

    Attributes:
        url:                Backplane API base URL.
        proxy_url:          HTTP(S) proxy for backplane and STS traffic.
        assume_initial_arn: Role assumed with the OCM token (isolated flow).
        session_dir:        Root directory for per-cluster sessions.
    """

    url: str
    proxy_url: str = ""
    assume_initial_arn: str = ""
    session_dir: pathlib.Path = DEFAULT_SESSION_DIR


ConfigProvider = Callable[[], BackplaneConfiguration]


def load_backplane_configuration(
    path: str | pathlib.Path | None = None,
) -> BackplaneConfiguration:
    """Load the backplane configuration, applying environment overrides.

    Raises ``ConfigError`` if the file is unreadable or no URL is known.
    """
    config_path = pathlib.Path(path) if path is not None else default_config_path()
    data = _load(config_path)

    url = os.environ.get(BACKPLANE_URL_ENV) or data.get("url") or ""
    if not url:
        raise ConfigError(
            f"no backplane URL: set {BACKPLANE_URL_ENV} or 'url' in {config_path}"
        )

    proxy_url = data.get("proxy-url") or os.environ.get("HTTPS_PROXY", "")
    session_dir = data.get("session-dir")

    return BackplaneConfiguration(
        url=url,
        proxy_url=proxy_url,
        assume_initial_arn=data.get("assume-initial-arn") or "",
        session_dir=pathlib.Path(session_dir).expanduser() if session_dir else DEFAULT_SESSION_DIR,
    )


def config_provider(path: str | pathlib.Path | None = None) -> ConfigProvider:
    """Return a provider that re-reads the configuration on every call."""
    return lambda: load_backplane_configuration(path)


# -- private helpers ---------------------------------------------------------

def _load(path: pathlib.Path) -> dict[str, Any]:
    if not path.exists():
        logger.debug("Backplane config %s not found, relying on environment", path)
        return {}
    try:
        with open(path) as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read backplane config {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"backplane config {path} must be a mapping")
    return data
