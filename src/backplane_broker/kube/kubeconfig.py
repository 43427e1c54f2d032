"""Minimal kubeconfig read/write.

Kubeconfig files keep clusters, users and contexts as lists of named
entries.  The helpers here work on the raw mapping loaded by PyYAML so that
entries this package does not manage survive a load/save cycle untouched.
"""

from __future__ import annotations

import logging
import os
import pathlib
from typing import Any

import yaml

from backplane_broker.errors import KubeconfigError

logger = logging.getLogger(__name__)

BACKPLANE_PATH_MARKER = "/backplane/"


def default_kubeconfig_path() -> pathlib.Path:
    """First entry of ``$KUBECONFIG``, else ``~/.kube/config``."""
    env = os.environ.get("KUBECONFIG")
    if env:
        return pathlib.Path(env.split(os.pathsep)[0])
    return pathlib.Path.home() / ".kube" / "config"


def empty_kubeconfig() -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "preferences": {},
        "clusters": [],
        "users": [],
        "contexts": [],
        "current-context": "",
    }


def load_kubeconfig(path: pathlib.Path) -> dict[str, Any]:
    """Load *path*; a missing or empty file yields an empty kubeconfig."""
    if not path.exists():
        return empty_kubeconfig()
    try:
        with open(path) as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise KubeconfigError(f"cannot parse kubeconfig {path}: {exc}") from exc
    if data is None:
        return empty_kubeconfig()
    if not isinstance(data, dict):
        raise KubeconfigError(f"kubeconfig {path} must be a mapping")
    for key in ("clusters", "users", "contexts"):
        if data.get(key) is None:
            data[key] = []
    return data


def save_kubeconfig(path: pathlib.Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as fh:
        yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)
    path.chmod(0o600)
    logger.debug("Wrote kubeconfig %s", path)


def find_entry(data: dict[str, Any], kind: str, name: str) -> dict[str, Any] | None:
    for entry in data.get(kind) or []:
        if entry.get("name") == name:
            return entry
    return None


def _upsert(data: dict[str, Any], kind: str, name: str, field: str, value: dict[str, Any]) -> None:
    entry = find_entry(data, kind, name)
    if entry is None:
        data[kind].append({"name": name, field: value})
    else:
        entry[field] = value


def _remove(data: dict[str, Any], kind: str, name: str) -> None:
    data[kind] = [entry for entry in data.get(kind) or [] if entry.get("name") != name]


def set_backplane_context(
    data: dict[str, Any],
    context_name: str,
    server: str,
    token: str,
    proxy_url: str = "",
    namespace: str = "default",
) -> None:
    """Add or replace a cluster/user/context triple and make it current."""
    cluster: dict[str, Any] = {"server": server}
    if proxy_url:
        cluster["proxy-url"] = proxy_url
    _upsert(data, "clusters", context_name, "cluster", cluster)
    _upsert(data, "users", context_name, "user", {"token": token})
    _upsert(
        data,
        "contexts",
        context_name,
        "context",
        {"cluster": context_name, "user": context_name, "namespace": namespace},
    )
    data["current-context"] = context_name


def current_context(data: dict[str, Any]) -> dict[str, Any]:
    """Return the current context entry's ``context`` mapping.

    Raises ``KubeconfigError`` when there is no current context.
    """
    name = data.get("current-context") or ""
    entry = find_entry(data, "contexts", name) if name else None
    if entry is None:
        raise KubeconfigError("current context does not exist")
    return entry.get("context") or {}


def remove_context(data: dict[str, Any], context_name: str) -> None:
    """Drop *context_name* with the cluster and user it references."""
    entry = find_entry(data, "contexts", context_name)
    context = (entry or {}).get("context") or {}
    _remove(data, "contexts", context_name)
    if context.get("cluster"):
        _remove(data, "clusters", context["cluster"])
    if context.get("user"):
        _remove(data, "users", context["user"])
    if data.get("current-context") == context_name:
        data["current-context"] = ""
