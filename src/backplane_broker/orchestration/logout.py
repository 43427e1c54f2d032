"""Remove the current backplane context from a kubeconfig."""

from __future__ import annotations

import logging
import pathlib

from backplane_broker.errors import KubeconfigError
from backplane_broker.kube import kubeconfig

logger = logging.getLogger(__name__)


class LogoutOrchestrator:
    def logout(self, kubeconfig_path: pathlib.Path | None = None) -> str:
        """Drop the current context if it points at backplane.

        Returns the removed context name.  A kubeconfig whose current context
        is not a backplane login is left byte-for-byte untouched.
        """
        path = kubeconfig_path or kubeconfig.default_kubeconfig_path()
        data = kubeconfig.load_kubeconfig(path)

        context = kubeconfig.current_context(data)
        cluster = kubeconfig.find_entry(data, "clusters", context.get("cluster", "")) or {}
        server = (cluster.get("cluster") or {}).get("server", "")
        if kubeconfig.BACKPLANE_PATH_MARKER not in server:
            raise KubeconfigError("you're not logged in using backplane, try 'oc logout' instead")

        context_name = data["current-context"]
        kubeconfig.remove_context(data, context_name)
        kubeconfig.save_kubeconfig(path, data)
        logger.info("Logged out from %s", server)
        return context_name
