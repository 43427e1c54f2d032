"""Per-cluster working sessions.

Pattern: Directory-Backed Session
----------------------------------
A session binds one cluster to one directory under the session root
(``~/backplane`` by default).  The directory holds the cluster's kubeconfig,
a shell history file and two generated environment files (``.ocenv`` for
POSIX shells, ``.zshenv`` for zsh) that export ``KUBECONFIG``, ``CLUSTERID``
and ``CLUSTERNAME``.  The user's shell is started inside the directory with
those files loaded.

The directory name is the session's identity: the alias if one was given,
otherwise the canonical cluster ID.  Setting up a session whose directory
already exists reuses it (and logs that it does); the env files are
regenerated so they always describe the cluster of the *current* login.
Sessions survive process exit and are only removed on explicit delete.

There is no locking.  Two processes working on the same session name race.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
import os
import pathlib
import shlex
import shutil
import subprocess
from typing import Callable

from backplane_broker.config.backplane import DEFAULT_SESSION_DIR
from backplane_broker.errors import InvalidArgumentError
from backplane_broker.ocm.client import ClusterTarget, OcmError, OcmInterface
from backplane_broker.orchestration.login import LoginOrchestrator

logger = logging.getLogger(__name__)

HISTORY_FILE = ".history"
POSIX_ENV_FILE = ".ocenv"
ZSH_ENV_FILE = ".zshenv"

ShellRunner = Callable[[list[str], pathlib.Path, dict[str, str]], int]


@dataclasses.dataclass
class SessionOptions:
    """Command-line options of the ``session`` command."""

    alias: str = ""
    cluster_id: str = ""
    delete_session: bool = False


@dataclasses.dataclass(frozen=True)
class SessionIdentity:
    """Who a session directory belongs to.

    Attributes:
        name:         Directory name: alias, else canonical cluster ID.
        cluster_id:   Canonical cluster ID.
        cluster_name: Cluster identifier shown to the user.
    """

    name: str
    cluster_id: str = ""
    cluster_name: str = ""

    def __post_init__(self) -> None:
        # The name becomes a single directory under the session root.
        name = self.name
        if (
            not name
            or name in (".", "..")
            or os.sep in name
            or (os.altsep and os.altsep in name)
        ):
            raise InvalidArgumentError(f"invalid session name {name!r}")


def launch_shell(command: list[str], cwd: pathlib.Path, env: dict[str, str]) -> int:
    return subprocess.call(command, cwd=cwd, env=env)


class BackplaneSession:
    """Creates, enters and deletes a cluster session directory."""

    def __init__(
        self,
        options: SessionOptions,
        ocm: OcmInterface,
        login: LoginOrchestrator,
        session_root: pathlib.Path = DEFAULT_SESSION_DIR,
        path: pathlib.Path | None = None,
        shell_runner: ShellRunner = launch_shell,
    ) -> None:
        self.options = options
        self.path = path
        self.identity: SessionIdentity | None = None
        self.created_at: datetime.datetime | None = None
        self._ocm = ocm
        self._login = login
        self._root = pathlib.Path(session_root)
        self._shell_runner = shell_runner
        self._set_up = False

    @property
    def kubeconfig_path(self) -> pathlib.Path:
        if self.path is None:
            raise InvalidArgumentError("session path is not set")
        if self.identity and self.identity.cluster_id:
            return self.path / self.identity.cluster_id / "config"
        return self.path / "config"

    def setup(self) -> None:
        """Create the session directory and its history and env files."""
        if self.path is None:
            if self.identity is None:
                raise InvalidArgumentError("ClusterID or Alias required")
            self.path = self._root / self.identity.name

        if self.path.exists():
            self._log_reuse()
        self.path.mkdir(mode=0o700, parents=True, exist_ok=True)

        (self.path / HISTORY_FILE).touch(exist_ok=True)
        self._write_env_file(POSIX_ENV_FILE, self._posix_env())
        self._write_env_file(ZSH_ENV_FILE, self._zsh_env())

        self.created_at = datetime.datetime.now(datetime.UTC)
        self._set_up = True
        logger.debug("Session %s ready", self.path)

    def run_command(self, args: list[str] | None = None) -> None:
        """Entry point of the ``session`` command."""
        alias = self.options.alias or (args[0] if args else "")
        cluster_id = self.options.cluster_id

        if self.options.delete_session:
            if self.path is None:
                if not alias and not cluster_id:
                    raise InvalidArgumentError("ClusterID or Alias required")
                name = alias or self._resolve(cluster_id).cluster_id
                self.path = self._root / SessionIdentity(name=name).name
            self.delete()
            return

        if not alias and not cluster_id:
            raise InvalidArgumentError("ClusterID or Alias required")

        key = cluster_id or alias
        target = self._resolve(key)
        self.identity = SessionIdentity(
            name=alias or target.cluster_id,
            cluster_id=target.cluster_id,
            cluster_name=target.cluster_name or key,
        )
        self.path = self._root / self.identity.name

        self.setup()
        self._login.login(target.cluster_id, kubeconfig_path=self.kubeconfig_path)
        self._start_shell()

    def delete(self) -> None:
        """Remove the session directory recursively.

        Deleting a session that was never set up in this process and does not
        exist is a no-op.  Deleting one that was set up and is already gone
        raises ``FileNotFoundError``.
        """
        if self.path is None:
            logger.info("No session directory to delete")
            return
        root = self._root.resolve()
        target = self.path.resolve()
        if target == root or not target.is_relative_to(root):
            raise InvalidArgumentError(f"session {self.path} is outside session root {self._root}")
        if not self._set_up and not self.path.exists():
            logger.info("No session directory to delete")
            return
        shutil.rmtree(self.path)
        logger.info("Deleted session %s", self.path)

    def shell_command(self) -> list[str]:
        shell = os.environ.get("SHELL") or "/bin/bash"
        if pathlib.Path(shell).name == "bash":
            return [shell, "--rcfile", str(self.path / POSIX_ENV_FILE)]
        return [shell]

    def shell_environment(self) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self._variables())
        env["ZDOTDIR"] = str(self.path)
        env["ENV"] = str(self.path / POSIX_ENV_FILE)
        return env

    # -- private helpers -----------------------------------------------------

    def _resolve(self, key: str) -> ClusterTarget:
        try:
            return self._ocm.get_target_cluster(key)
        except OcmError as exc:
            raise InvalidArgumentError(f"invalid cluster Id {key}") from exc

    def _log_reuse(self) -> None:
        previous = self._recorded_cluster_id()
        current = self.identity.cluster_id if self.identity else ""
        if previous and current and previous != current:
            logger.warning(
                "Session directory %s was used for cluster %s, now %s",
                self.path,
                previous,
                current,
            )
        else:
            logger.info("Reusing existing session directory %s", self.path)

    def _recorded_cluster_id(self) -> str:
        env_file = self.path / POSIX_ENV_FILE
        if not env_file.exists():
            return ""
        prefix = "export CLUSTERID="
        for line in env_file.read_text().splitlines():
            if line.startswith(prefix):
                values = shlex.split(line[len(prefix):])
                return values[0] if values else ""
        return ""

    def _start_shell(self) -> None:
        logger.info("Starting shell in session %s", self.path)
        code = self._shell_runner(self.shell_command(), self.path, self.shell_environment())
        logger.debug("Session shell exited with %s", code)

    def _variables(self) -> dict[str, str]:
        identity = self.identity or SessionIdentity(name=self.path.name)
        return {
            "HISTFILE": str(self.path / HISTORY_FILE),
            "KUBECONFIG": str(self.kubeconfig_path),
            "CLUSTERID": identity.cluster_id,
            "CLUSTERNAME": identity.cluster_name,
        }

    def _exports(self) -> list[str]:
        return [f"export {name}={shlex.quote(value)}" for name, value in self._variables().items()]

    def _prompt_label(self) -> str:
        identity = self.identity or SessionIdentity(name=self.path.name)
        return f"[{identity.cluster_name or identity.name}]"

    def _posix_env(self) -> str:
        prompt = self._prompt_label() + r" \W \$ "
        lines = ['[ -f "$HOME/.bashrc" ] && . "$HOME/.bashrc"']
        lines += self._exports()
        lines.append(f"export PS1={shlex.quote(prompt)}")
        return "\n".join(lines) + "\n"

    def _zsh_env(self) -> str:
        prompt = self._prompt_label() + " %1~ %# "
        lines = ['[ -f "$HOME/.zshenv" ] && source "$HOME/.zshenv"']
        lines += self._exports()
        lines.append(f"export PROMPT={shlex.quote(prompt)}")
        return "\n".join(lines) + "\n"

    def _write_env_file(self, name: str, content: str) -> None:
        target = self.path / name
        resolved = self.identity is not None and bool(self.identity.cluster_id)
        if target.exists() and not resolved:
            return
        target.write_text(content)
