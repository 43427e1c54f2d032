"""Command handlers and console rendering.

Pattern: Prompt Renderer
-------------------------
The CLI is the human-facing boundary.  Each handler wires the collaborators
together, calls one orchestrator and renders the outcome with Rich.  Handlers
know nothing about STS, JWTs or kubeconfig layout: they delegate everything
to the orchestration layer.

Errors from the broker are printed in red and turned into exit status 1.
Retryable failures get a hint saying so.
"""

from __future__ import annotations

import logging
import pathlib
import sys
from typing import Callable

from rich.console import Console
from rich.table import Table

from backplane_broker.access.classifier import AccessMode
from backplane_broker.aws.sts import StsError
from backplane_broker.backplane.client import BackplaneApiError
from backplane_broker.config.backplane import config_provider, load_backplane_configuration
from backplane_broker.errors import BackplaneError
from backplane_broker.ocm.client import OcmClient, OcmError
from backplane_broker.orchestration.login import LoginOrchestrator, LoginResult
from backplane_broker.orchestration.logout import LogoutOrchestrator
from backplane_broker.session.session import BackplaneSession, SessionOptions

logger = logging.getLogger(__name__)
console = Console()


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {exc}")
    if isinstance(exc, BackplaneError) and exc.retryable:
        console.print("[dim]This failure may be transient; try again.[/dim]")
    sys.exit(1)


def _guarded(handler: Callable[[], None]) -> None:
    try:
        handler()
    except (BackplaneError, OcmError, StsError, BackplaneApiError) as exc:
        logger.debug("Command failed", exc_info=True)
        _fail(exc)


def _print_login(result: LoginResult) -> None:
    table = Table(show_header=False, box=None)
    table.add_column(style="cyan")
    table.add_column(style="bold")
    table.add_row("Cluster", f"{result.cluster_name} ({result.cluster_id})")
    mode_style = "yellow" if result.access_mode is AccessMode.ISOLATED else "green"
    table.add_row("Access", f"[{mode_style}]{result.access_mode.value}[/{mode_style}]")
    table.add_row("Server", result.server)
    table.add_row("Context", result.context_name)
    table.add_row("Kubeconfig", str(result.kubeconfig_path))
    console.print(table)


def run_login(cluster_key: str, config_path: str | None = None, kubeconfig_path: str | None = None) -> None:
    def handler() -> None:
        ocm = OcmClient()
        orchestrator = LoginOrchestrator(ocm, config_provider(config_path))
        result = orchestrator.login(
            cluster_key,
            kubeconfig_path=pathlib.Path(kubeconfig_path) if kubeconfig_path else None,
        )
        console.print(f"[green]Logged in[/green] to [bold]{result.cluster_id}[/bold]")
        _print_login(result)

    _guarded(handler)


def run_logout(kubeconfig_path: str | None = None) -> None:
    def handler() -> None:
        context = LogoutOrchestrator().logout(
            pathlib.Path(kubeconfig_path) if kubeconfig_path else None
        )
        console.print(f"[green]Logged out[/green] from [bold]{context}[/bold]")

    _guarded(handler)


def run_session(options: SessionOptions, args: list[str], config_path: str | None = None) -> None:
    def handler() -> None:
        provider = config_provider(config_path)
        ocm = OcmClient()
        session = BackplaneSession(
            options,
            ocm=ocm,
            login=LoginOrchestrator(ocm, provider),
            session_root=load_backplane_configuration(config_path).session_dir,
        )
        session.run_command(args)
        if options.delete_session:
            console.print(f"[green]Deleted[/green] session [bold]{session.path}[/bold]")
        else:
            console.print(f"\n[dim]Left session {session.path}.[/dim]")

    _guarded(handler)
