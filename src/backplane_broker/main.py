"""CLI entry point — ties together configuration, login, logout and sessions."""

from __future__ import annotations

import argparse
import logging

from backplane_broker.session.session import SessionOptions


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="backplane-broker",
        description="Backplane broker: short-lived access to managed clusters",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the backplane config (default: $BACKPLANE_CONFIG or ~/.config/backplane/config.json)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Log in to a cluster")
    login.add_argument("cluster", help="Cluster ID, external ID or name")
    login.add_argument("--kubeconfig", default=None, help="Kubeconfig to write (default: $KUBECONFIG)")

    logout = commands.add_parser("logout", help="Log out of the current backplane cluster")
    logout.add_argument("--kubeconfig", default=None, help="Kubeconfig to edit (default: $KUBECONFIG)")

    session = commands.add_parser("session", help="Open a shell bound to one cluster")
    session.add_argument("alias", nargs="?", default="", help="Session name")
    session.add_argument("--cluster-id", "-c", default="", help="Cluster to log in to")
    session.add_argument("--delete", "-d", action="store_true", help="Delete the session")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    from backplane_broker.prompt import cli

    if args.command == "login":
        cli.run_login(args.cluster, config_path=args.config, kubeconfig_path=args.kubeconfig)
    elif args.command == "logout":
        cli.run_logout(kubeconfig_path=args.kubeconfig)
    else:
        options = SessionOptions(
            alias=args.alias,
            cluster_id=args.cluster_id,
            delete_session=args.delete,
        )
        cli.run_session(options, [], config_path=args.config)


if __name__ == "__main__":
    main()
