"""Command-line argument groups for the olnode subcommands."""

from __future__ import annotations

import argparse

from olnode.utils.env import _env_str


def _die(msg: str) -> None:
    raise SystemExit(f"[olnode] {msg}")


def add_logging_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("--trace", action="store_true", help="Enable trace logging.")


def add_wizard_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--path", type=str, default=None, help="Home path for all 0L files.")
    parser.add_argument("--chain-id", type=int, default=None, help="Id of the chain.")
    parser.add_argument(
        "--github-org",
        type=str,
        default=_env_str("OL_GENESIS_ORG", "OLSF") or "OLSF",
        help="Github org of the genesis repo.",
    )
    parser.add_argument(
        "--repo",
        type=str,
        default=_env_str("OL_GENESIS_REPO", "genesis-archive") or "genesis-archive",
        help="Repo with genesis transactions.",
    )
    parser.add_argument("--keygen", action="store_true", help="Run keygen before the wizard.")
    parser.add_argument("--rebuild-genesis", action="store_true", help="Build genesis from the ceremony repo.")
    parser.add_argument("--skip-fetch-genesis", action="store_true", help="Skip fetching the genesis blob.")
    parser.add_argument("--skip-mining", action="store_true", help="Skip mining a block zero.")
    parser.add_argument("--template-url", type=str, default=None, help="Template account.json to configure from.")
    parser.add_argument("--autopay-file", type=str, default=None, help="Autopay instructions file.")


def add_create_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--skip-keys", action="store_true", help="Don't generate keys; read a mnemonic instead.")
    parser.add_argument("--val", action="store_true", help="Create a validator account instead of a user account.")
    parser.add_argument("--path", type=str, default=None, help="Path to write the account manifest.")


def add_monitor_args(parser: argparse.ArgumentParser) -> None:
    # Unset values fall back to OL_MONITOR_* env vars, see olnode.monitor.config.
    parser.add_argument("--config", type=str, default=None, help="Path to 0L.yaml (default: OL_CONFIG_PATH or ~/.0L/0L.yaml).")
    parser.add_argument("--host", type=str, default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--static-dir", type=str, default=None, help="Web monitor assets served at /.")
    parser.add_argument("--account-file", type=str, default=None, help="Account manifest served at /account.json.")
    parser.add_argument("--check-interval", type=float, default=None, help="Seconds between background health refreshes.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="olnode", description="0L node provisioning and monitoring.")
    add_logging_args(parser)
    sub = parser.add_subparsers(dest="command", required=True)

    add_wizard_args(sub.add_parser("val-wizard", help="Configure a validator node and account."))
    add_create_args(sub.add_parser("create", help="Create an account manifest."))
    sub.add_parser("keygen", help="Generate a new mnemonic and account.")
    add_monitor_args(sub.add_parser("monitor", help="Serve the web monitor."))
    return parser
