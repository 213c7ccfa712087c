from __future__ import annotations

import argparse
from typing import List, Optional

import bittensor as bt

from olnode.core.models import RepoCoords, WizardFlags
from olnode.errors import OlError
from olnode.node import keygen
from olnode.node.config import load_config
from olnode.provision.wizard import create_account, run_val_wizard
from olnode.utils.config import _die, build_parser
from olnode.utils.env import _env_str


def _val_wizard(args: argparse.Namespace) -> None:
    run_val_wizard(
        path=args.path,
        chain_id=args.chain_id,
        repo=RepoCoords(
            github_org=args.github_org,
            repo=args.repo,
            branch=_env_str("OL_GENESIS_BRANCH", "main") or "main",
        ),
        flags=WizardFlags(
            keygen=args.keygen,
            rebuild_genesis=args.rebuild_genesis,
            skip_fetch_genesis=args.skip_fetch_genesis,
            skip_mining=args.skip_mining,
        ),
        template_url=args.template_url,
        autopay_file=args.autopay_file,
    )


def _create(args: argparse.Namespace) -> None:
    create_account(skip_keys=args.skip_keys, val=args.val, path=args.path)


def _keygen(_: argparse.Namespace) -> None:
    _, _, wallet = keygen.keygen()
    keygen.print_new_keys(wallet)


def _monitor(args: argparse.Namespace) -> None:
    import uvicorn

    from olnode.monitor.app import create_app
    from olnode.monitor.cache import CheckCache
    from olnode.monitor.client import NodeClient
    from olnode.monitor.config import load_monitor_env
    from olnode.monitor.refresher import Node, start_refresher

    cfg = load_config(args.config)
    env = load_monitor_env(
        cfg,
        host=args.host,
        port=args.port,
        static_dir=args.static_dir,
        account_file=args.account_file,
        check_interval_s=args.check_interval,
    )
    cache = CheckCache()
    node = Node(NodeClient(cfg.profile.default_node), cfg)
    start_refresher(node, cache, env.check_interval_s)

    app = create_app(cache, account_file=env.account_file, static_dir=env.static_dir, intervals=env.intervals)
    bt.logging.info(f"Web monitor listening on {env.host}:{env.port}")
    uvicorn.run(app, host=env.host, port=env.port, log_level="warning")


COMMANDS = {
    "val-wizard": _val_wizard,
    "create": _create,
    "keygen": _keygen,
    "monitor": _monitor,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.trace:
        bt.logging.set_trace(True)
    elif args.debug:
        bt.logging.set_debug(True)

    try:
        COMMANDS[args.command](args)
    except OlError as e:
        _die(str(e))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
