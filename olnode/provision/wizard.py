"""Validator config wizard and account creation.

The wizard is a fixed sequence of stages. Each stage takes the current
`BootstrapSession` and returns a new one; nothing is mutated in place, so a
failing stage leaves no half-updated session behind (files already written by
earlier stages stay on disk, re-running the wizard overwrites them).

Stages that talk to the outside world (keys, downloads, external tools) go
through `Collaborators`, whose defaults are the real implementations.
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import bittensor as bt

from olnode.core.models import (
    BootstrapManifest,
    BootstrapSession,
    RepoCoords,
    TemplateDocument,
    Wallet,
    WizardFlags,
)
from olnode.errors import OlError
from olnode.node import keygen as keygen_mod
from olnode.node.config import MinerConfig, default_miner_config, initialize_miner, save_config
from olnode.node.validator_keys import initialize_validator
from olnode.provision import autopay, genesis, template
from olnode.provision.manifest import manifest_path, write_manifest
from olnode.utils.env import ol_home

Credentials = Tuple[str, str, Wallet]


@dataclass(frozen=True)
class Collaborators:
    keygen: Callable[[], Credentials] = keygen_mod.keygen
    account_from_prompt: Callable[[], Credentials] = keygen_mod.account_from_prompt
    initialize_miner: Callable[..., MinerConfig] = initialize_miner
    initialize_validator: Callable[[Wallet, MinerConfig], Any] = initialize_validator
    resolve_template: Callable[[str, Path], TemplateDocument] = template.resolve
    fetch_genesis: Callable[[Path, RepoCoords], Any] = genesis.get_files
    genesis_files: Callable[[MinerConfig, Optional[int], RepoCoords, bool], Any] = genesis.genesis_files
    mine_zero: Callable[[MinerConfig], Dict[str, Any]] = genesis.mine_zero
    build_autopay: Callable[..., Tuple[list, list]] = autopay.build


Stage = Callable[[BootstrapSession, Collaborators], BootstrapSession]
Gate = Callable[[BootstrapSession], bool]


def _keygen(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
    auth_key, account, wallet = c.keygen()
    keygen_mod.print_new_keys(wallet)
    return session.model_copy(update={"auth_key": auth_key, "account": account, "wallet": wallet})


def _config_init(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
    if session.wallet is None:
        # Keys were generated out of band; ask for them.
        auth_key, account, wallet = c.account_from_prompt()
        session = session.model_copy(update={"auth_key": auth_key, "account": account, "wallet": wallet})
    cfg = c.initialize_miner(session.auth_key, session.account, session.path, chain_id=session.chain_id)
    return session.model_copy(update={"miner_config": cfg})


def _validator_keys(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
    c.initialize_validator(session.wallet, session.miner_config)
    return session


def _template(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
    doc = c.resolve_template(session.template_url, session.home)
    cfg = session.miner_config.with_chain_info(base_epoch=doc.epoch, base_waypoint=str(doc.waypoint))
    save_config(cfg)
    return session.model_copy(update={"miner_config": cfg})


def _genesis_fetch(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
    c.fetch_genesis(session.home, session.repo)
    return session


def _node_files(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
    c.genesis_files(session.miner_config, session.chain_id, session.repo, session.flags.rebuild_genesis)
    return session


def _mining(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
    block = c.mine_zero(session.miner_config)
    return session.model_copy(update={"block_zero": block})


def _autopay(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
    source = autopay.autopay_source_path(
        session.home,
        template_used=bool(session.template_url),
        autopay_file=session.autopay_file,
    )
    starting_epoch = session.miner_config.chain_info.base_epoch
    if starting_epoch is None:
        bt.logging.warning("No base epoch from a template; autopay instructions start at epoch 0")
        starting_epoch = 0
    tx_params = autopay.get_tx_params(session.miner_config, session.wallet)
    instructions, signed = c.build_autopay(source, starting_epoch, tx_params)
    return session.model_copy(update={"autopay_instructions": instructions, "autopay_signed": signed})


def _manifest(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
    write_manifest(manifest_path(session.path, session.home), _manifest_of(session))
    return session


def _always(_: BootstrapSession) -> bool:
    return True


# (name, gate, stage, banner). Order is fixed.
WIZARD_STAGES: List[Tuple[str, Gate, Stage, str]] = [
    ("keygen", lambda s: s.flags.keygen, _keygen, "Keys generated"),
    ("config_init", _always, _config_init, "Miner config written"),
    ("validator_keys", _always, _validator_keys, "Key file written"),
    ("template", lambda s: bool(s.template_url), _template, "Template saved"),
    (
        "genesis_fetch",
        # Rebuilding genesis always wins over fetching it.
        lambda s: not s.flags.rebuild_genesis and not s.flags.skip_fetch_genesis,
        _genesis_fetch,
        "Downloaded genesis files",
    ),
    ("node_files", _always, _node_files, "Node config written"),
    ("mining", lambda s: not s.flags.skip_mining, _mining, "Genesis proof complete"),
    ("autopay", lambda s: s.wants_autopay, _autopay, "Autopay transactions signed"),
    ("manifest", _always, _manifest, "Account manifest written"),
]


def run_stages(
    session: BootstrapSession,
    stages: List[Tuple[str, Gate, Stage, str]],
    collaborators: Collaborators,
) -> BootstrapSession:
    for name, gate, stage, banner in stages:
        if not gate(session):
            bt.logging.debug(f"[{name}] skipped")
            continue
        try:
            session = stage(session, collaborators)
        except OlError as e:
            e.stage = name
            bt.logging.error(f"[{name}] failed: {e}")
            raise
        bt.logging.success(banner)
    return session


def run_val_wizard(
    *,
    path: Optional[Union[str, Path]] = None,
    chain_id: Optional[int] = None,
    repo: Optional[RepoCoords] = None,
    flags: Optional[WizardFlags] = None,
    template_url: Optional[str] = None,
    autopay_file: Optional[Union[str, Path]] = None,
    collaborators: Optional[Collaborators] = None,
) -> BootstrapManifest:
    session = BootstrapSession(
        path=Path(path).expanduser() if path else None,
        chain_id=chain_id,
        repo=repo or RepoCoords(),
        flags=flags or WizardFlags(),
        template_url=template_url,
        autopay_file=Path(autopay_file) if autopay_file else None,
    )
    bt.logging.info(
        "Validator Config Wizard. Your node and on-chain account will be configured now; "
        "unless --skip-mining is set your first proof-of-work is mined too (up to 15 minutes)."
    )
    session = run_stages(session, WIZARD_STAGES, collaborators or Collaborators())
    bt.logging.info(
        "Your validator node and miner app are now configured. account.json can be used to submit "
        "an account creation transaction on-chain."
    )
    return _manifest_of(session)


def _chain_point(session: BootstrapSession) -> Tuple[Optional[int], Optional[str]]:
    """Epoch and waypoint a new node can configure from, as the template resolver reads them."""
    info = session.miner_config.chain_info
    waypoint = info.base_waypoint or genesis.read_genesis_waypoint(session.home)
    if waypoint is None:
        return None, None
    # Without a template the node starts from genesis.
    return (info.base_epoch if info.base_epoch is not None else 0), waypoint


def _manifest_of(session: BootstrapSession, *, include_config: bool = True) -> BootstrapManifest:
    cfg = session.miner_config if include_config else None
    epoch, waypoint = _chain_point(session) if cfg else (None, None)
    return BootstrapManifest(
        wallet=session.wallet.reference(),
        epoch=epoch,
        waypoint=waypoint,
        miner_config=cfg.model_dump(mode="json") if cfg else None,
        block_zero=session.block_zero,
        autopay_instructions=session.autopay_instructions,
        autopay_signed=session.autopay_signed,
    )


def create_account(
    *,
    skip_keys: bool = False,
    val: bool = False,
    path: Optional[Union[str, Path]] = None,
    collaborators: Optional[Collaborators] = None,
) -> BootstrapManifest:
    """Create a user (or validator, with `val`) account manifest with a mined block zero.

    `path` is where account.json goes (default `OL_HOME/account.json`). The miner
    config only lives in memory and block zero is mined in a scratch directory,
    so an existing node's 0L.yaml and blocks are never touched.
    """
    c = collaborators or Collaborators()
    target = manifest_path(path, ol_home())

    def _credentials(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
        auth_key, account, wallet = c.account_from_prompt() if skip_keys else c.keygen()
        if not skip_keys:
            keygen_mod.print_new_keys(wallet)
        return session.model_copy(update={"auth_key": auth_key, "account": account, "wallet": wallet})

    def _account_config(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
        base = default_miner_config(target.parent)
        cfg = base.model_copy(
            update={"profile": base.profile.model_copy(update={"auth_key": session.auth_key, "account": session.account})}
        )
        return session.model_copy(update={"miner_config": cfg})

    def _scratch_mining(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
        cfg = session.miner_config
        with tempfile.TemporaryDirectory(prefix="olnode-zero-") as scratch:
            scratch_cfg = cfg.model_copy(update={"workspace": cfg.workspace.model_copy(update={"node_home": Path(scratch)})})
            block = c.mine_zero(scratch_cfg)
        return session.model_copy(update={"block_zero": block})

    def _account_manifest(session: BootstrapSession, c: Collaborators) -> BootstrapSession:
        # User accounts carry no node configuration.
        write_manifest(target, _manifest_of(session, include_config=val))
        return session

    stages: List[Tuple[str, Gate, Stage, str]] = [
        ("keygen", _always, _credentials, "Account keys ready"),
        ("config_init", _always, _account_config, "Account profile ready"),
        ("mining", _always, _scratch_mining, "Genesis proof complete"),
        ("manifest", _always, _account_manifest, f"Account manifest written to {target}"),
    ]
    session = run_stages(BootstrapSession(path=target), stages, c)
    return _manifest_of(session, include_config=val)
