"""Data carried through the provisioning pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import bittensor as bt
from pydantic import BaseModel, ConfigDict, Field

from olnode.core.waypoint import Waypoint
from olnode.node.config import MinerConfig
from olnode.node.signing import public_key_hex


class Wallet:
    """Key material for one account. Held for the life of a wizard run only."""

    __slots__ = ("mnemonic", "keypair", "auth_key", "account")

    def __init__(self, mnemonic: str, keypair: bt.Keypair, auth_key: str, account: str) -> None:
        self.mnemonic = mnemonic
        self.keypair = keypair
        self.auth_key = auth_key
        self.account = account

    def __repr__(self) -> str:
        return f"Wallet(account={self.account!r})"

    def reference(self) -> Dict[str, str]:
        # Never includes the mnemonic.
        return {
            "account": self.account,
            "auth_key": self.auth_key,
            "public_key": public_key_hex(self.keypair),
            "ss58_address": self.keypair.ss58_address,
        }


@dataclass(frozen=True)
class TemplateDocument:
    epoch: int
    waypoint: Waypoint


class Instruction(BaseModel):
    """One autopay directive as written in autopay.json / template.json."""

    model_config = ConfigDict(frozen=True)

    uid: int
    type_of: str
    destination: str
    value: float
    end_epoch: Optional[int] = None
    duration_epochs: Optional[int] = None
    note: Optional[str] = None


class Script(BaseModel):
    model_config = ConfigDict(frozen=True)

    function: str
    args: Dict[str, Any]


class SignedTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    sender: str
    sequence_number: int
    chain_id: int
    payload: Script
    max_gas_amount: int
    gas_unit_price: int
    expiration_timestamp_secs: int
    public_key: str
    signature: str

    def raw(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"public_key", "signature"})


class RepoCoords(BaseModel):
    model_config = ConfigDict(frozen=True)

    github_org: str = "OLSF"
    repo: str = "genesis-archive"
    branch: str = "main"


class WizardFlags(BaseModel):
    model_config = ConfigDict(frozen=True)

    keygen: bool = False
    rebuild_genesis: bool = False
    skip_fetch_genesis: bool = False
    skip_mining: bool = False


class BootstrapSession(BaseModel):
    """State accumulated by the wizard. Every stage returns a new copy."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Optional[Path] = None
    chain_id: Optional[int] = None
    repo: RepoCoords = Field(default_factory=RepoCoords)
    flags: WizardFlags = Field(default_factory=WizardFlags)
    template_url: Optional[str] = None
    autopay_file: Optional[Path] = None

    auth_key: Optional[str] = None
    account: Optional[str] = None
    wallet: Optional[Wallet] = None
    miner_config: Optional[MinerConfig] = None
    block_zero: Optional[Dict[str, Any]] = None
    autopay_instructions: Optional[List[Instruction]] = None
    autopay_signed: Optional[List[SignedTransaction]] = None

    @property
    def home(self) -> Path:
        if self.miner_config is None:
            raise RuntimeError("miner config not initialized yet")
        return self.miner_config.node_home

    @property
    def wants_autopay(self) -> bool:
        return bool(self.template_url) or self.autopay_file is not None


class BootstrapManifest(BaseModel):
    """account.json: what someone needs to create this account on chain."""

    model_config = ConfigDict(frozen=True)

    wallet: Dict[str, str]
    # Top-level so a validator's account.json can seed another node's wizard.
    epoch: Optional[int] = None
    waypoint: Optional[str] = None
    miner_config: Optional[Dict[str, Any]] = None
    block_zero: Optional[Dict[str, Any]] = None
    autopay_instructions: Optional[List[Instruction]] = None
    autopay_signed: Optional[List[SignedTransaction]] = None

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, exclude_none=True)
