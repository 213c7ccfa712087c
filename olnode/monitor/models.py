from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckItems(BaseModel):
    model_config = ConfigDict(frozen=True)

    configs_exist: bool = False
    db_restored: bool = False
    node_running: bool = False
    miner_running: bool = False
    account_created: bool = False
    is_synced: bool = False
    sync_height: int = 0
    # Upstream height minus ours; None when no upstream answered.
    sync_delay: Optional[int] = None
    validator_set: bool = False


class ChainView(BaseModel):
    model_config = ConfigDict(frozen=True)

    epoch: int = 0
    height: int = 0
    validator_count: int = 0
    total_supply: int = 0
    latest_epoch_change_time: int = 0
    waypoint: Optional[str] = None


class ValidatorView(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_address: str
    pub_key: str = ""
    voting_power: int = 0
    full_node_ip: str = ""
    validator_ip: str = ""
    tower_height: int = 0
    tower_epoch: int = 0
    count_proofs_in_epoch: int = 0
    epochs_validating_and_mining: int = 0


class OwnerAccountView(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str = ""
    balance: float = 0.0
    is_in_validator_set: bool = False


class CacheSnapshot(BaseModel):
    """Everything the refresher computed in one cycle."""

    model_config = ConfigDict(frozen=True)

    items: CheckItems = Field(default_factory=CheckItems)
    chain: ChainView = Field(default_factory=ChainView)
    validators: List[ValidatorView] = Field(default_factory=list)
    account: OwnerAccountView = Field(default_factory=OwnerAccountView)
    # Unix seconds of the refresh that produced this snapshot; 0 = never refreshed.
    refreshed_at: int = 0
