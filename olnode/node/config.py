"""Miner/node configuration (0L.yaml).

The wizard fills this in progressively: profile first, then chain info once a
template is resolved. It is persisted as YAML in the node home and loaded
once by the monitor at startup.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

import bittensor as bt
import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from olnode.errors import ConfigError, FileSystemError
from olnode.utils.env import _env_int, _env_str, default_config_path, ol_home

CONFIG_FILE_NAME = "0L.yaml"
DEFAULT_NODE_URL = "http://localhost:8080"


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    account: str = ""
    auth_key: str = ""
    statement: str = ""
    # Local node first, then any upstream the operator trusts for sync comparisons.
    default_node: str = DEFAULT_NODE_URL
    upstream_nodes: List[str] = Field(default_factory=list)


class ChainInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    chain_id: int = 1
    # Only set when the wizard resolved a template.
    base_epoch: Optional[int] = None
    base_waypoint: Optional[str] = None


class Workspace(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_home: Path
    block_dir: str = "blocks"
    db_path: str = "db"
    source_path: Optional[Path] = None


class TxConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_gas_amount: int = 1_000_000
    gas_unit_price: int = 1
    expiration_secs: int = 86_400


class MinerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile: Profile = Field(default_factory=Profile)
    chain_info: ChainInfo = Field(default_factory=ChainInfo)
    workspace: Workspace
    tx_configs: TxConfig = Field(default_factory=TxConfig)

    @property
    def node_home(self) -> Path:
        return self.workspace.node_home

    @property
    def config_path(self) -> Path:
        return self.workspace.node_home / CONFIG_FILE_NAME

    def with_chain_info(self, **changes) -> "MinerConfig":
        return self.model_copy(update={"chain_info": self.chain_info.model_copy(update=changes)})


def default_miner_config(node_home: Union[str, Path]) -> MinerConfig:
    chain_id = _env_int("OL_CHAIN_ID", 1)
    node_url = _env_str("OL_NODE_URL", DEFAULT_NODE_URL) or DEFAULT_NODE_URL
    return MinerConfig(
        profile=Profile(default_node=node_url),
        chain_info=ChainInfo(chain_id=chain_id),
        workspace=Workspace(node_home=Path(node_home).expanduser()),
    )


def save_config(cfg: MinerConfig, path: Optional[Path] = None) -> Path:
    target = Path(path) if path is not None else cfg.config_path
    data = cfg.model_dump(mode="json")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
    except OSError as e:
        raise FileSystemError(f"could not write miner config: {e}", resource=target) from e
    return target


def load_config(path: Optional[Union[str, Path]] = None) -> MinerConfig:
    """Load 0L.yaml; `path` defaults to `OL_CONFIG_PATH` or `~/.0L/0L.yaml`."""
    cfg_path = Path(path).expanduser() if path else default_config_path()
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError("config file not found", resource=cfg_path) from None
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"could not read config: {e}", resource=cfg_path) from e
    if not isinstance(raw, dict):
        raise ConfigError("config must be a mapping", resource=cfg_path)
    try:
        return MinerConfig.model_validate(raw)
    except PydanticValidationError as e:
        raise ConfigError(f"malformed config: {e.errors()[0].get('msg', e)}", resource=cfg_path) from e


def initialize_miner(
    auth_key: str,
    account: str,
    path: Optional[Union[str, Path]],
    *,
    chain_id: Optional[int] = None,
) -> MinerConfig:
    """Derive a miner config anchored at `path` (default OL_HOME) and write it to disk."""
    node_home = Path(path).expanduser() if path else ol_home()
    try:
        node_home.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError(f"target path is unusable: {e}", resource=node_home) from e
    if not node_home.is_dir():
        raise FileSystemError("target path is not a directory", resource=node_home)

    base = default_miner_config(node_home)
    cfg = base.model_copy(
        update={
            "profile": base.profile.model_copy(update={"auth_key": auth_key, "account": account}),
            "chain_info": base.chain_info.model_copy(
                update={"chain_id": chain_id if chain_id is not None else base.chain_info.chain_id}
            ),
        }
    )
    written = save_config(cfg)
    bt.logging.debug(f"miner config written to {written}")
    return cfg
