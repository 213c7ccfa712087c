"""Genesis material and the external tools that build it.

Downloading, rebuilding and mining are thin wrappers: the rebuild and the
proof-of-work itself are done by external binaries (`OL_GENESIS_TOOL`,
`OL_TOWER_BIN`), this module only wires their inputs and outputs into the
node home.
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

import bittensor as bt
import requests
import yaml

from olnode.core.models import RepoCoords
from olnode.errors import FileSystemError, NetworkError, ValidationError
from olnode.core.waypoint import Waypoint
from olnode.node.config import MinerConfig
from olnode.utils.env import _env_str, http_timeout_s

GENESIS_FILES = ("genesis.blob", "genesis_waypoint")
NODE_CONFIG_FILE = "node.yaml"


def _raw_url(repo: RepoCoords, file_name: str) -> str:
    return f"https://raw.githubusercontent.com/{repo.github_org}/{repo.repo}/{repo.branch}/{file_name}"


def get_files(home: Path, repo: RepoCoords) -> List[Path]:
    """Download genesis.blob and genesis_waypoint into the node home."""
    written: List[Path] = []
    for name in GENESIS_FILES:
        url = _raw_url(repo, name)
        try:
            r = requests.get(url, timeout=http_timeout_s())
            r.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(f"could not fetch genesis file: {e}", resource=url) from e
        target = Path(home) / name
        try:
            target.write_bytes(r.content)
        except OSError as e:
            raise FileSystemError(f"could not save genesis file: {e}", resource=target) from e
        written.append(target)
    return written


def _run_tool(cmd: List[str], *, cwd: Path, what: str) -> None:
    bt.logging.debug(f"running {' '.join(cmd)}")
    try:
        subprocess.run(cmd, cwd=str(cwd), check=True)
    except FileNotFoundError:
        raise FileSystemError(f"{what} binary not found", resource=cmd[0]) from None
    except subprocess.CalledProcessError as e:
        raise FileSystemError(f"{what} exited with status {e.returncode}", resource=cmd[0]) from e


def rebuild_genesis(miner_config: MinerConfig, chain_id: Optional[int], repo: RepoCoords) -> None:
    tool = _env_str("OL_GENESIS_TOOL", "ol-genesis-tool") or "ol-genesis-tool"
    cid = chain_id if chain_id is not None else miner_config.chain_info.chain_id
    _run_tool(
        [
            tool,
            "--chain-id", str(cid),
            "--github-org", repo.github_org,
            "--repo", repo.repo,
            "--path", str(miner_config.node_home),
        ],
        cwd=miner_config.node_home,
        what="genesis tool",
    )


def read_genesis_waypoint(home: Path) -> Optional[str]:
    path = Path(home) / "genesis_waypoint"
    if not path.exists():
        return None
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise FileSystemError(f"could not read genesis waypoint: {e}", resource=path) from e
    try:
        return str(Waypoint.parse(raw))
    except ValidationError as e:
        raise ValidationError(e.message, resource=path) from e


def node_config(miner_config: MinerConfig, waypoint: Optional[str]) -> Dict[str, Any]:
    home = miner_config.node_home
    cfg: Dict[str, Any] = {
        "base": {
            "data_dir": str(home),
            "role": "validator",
            "waypoint": {"from_config": waypoint} if waypoint else None,
        },
        "execution": {"genesis_file_location": str(home / "genesis.blob")},
        "storage": {"dir": str(home / miner_config.workspace.db_path)},
        "json_rpc": {"address": "0.0.0.0:8080"},
        "consensus": {"safety_rules": {"service": {"type": "local"}}},
    }
    if waypoint is None:
        cfg["base"].pop("waypoint")
    return cfg


def genesis_files(
    miner_config: MinerConfig,
    chain_id: Optional[int],
    repo: RepoCoords,
    rebuild: bool,
) -> Path:
    """Build node.yaml from the genesis material on disk (rebuilding it first if asked)."""
    home = miner_config.node_home
    if rebuild:
        rebuild_genesis(miner_config, chain_id, repo)

    waypoint = read_genesis_waypoint(home) or miner_config.chain_info.base_waypoint
    if waypoint is None:
        bt.logging.warning(f"No genesis waypoint in {home}; node.yaml written without one")

    target = home / NODE_CONFIG_FILE
    try:
        with open(target, "w", encoding="utf-8") as f:
            yaml.safe_dump(node_config(miner_config, waypoint), f, sort_keys=False)
    except OSError as e:
        raise FileSystemError(f"could not write node config: {e}", resource=target) from e
    return target


def mine_zero(miner_config: MinerConfig) -> Dict[str, Any]:
    """Run the tower binary for the block-zero proof and return the proof document."""
    home = miner_config.node_home
    tower = _env_str("OL_TOWER_BIN", "tower") or "tower"
    _run_tool([tower, "--path", str(home), "zero"], cwd=home, what="tower")

    proof_path = home / miner_config.workspace.block_dir / "block_0.json"
    try:
        with open(proof_path, "r", encoding="utf-8") as f:
            block = json.load(f)
    except FileNotFoundError:
        raise FileSystemError("tower did not produce a block zero", resource=proof_path) from None
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"could not read block zero: {e}", resource=proof_path) from e
    if not isinstance(block, dict):
        raise ValidationError("block zero must be a JSON object", resource=proof_path)
    return block
