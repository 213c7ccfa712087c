from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import List

import pytest
import requests
import yaml

from olnode.core.models import RepoCoords
from olnode.errors import FileSystemError, NetworkError, ValidationError
from olnode.node.config import initialize_miner
from olnode.provision import genesis

from conftest import WAYPOINT


class _Resp:
    def __init__(self, body: bytes, status_code: int = 200):
        self.content = body
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}")


@pytest.fixture
def cfg(tmp_path, wallet, monkeypatch):
    monkeypatch.delenv("OL_GENESIS_TOOL", raising=False)
    monkeypatch.delenv("OL_TOWER_BIN", raising=False)
    return initialize_miner(wallet.auth_key, wallet.account, tmp_path / "node", chain_id=4)


def _fake_tool(monkeypatch, on_run=None, *, error=None) -> List[List[str]]:
    calls: List[List[str]] = []

    def fake_run(cmd, *, cwd, check):
        calls.append(list(cmd))
        if error is not None:
            raise error
        if on_run is not None:
            on_run(Path(cwd))
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(genesis.subprocess, "run", fake_run)
    return calls


def test_get_files_fetches_from_repo_raw_urls(tmp_path, monkeypatch):
    calls = []

    def fake_get(url: str, *, timeout: float):
        calls.append(url)
        return _Resp(WAYPOINT.encode("utf-8") if url.endswith("genesis_waypoint") else b"\x00blob")

    monkeypatch.setattr(genesis.requests, "get", fake_get)

    written = genesis.get_files(tmp_path, RepoCoords(github_org="org", repo="archive", branch="v5"))

    assert calls == [
        "https://raw.githubusercontent.com/org/archive/v5/genesis.blob",
        "https://raw.githubusercontent.com/org/archive/v5/genesis_waypoint",
    ]
    assert [p.name for p in written] == ["genesis.blob", "genesis_waypoint"]
    assert (tmp_path / "genesis.blob").read_bytes() == b"\x00blob"
    assert genesis.read_genesis_waypoint(tmp_path) == WAYPOINT


def test_get_files_http_failure_is_network_error(tmp_path, monkeypatch):
    monkeypatch.setattr(genesis.requests, "get", lambda url, *, timeout: _Resp(b"", 404))

    with pytest.raises(NetworkError) as exc:
        genesis.get_files(tmp_path, RepoCoords())

    assert exc.value.resource.endswith("/genesis.blob")
    assert not (tmp_path / "genesis.blob").exists()


def test_genesis_files_rebuild_runs_tool_then_writes_node_config(cfg, monkeypatch):
    monkeypatch.setenv("OL_GENESIS_TOOL", "my-genesis")
    calls = _fake_tool(monkeypatch, lambda cwd: (cwd / "genesis_waypoint").write_text(WAYPOINT, encoding="utf-8"))

    target = genesis.genesis_files(cfg, 9, RepoCoords(github_org="org", repo="ceremony"), True)

    assert calls == [
        ["my-genesis", "--chain-id", "9", "--github-org", "org", "--repo", "ceremony", "--path", str(cfg.node_home)]
    ]
    node_yaml = yaml.safe_load(target.read_text(encoding="utf-8"))
    assert node_yaml["base"]["waypoint"]["from_config"] == WAYPOINT
    assert node_yaml["execution"]["genesis_file_location"] == str(cfg.node_home / "genesis.blob")


def test_genesis_files_without_rebuild_never_runs_tool(cfg, monkeypatch):
    calls = _fake_tool(monkeypatch)

    target = genesis.genesis_files(cfg, None, RepoCoords(), False)

    assert calls == []
    assert "waypoint" not in yaml.safe_load(target.read_text(encoding="utf-8"))["base"]


def test_genesis_files_falls_back_to_base_waypoint(cfg, monkeypatch):
    _fake_tool(monkeypatch)

    target = genesis.genesis_files(cfg.with_chain_info(base_waypoint=WAYPOINT), None, RepoCoords(), False)

    assert yaml.safe_load(target.read_text(encoding="utf-8"))["base"]["waypoint"]["from_config"] == WAYPOINT


def test_malformed_genesis_waypoint_names_file(tmp_path):
    (tmp_path / "genesis_waypoint").write_text("garbage", encoding="utf-8")

    with pytest.raises(ValidationError) as exc:
        genesis.read_genesis_waypoint(tmp_path)
    assert exc.value.resource == str(tmp_path / "genesis_waypoint")


@pytest.mark.parametrize(
    "error,needle",
    [
        (FileNotFoundError("no such file"), "not found"),
        (subprocess.CalledProcessError(2, ["ol-genesis-tool"]), "status 2"),
    ],
)
def test_rebuild_tool_failures_are_filesystem_errors(cfg, monkeypatch, error, needle):
    _fake_tool(monkeypatch, error=error)

    with pytest.raises(FileSystemError) as exc:
        genesis.rebuild_genesis(cfg, None, RepoCoords())
    assert needle in exc.value.message
    assert exc.value.resource == "ol-genesis-tool"


def test_mine_zero_returns_block_written_by_tower(cfg, monkeypatch):
    block = {"height": 0, "preimage": "aa", "proof": "bb"}

    def write_block(cwd: Path) -> None:
        (cwd / "blocks").mkdir()
        (cwd / "blocks" / "block_0.json").write_text(json.dumps(block), encoding="utf-8")

    calls = _fake_tool(monkeypatch, write_block)

    assert genesis.mine_zero(cfg) == block
    assert calls == [["tower", "--path", str(cfg.node_home), "zero"]]


def test_mine_zero_without_block_is_filesystem_error(cfg, monkeypatch):
    _fake_tool(monkeypatch)

    with pytest.raises(FileSystemError) as exc:
        genesis.mine_zero(cfg)
    assert exc.value.resource == str(cfg.node_home / "blocks" / "block_0.json")


def test_mine_zero_rejects_non_object_block(cfg, monkeypatch):
    def write_list(cwd: Path) -> None:
        (cwd / "blocks").mkdir()
        (cwd / "blocks" / "block_0.json").write_text("[1, 2]", encoding="utf-8")

    _fake_tool(monkeypatch, write_list)

    with pytest.raises(ValidationError):
        genesis.mine_zero(cfg)


def test_missing_tower_binary(cfg, monkeypatch):
    monkeypatch.setenv("OL_TOWER_BIN", "/opt/missing/tower")
    _fake_tool(monkeypatch, error=FileNotFoundError("/opt/missing/tower"))

    with pytest.raises(FileSystemError) as exc:
        genesis.mine_zero(cfg)
    assert exc.value.resource == "/opt/missing/tower"
