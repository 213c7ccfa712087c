"""Node health evaluation and the background loop that keeps the cache fresh."""

from __future__ import annotations

import subprocess
import threading
import time
import traceback
from typing import Any, Dict, List, Optional

import bittensor as bt
from pydantic import ValidationError as PydanticValidationError

from olnode.errors import OlError
from olnode.monitor.cache import CheckCache
from olnode.monitor.client import NodeClient
from olnode.monitor.models import CacheSnapshot, ChainView, CheckItems, OwnerAccountView, ValidatorView
from olnode.node.config import CONFIG_FILE_NAME, MinerConfig
from olnode.node.validator_keys import KEY_STORE_FILE
from olnode.provision.genesis import NODE_CONFIG_FILE

NODE_PROCESS = "libra-node"
MINER_PROCESS = "tower"
# Versions behind the upstream still counted as synced.
SYNC_DELAY_THRESHOLD = 1000
COIN_SCALING = 1_000_000


def _process_running(name: str) -> bool:
    try:
        return subprocess.run(["pgrep", "-f", name], capture_output=True).returncode == 0
    except OSError:
        return False


class Node:
    """Reads everything the monitor shows about this node and its account."""

    def __init__(self, client: NodeClient, config: MinerConfig, *, upstream: Optional[NodeClient] = None) -> None:
        self.client = client
        self.config = config
        if upstream is None and config.profile.upstream_nodes:
            upstream = NodeClient(config.profile.upstream_nodes[0], timeout_s=client.timeout_s)
        self.upstream = upstream

    def _metadata(self, client: Optional[NodeClient]) -> Optional[Dict[str, Any]]:
        if client is None:
            return None
        try:
            return client.get_metadata()
        except OlError as e:
            bt.logging.warning(f"metadata unavailable: {e}")
            return None

    def chain_view(self, meta: Optional[Dict[str, Any]], validators: List[ValidatorView]) -> ChainView:
        if not meta:
            return ChainView(waypoint=self.config.chain_info.base_waypoint)
        return ChainView(
            epoch=int(meta.get("epoch") or 0),
            height=int(meta.get("version") or 0),
            validator_count=len(validators),
            total_supply=int(meta.get("total_supply") or 0),
            latest_epoch_change_time=int(meta.get("latest_epoch_change_time") or 0),
            waypoint=meta.get("waypoint") or self.config.chain_info.base_waypoint,
        )

    def validator_views(self) -> List[ValidatorView]:
        try:
            raw = self.client.get_validators()
        except OlError as e:
            bt.logging.warning(f"validator set unavailable: {e}")
            return []
        out: List[ValidatorView] = []
        for item in raw:
            try:
                out.append(ValidatorView.model_validate(item))
            except PydanticValidationError:
                bt.logging.debug(f"skipping malformed validator entry: {item!r}")
        return out

    def account_view(self, validators: List[ValidatorView]) -> Optional[OwnerAccountView]:
        address = self.config.profile.account
        if not address:
            return None
        try:
            acct = self.client.get_account(address)
        except OlError as e:
            bt.logging.warning(f"account {address} unavailable: {e}")
            return None
        if acct is None:
            return None
        balance = 0
        for b in acct.get("balances") or []:
            if isinstance(b, dict):
                balance += int(b.get("amount") or 0)
        in_set = any(v.account_address.lower() == address.lower() for v in validators)
        return OwnerAccountView(address=address, balance=balance / COIN_SCALING, is_in_validator_set=in_set)

    def check_items(
        self,
        meta: Optional[Dict[str, Any]],
        account: Optional[OwnerAccountView],
    ) -> CheckItems:
        home = self.config.node_home
        configs_exist = all((home / name).exists() for name in (CONFIG_FILE_NAME, NODE_CONFIG_FILE, KEY_STORE_FILE))
        db = home / self.config.workspace.db_path
        db_restored = db.is_dir() and any(db.iterdir())

        sync_height = int(meta.get("version") or 0) if meta else 0
        sync_delay: Optional[int] = None
        upstream_meta = self._metadata(self.upstream)
        if meta and upstream_meta:
            sync_delay = max(0, int(upstream_meta.get("version") or 0) - sync_height)
        if sync_delay is not None:
            is_synced = sync_delay <= SYNC_DELAY_THRESHOLD
        else:
            is_synced = meta is not None and self.upstream is None

        return CheckItems(
            configs_exist=configs_exist,
            db_restored=db_restored,
            node_running=_process_running(NODE_PROCESS),
            miner_running=_process_running(MINER_PROCESS),
            account_created=account is not None,
            is_synced=is_synced,
            sync_height=sync_height,
            sync_delay=sync_delay,
            validator_set=bool(account and account.is_in_validator_set),
        )

    def refresh(self) -> CacheSnapshot:
        meta = self._metadata(self.client)
        validators = self.validator_views()
        account = self.account_view(validators)
        return CacheSnapshot(
            items=self.check_items(meta, account),
            chain=self.chain_view(meta, validators),
            validators=validators,
            account=account or OwnerAccountView(address=self.config.profile.account),
            refreshed_at=int(time.time()),
        )


class Refresher:
    """Runs `node.refresh()` every `interval_s` on a daemon thread."""

    def __init__(self, node: Node, cache: CheckCache, interval_s: float = 15.0) -> None:
        self.node = node
        self.cache = cache
        self.interval_s = max(0.1, float(interval_s))
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def refresh_once(self) -> None:
        try:
            snapshot = self.node.refresh()
        except Exception:
            bt.logging.error("Unexpected error refreshing checks:\n%s", traceback.format_exc())
            return
        self.cache.replace(snapshot)

    def _run(self) -> None:
        while not self._stop.is_set():
            self.refresh_once()
            self._stop.wait(self.interval_s)

    def start(self) -> "Refresher":
        self._thread = threading.Thread(target=self._run, name="olnode-refresher", daemon=True)
        self._thread.start()
        bt.logging.info(f"Check refresher started (every {self.interval_s:.0f}s)")
        return self

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)


def start_refresher(node: Node, cache: CheckCache, interval_s: float = 15.0) -> Refresher:
    return Refresher(node, cache, interval_s).start()
