from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from olnode.monitor.app import StreamIntervals
from olnode.node.config import MinerConfig
from olnode.provision.manifest import MANIFEST_FILE
from olnode.utils.config import _die
from olnode.utils.env import _env_float, _env_int, _env_str


@dataclass(frozen=True)
class MonitorEnvConfig:
    host: str
    port: int
    static_dir: Path
    account_file: Path
    check_interval_s: float
    intervals: StreamIntervals


def load_monitor_env(
    cfg: MinerConfig,
    *,
    host: Optional[str] = None,
    port: Optional[int] = None,
    static_dir: Optional[str] = None,
    account_file: Optional[str] = None,
    check_interval_s: Optional[float] = None,
) -> MonitorEnvConfig:
    """
    Resolve monitor settings: explicit arguments, then env/.env, then defaults
    relative to the node home in `cfg`.
    """
    host = host or _env_str("OL_MONITOR_HOST", "0.0.0.0") or "0.0.0.0"
    port = int(port if port is not None else _env_int("OL_MONITOR_PORT", 3030))
    if not (0 < port < 65536):
        _die(f"Invalid OL_MONITOR_PORT={port} (expected 1-65535).")

    home = cfg.node_home
    static_raw = static_dir or _env_str("OL_MONITOR_STATIC_DIR", "")
    account_raw = account_file or _env_str("OL_MONITOR_ACCOUNT_FILE", "")

    interval = check_interval_s if check_interval_s is not None else _env_float("OL_CHECK_INTERVAL_S", 15.0)
    if interval <= 0:
        _die(f"OL_CHECK_INTERVAL_S must be positive. Got: {interval!r}")

    intervals = StreamIntervals(
        check=max(1.0, _env_float("OL_STREAM_CHECK_S", 10.0)),
        chain=max(1.0, _env_float("OL_STREAM_CHAIN_S", 10.0)),
        account=max(1.0, _env_float("OL_STREAM_ACCOUNT_S", 60.0)),
        validators=max(1.0, _env_float("OL_STREAM_VALIDATORS_S", 60.0)),
    )

    return MonitorEnvConfig(
        host=host,
        port=port,
        static_dir=Path(static_raw).expanduser() if static_raw else home / "web-monitor" / "public",
        account_file=Path(account_raw).expanduser() if account_raw else home / MANIFEST_FILE,
        check_interval_s=float(interval),
        intervals=intervals,
    )
