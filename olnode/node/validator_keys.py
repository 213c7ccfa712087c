from __future__ import annotations

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Dict

import bittensor as bt

from olnode.core.models import Wallet
from olnode.errors import FileSystemError, SigningError
from olnode.node.config import MinerConfig
from olnode.node.signing import public_key_hex

KEY_STORE_FILE = "key_store.json"
VALIDATOR_KEY_ROLES = ("operator", "consensus", "execution", "validator_network", "fullnode_network")


def _role_seed(wallet: Wallet, role: str) -> str:
    # Deterministic per role, so re-running the wizard yields the same keys.
    return hashlib.sha256(f"{wallet.mnemonic}//{role}".encode("utf-8")).hexdigest()


def derive_role_keypair(wallet: Wallet, role: str) -> bt.Keypair:
    return bt.Keypair.create_from_seed(_role_seed(wallet, role))


def _role_entry(wallet: Wallet, role: str) -> Dict[str, str]:
    seed_hex = _role_seed(wallet, role)
    kp = derive_role_keypair(wallet, role)
    return {"public_key": public_key_hex(kp), "ss58_address": kp.ss58_address, "seed": seed_hex}


def initialize_validator(wallet: Wallet, miner_config: MinerConfig) -> Path:
    """Write key_store.json for the validator roles.

    The file is written to a temp file and renamed into place, so a failure
    never leaves a half-written key store behind.
    """
    home = miner_config.node_home
    target = home / KEY_STORE_FILE

    try:
        store = {
            "account": wallet.account,
            "auth_key": wallet.auth_key,
            "owner": {"public_key": public_key_hex(wallet.keypair), "ss58_address": wallet.keypair.ss58_address},
        }
        for role in VALIDATOR_KEY_ROLES:
            store[role] = _role_entry(wallet, role)
    except Exception as e:
        raise SigningError(f"could not derive validator keys: {e}", resource=wallet.account) from e

    try:
        home.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".key_store.", dir=home)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(store, f, indent=2)
            os.chmod(tmp, 0o600)
            os.replace(tmp, target)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
    except OSError as e:
        raise FileSystemError(f"could not write validator key store: {e}", resource=target) from e

    bt.logging.debug(f"validator keys written to {target}")
    return target
