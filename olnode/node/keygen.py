"""Account key material.

An account is derived from a BIP39 mnemonic: the keypair's public key hashed
with a trailing scheme byte gives the 32-byte auth key, and the last 16 bytes
of the auth key are the account address.
"""

from __future__ import annotations

import getpass
import hashlib
from typing import Optional, Tuple

import bittensor as bt

from olnode.core.models import Wallet
from olnode.errors import ValidationError
from olnode.utils.env import _env_str

# Single-signature scheme identifier appended before hashing.
SCHEME_ID = b"\x00"


def derive_auth_key(public_key: bytes) -> str:
    return hashlib.sha3_256(bytes(public_key) + SCHEME_ID).hexdigest()


def account_from_auth_key(auth_key: str) -> str:
    return auth_key[-32:]


def wallet_from_mnemonic(mnemonic: str) -> Wallet:
    words = " ".join((mnemonic or "").split())
    if not words:
        raise ValidationError("mnemonic is empty")
    try:
        kp = bt.Keypair.create_from_mnemonic(words)
    except Exception as e:
        raise ValidationError(f"invalid mnemonic: {e}") from e
    auth_key = derive_auth_key(kp.public_key)
    return Wallet(mnemonic=words, keypair=kp, auth_key=auth_key, account=account_from_auth_key(auth_key))


def keygen() -> Tuple[str, str, Wallet]:
    """Generate a fresh mnemonic and return (auth_key, account, wallet)."""
    mnemonic = bt.Keypair.generate_mnemonic()
    wallet = wallet_from_mnemonic(mnemonic)
    return wallet.auth_key, wallet.account, wallet


def account_from_prompt(mnemonic: Optional[str] = None) -> Tuple[str, str, Wallet]:
    """Read an existing mnemonic (argument, OL_MNEMONIC, or a hidden prompt)."""
    words = mnemonic or _env_str("OL_MNEMONIC", "")
    if not words:
        words = getpass.getpass("Enter your 0L mnemonic: ")
    wallet = wallet_from_mnemonic(words)
    bt.logging.info(f"Using account {wallet.account}")
    return wallet.auth_key, wallet.account, wallet


def print_new_keys(wallet: Wallet) -> None:
    print("\n0L Account")
    print(f"  auth key: {wallet.auth_key}")
    print(f"  account:  {wallet.account}")
    print("\nMnemonic (write this down, it will not be shown again):")
    print(f"  {wallet.mnemonic}\n")
