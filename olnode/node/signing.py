"""Keypair signatures over canonical JSON.

Raw transactions and manifests are signed as canonical JSON (sorted keys, no
whitespace) so any holder of the public key can re-derive the exact bytes.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import bittensor as bt

from olnode.errors import SigningError


def canon_json(obj: Mapping[str, Any]) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True).encode("utf-8")


def sign_message(message: Mapping[str, Any], *, keypair: bt.Keypair) -> str:
    try:
        sig = keypair.sign(canon_json(message))
    except Exception as e:
        raise SigningError(f"keypair refused to sign: {e}", resource=keypair.ss58_address) from e
    return sig.hex()


def verify_message(message: Mapping[str, Any], *, ss58_address: str, signature_hex: str) -> bool:
    try:
        sig = bytes.fromhex(signature_hex)
    except ValueError:
        return False
    kp = bt.Keypair(ss58_address=ss58_address)
    try:
        return bool(kp.verify(canon_json(message), sig))
    except Exception:
        return False


def public_key_hex(keypair: bt.Keypair) -> str:
    pk = keypair.public_key
    return pk.hex() if isinstance(pk, (bytes, bytearray)) else str(pk).removeprefix("0x")
