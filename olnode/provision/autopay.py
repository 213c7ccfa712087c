"""Autopay batch: recurring-payment instructions compiled into signed transactions."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import bittensor as bt
from pydantic import ValidationError as PydanticValidationError

from olnode.core.models import Instruction, Script, SignedTransaction, Wallet
from olnode.errors import FileSystemError, SigningError, ValidationError
from olnode.node.config import MinerConfig
from olnode.node.signing import public_key_hex, sign_message
from olnode.provision.template import TEMPLATE_FILE

AUTOPAY_FILE = "autopay.json"
AUTOPAY_FUNCTION = "autopay_create_instruction"

# On-chain instruction type codes.
INSTRUCTION_TYPES: Dict[str, int] = {
    "percent_of_change": 0,
    "percent_balance": 1,
    "fixed_recurring": 2,
    "fixed_once": 3,
}
PERCENT_TYPES = {"percent_of_change", "percent_balance"}


@dataclass(frozen=True)
class TxParams:
    sender: str
    auth_key: str
    chain_id: int
    max_gas_amount: int
    gas_unit_price: int
    expiration_secs: int
    keypair: bt.Keypair


def autopay_source_path(
    home: Union[str, Path],
    *,
    template_used: bool,
    autopay_file: Optional[Union[str, Path]] = None,
) -> Path:
    home = Path(home)
    if template_used:
        return home / TEMPLATE_FILE
    if autopay_file is not None:
        # Absolute paths survive the join untouched.
        return home / Path(autopay_file).expanduser()
    return home / AUTOPAY_FILE


def get_instructions(path: Union[str, Path]) -> List[Instruction]:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise FileSystemError("autopay source not found", resource=path) from None
    except (OSError, UnicodeDecodeError) as e:
        raise FileSystemError(f"could not read autopay source: {e}", resource=path) from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"autopay source is not valid JSON: {e}", resource=path) from e

    raw = data.get("autopay_instructions") if isinstance(data, dict) else None
    if not isinstance(raw, list):
        raise ValidationError("missing list field 'autopay_instructions'", resource=path)

    out: List[Instruction] = []
    for i, item in enumerate(raw):
        try:
            instr = Instruction.model_validate(item)
        except PydanticValidationError as e:
            raise ValidationError(f"autopay_instructions[{i}] is malformed: {e.errors()[0]['msg']}", resource=path) from e
        if instr.type_of not in INSTRUCTION_TYPES:
            raise ValidationError(f"autopay_instructions[{i}] has unknown type_of {instr.type_of!r}", resource=path)
        out.append(instr)
    return out


def _end_epoch(instr: Instruction, starting_epoch: int) -> Optional[int]:
    if instr.end_epoch is not None:
        return instr.end_epoch
    if instr.duration_epochs is not None:
        return starting_epoch + instr.duration_epochs
    return None


def _encode_value(instr: Instruction) -> int:
    if instr.type_of in PERCENT_TYPES:
        # Percentages travel as basis points: 12.34% -> 1234.
        return int(round(instr.value * 100))
    return int(instr.value)


def process_instructions(instructions: Sequence[Instruction], starting_epoch: int) -> List[Script]:
    scripts: List[Script] = []
    for instr in instructions:
        end = _end_epoch(instr, starting_epoch)
        if end is None or end <= starting_epoch:
            bt.logging.warning(
                f"autopay instruction uid={instr.uid} ends at epoch {end}, not after {starting_epoch}; skipping"
            )
            continue
        scripts.append(
            Script(
                function=AUTOPAY_FUNCTION,
                args={
                    "uid": instr.uid,
                    "in_type": INSTRUCTION_TYPES[instr.type_of],
                    "payee": instr.destination,
                    "end_epoch": end,
                    "value": _encode_value(instr),
                },
            )
        )
    return scripts


def get_tx_params(miner_config: Optional[MinerConfig], wallet: Optional[Wallet]) -> TxParams:
    if miner_config is None:
        raise SigningError("no miner config to derive transaction parameters from")
    if wallet is None:
        raise SigningError("no wallet available to sign autopay transactions")
    profile = miner_config.profile
    if not profile.account or not profile.auth_key:
        raise SigningError("miner config profile has no account/auth key", resource=miner_config.config_path)
    if profile.account != wallet.account:
        raise SigningError(
            f"config account {profile.account} does not match wallet account {wallet.account}",
            resource=miner_config.config_path,
        )
    tx = miner_config.tx_configs
    return TxParams(
        sender=profile.account,
        auth_key=profile.auth_key,
        chain_id=int(miner_config.chain_info.chain_id),
        max_gas_amount=int(tx.max_gas_amount),
        gas_unit_price=int(tx.gas_unit_price),
        expiration_secs=int(tx.expiration_secs),
        keypair=wallet.keypair,
    )


def sign_instructions(
    scripts: Sequence[Script],
    start_sequence: int,
    tx_params: TxParams,
    *,
    now: Optional[int] = None,
) -> List[SignedTransaction]:
    now = int(time.time()) if now is None else int(now)
    pub = public_key_hex(tx_params.keypair)
    signed: List[SignedTransaction] = []
    for i, script in enumerate(scripts):
        raw = {
            "sender": tx_params.sender,
            "sequence_number": start_sequence + i,
            "chain_id": tx_params.chain_id,
            "payload": script.model_dump(mode="json"),
            "max_gas_amount": tx_params.max_gas_amount,
            "gas_unit_price": tx_params.gas_unit_price,
            "expiration_timestamp_secs": now + tx_params.expiration_secs,
        }
        sig = sign_message(raw, keypair=tx_params.keypair)
        signed.append(SignedTransaction(**raw, public_key=pub, signature=sig))
    return signed


def build(
    source: Union[str, Path],
    starting_epoch: int,
    tx_params: TxParams,
) -> Tuple[List[Instruction], List[SignedTransaction]]:
    instructions = get_instructions(source)
    scripts = process_instructions(instructions, starting_epoch)
    signed = sign_instructions(scripts, 0, tx_params)
    bt.logging.info(f"Autopay: {len(instructions)} instructions, {len(signed)} signed transactions")
    return instructions, signed
