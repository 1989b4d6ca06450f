"""Copy the instructions of large transactions into transactions signed by our own wallet."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from .base58 import b58decode, is_valid_pubkey
from .large_transaction import monitor_large_transactions
from .rpc import RpcError, SlotCursor
from .transaction import AccountMeta, Instruction, Keypair, Message, Transaction

log = logging.getLogger(__name__)

MONITOR_TIMEOUT = 30.0
SIGNATURE_LENGTH = 64


@dataclass
class CopyTradeConfig:
    wallet: Keypair
    max_lamports: int
    target_program: str


def _is_parsed(message: dict[str, Any]) -> bool:
    return any(isinstance(key, dict) for key in message.get("accountKeys") or [])


def _check_signature(signature: str) -> None:
    try:
        valid = len(b58decode(signature)) == SIGNATURE_LENGTH
    except (ValueError, TypeError):
        valid = False
    if not valid:
        raise ValueError(f"invalid signature: {signature!r}")


def extract_instructions(raw_message: dict[str, Any], program_id: str, slot: int) -> list[Instruction]:
    """Rebuild the instructions of a raw message against the given program."""
    account_keys = raw_message.get("accountKeys") or []
    instructions = []
    for compiled in raw_message.get("instructions") or []:
        wanted = set(compiled.get("accounts") or [])
        accounts = [
            AccountMeta(key, is_signer=position == 0, is_writable=True)
            for position, key in enumerate(account_keys)
            if position in wanted and is_valid_pubkey(key)
        ]
        try:
            data = b58decode(compiled.get("data", ""))
        except (ValueError, TypeError) as exc:
            log.error("Failed to decode instruction data, slot: %d, error: %s", slot, exc)
            continue
        instructions.append(Instruction(program_id, accounts, data))
    return instructions


async def try_copy_trade(
    client: Any, config: CopyTradeConfig, encoded_tx: Any, slot: int
) -> str | None:
    """Copy one JSON-encoded transaction; return the new signature, or None if skipped."""
    if not isinstance(encoded_tx, dict):
        return None
    message = encoded_tx.get("message") or {}
    if _is_parsed(message):
        print(f"Parsed message, skipping copy trade, slot: {slot}")
        return None

    account_keys = message.get("accountKeys") or []
    if not account_keys or not is_valid_pubkey(account_keys[0]):
        raise ValueError("No program ID found")
    program_id = account_keys[0]
    if program_id != config.target_program:
        print(f"Skipping transaction: target program does not match, slot: {slot}")
        return None

    instructions = extract_instructions(message, program_id, slot)

    payer = config.wallet.pubkey
    try:
        lamports = await client.get_balance(payer)
    except RpcError as exc:
        raise RpcError(f"Failed to get balance: {exc}") from exc
    if lamports < config.max_lamports:
        log.error("Insufficient balance to copy trade: %d lamports, slot: %d", lamports, slot)
        return None

    transaction = Transaction(Message.compile(instructions, payer))
    transaction.sign([config.wallet], await client.get_latest_blockhash())

    try:
        signature = await client.send_and_confirm_transaction(transaction)
    except RpcError as exc:
        log.error("Copy trade failed: %s", exc)
        raise RpcError(f"Copy trade failed: {exc}") from exc
    print(f"Copy trade succeeded, signature: {signature}")
    return signature


async def monitor_and_copy_trade(client: Any, cursor: SlotCursor, config: CopyTradeConfig) -> None:
    """Find large transactions in new slots and try to copy each one."""
    log.info("Monitoring large transactions to copy...")
    try:
        large_transactions = await asyncio.wait_for(
            monitor_large_transactions(client, cursor), MONITOR_TIMEOUT
        )
    except asyncio.TimeoutError:
        log.error("Timed out monitoring large transactions")
        print("Timed out monitoring large transactions; check the network or the RPC node.")
        return

    if not large_transactions:
        print("No large transactions detected")
        return

    print(f"Detected {len(large_transactions)} large transactions")
    for found in large_transactions:
        print(
            f"Large transaction - slot: {found.slot}, wallet: {found.wallet_address}, "
            f"fee: {found.fee} lamports, signature: {found.signature}"
        )
        _check_signature(found.signature)
        try:
            fetched = await client.get_transaction(found.signature)
        except RpcError as exc:
            log.error("Failed to fetch transaction %s: %s", found.signature, exc)
            continue
        if not fetched:
            log.error("Failed to fetch transaction %s: not found", found.signature)
            continue
        try:
            await try_copy_trade(client, config, fetched.get("transaction"), found.slot)
        except (RpcError, ValueError) as exc:
            log.error(
                "Copy trade failed, slot %d, signature %s: %s", found.slot, found.signature, exc
            )