"""Scan recent blocks for transactions that paid unusually high fees."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from .base58 import is_valid_pubkey
from .rpc import RpcError, SlotCursor

log = logging.getLogger(__name__)

FEE_THRESHOLD = 10_000_000
MAX_SLOTS_PER_BATCH = 20
HEALTH_TIMEOUT = 3.0
SLOT_TIMEOUT = 5.0
BLOCK_TIMEOUT = 20.0
SETTLE_DELAY = 0.1


@dataclass(frozen=True)
class LargeTransaction:
    slot: int
    wallet_address: str
    fee: int
    signature: str


def _large_transaction(slot: int, tx: dict[str, Any]) -> LargeTransaction | None:
    meta = tx.get("meta")
    if not meta or meta.get("fee", 0) <= FEE_THRESHOLD:
        return None
    encoded = tx.get("transaction")
    if not isinstance(encoded, dict):
        return None
    signatures = encoded.get("signatures") or []
    if not signatures:
        return None
    account_keys = (encoded.get("message") or {}).get("accountKeys") or []
    if not account_keys:
        return None
    payer = account_keys[0]
    # Parsed messages carry objects here; only raw messages hold plain keys.
    if not isinstance(payer, str) or not is_valid_pubkey(payer):
        return None
    return LargeTransaction(slot=slot, wallet_address=payer, fee=meta["fee"], signature=signatures[0])


def process_block(slot: int, block: dict[str, Any]) -> list[LargeTransaction]:
    """Return the transactions in a JSON-encoded block whose fee exceeds the threshold."""
    transactions: Iterable[dict[str, Any]] = block.get("transactions") or []
    return [found for tx in transactions if (found := _large_transaction(slot, tx)) is not None]


async def _fetch_block(client: Any, slot: int) -> dict[str, Any] | None:
    try:
        return await asyncio.wait_for(client.get_block(slot, "confirmed"), BLOCK_TIMEOUT)
    except asyncio.TimeoutError:
        log.error("Timed out fetching block for slot %d", slot)
    except RpcError as exc:
        log.error("Failed to fetch block for slot %d: %s", slot, exc)
    return None


async def monitor_large_transactions(client: Any, cursor: SlotCursor) -> list[LargeTransaction]:
    """Check the slots after the cursor for large transactions and advance the cursor."""
    log.info("Checking the chain for large transactions...")

    try:
        await asyncio.wait_for(client.get_health(), HEALTH_TIMEOUT)
    except asyncio.TimeoutError:
        raise RpcError("RPC health check timed out") from None
    except RpcError as exc:
        raise RpcError(f"RPC connection error: {exc}") from exc

    try:
        current_slot = await asyncio.wait_for(client.get_slot(), SLOT_TIMEOUT)
    except asyncio.TimeoutError:
        raise RpcError("Timed out fetching slot") from None
    except RpcError as exc:
        raise RpcError(f"Failed to fetch slot: {exc}") from exc

    async with cursor.lock():
        if current_slot <= cursor.value:
            log.info(
                "No new slots to check. Current slot: %d, last checked: %d",
                current_slot,
                cursor.value,
            )
            return []

        start_slot = cursor.value + 1
        pending = current_slot - start_slot + 1
        if pending > MAX_SLOTS_PER_BATCH:
            log.warning(
                "Too many slots (%d), limiting to the latest %d", pending, MAX_SLOTS_PER_BATCH
            )
            first_slot = max(current_slot - (MAX_SLOTS_PER_BATCH - 1), 0)
        else:
            first_slot = start_slot

        slots = range(first_slot, current_slot + 1)
        blocks = await asyncio.gather(*(_fetch_block(client, slot) for slot in slots))

        large = [
            found
            for slot, block in zip(slots, blocks)
            if block is not None
            for found in process_block(slot, block)
        ]
        cursor.value = current_slot

    await asyncio.sleep(SETTLE_DELAY)
    return large