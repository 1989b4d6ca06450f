"""Watch a list of wallets for recent transactions that may signal early token opportunities."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from .base58 import b58decode, is_valid_pubkey
from .rpc import RpcError

log = logging.getLogger(__name__)

SIGNATURE_LIMIT = 10
TRANSACTIONS_PER_WALLET = 5
COMMITMENT = "confirmed"
SIGNATURE_LENGTH = 64


def _is_valid_signature(text: object) -> bool:
    if not isinstance(text, str) or not text:
        return False
    try:
        return len(b58decode(text)) == SIGNATURE_LENGTH
    except ValueError:
        return False


def analyze_transaction_for_token_opportunity(tx: dict[str, Any] | None) -> bool:
    """Report whether a fetched transaction looks like an early token trade.

    The invoked programs are not inspected yet, so no transaction qualifies.
    """
    tx = tx or {}
    log.info("Analyzing transaction version: %r", tx.get("version"))
    log.info("Transaction content: %r", tx.get("transaction"))
    return False


async def _check_signature(client: Any, signature: str, wallet: str) -> None:
    log.info("Fetching transaction details for signature: %s", signature)
    try:
        tx = await client.get_transaction(signature, COMMITMENT)
    except RpcError as exc:
        log.error("Failed to fetch transaction details for %s: %s", signature, exc)
        return

    log.info("Transaction details for %s: Block time: %r", signature, (tx or {}).get("blockTime"))
    if analyze_transaction_for_token_opportunity(tx):
        log.info(
            "Potential early token opportunity detected in transaction %s for wallet: %s",
            signature,
            wallet,
        )
    else:
        log.info("No token opportunity detected in transaction %s.", signature)


async def _check_wallet(client: Any, wallet: str) -> None:
    if not is_valid_pubkey(wallet):
        log.error("Invalid wallet address: %s", wallet)
        return

    try:
        signatures = await client.get_signatures_for_address(
            wallet, limit=SIGNATURE_LIMIT, commitment=COMMITMENT
        )
    except RpcError as exc:
        log.error("Failed to fetch transactions for wallet %s: %s", wallet, exc)
        return

    if not signatures:
        log.info("No transactions found for wallet: %s", wallet)
        return

    log.info("New transactions detected for wallet: %s (Total: %d)", wallet, len(signatures))
    recent = signatures[:TRANSACTIONS_PER_WALLET]
    for number, info in enumerate(recent, start=1):
        log.info("Processing transaction %d of %d for wallet %s", number, len(recent), wallet)
        signature = info.get("signature")
        if not _is_valid_signature(signature):
            log.error("Invalid signature: %s", signature)
            continue
        await _check_signature(client, signature, wallet)


async def monitor_smart_wallets(client: Any, smart_wallets: Sequence[str]) -> None:
    """Run one monitoring pass over every wallet, logging what is found."""
    log.info("Starting a new monitoring cycle for %d wallets.", len(smart_wallets))
    for number, wallet in enumerate(smart_wallets, start=1):
        log.info(
            "Checking transactions for wallet %d of %d: %s", number, len(smart_wallets), wallet
        )
        await _check_wallet(client, wallet)