"""Follow new transactions over a websocket subscription and flag very high fees."""

from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Any

import websocket

from .base58 import b58decode
from .rpc import RpcError

log = logging.getLogger(__name__)

LARGE_FEE_THRESHOLD = 10_000_000_000  # 10 SOL in lamports
COMMITMENT = "confirmed"
SIGNATURE_LENGTH = 64

_DONE = object()


def subscription_request() -> dict[str, Any]:
    """Return the JSON-RPC request that subscribes to all transactions."""
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "transactionSubscribe",
        "params": [{"commitment": COMMITMENT}],
    }


def parse_signature_notification(text: str) -> str | None:
    """Return the transaction signature carried by a notification, if any."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    params = data.get("params")
    if not isinstance(params, dict):
        return None
    result = params.get("result")
    if not isinstance(result, dict):
        return None
    signature = result.get("signature")
    return signature if isinstance(signature, str) else None


def is_large_fee(tx: dict[str, Any] | None) -> bool:
    """Return True if a fetched transaction paid more than the large-fee threshold."""
    meta = (tx or {}).get("meta")
    if not isinstance(meta, dict):
        return False
    fee = meta.get("fee")
    return isinstance(fee, int) and fee > LARGE_FEE_THRESHOLD


def _is_valid_signature(text: str) -> bool:
    try:
        return len(b58decode(text)) == SIGNATURE_LENGTH
    except ValueError:
        return False


def _read_notifications(socket: Any, signatures: queue.Queue) -> None:
    try:
        while True:
            try:
                message = socket.recv()
            except (websocket.WebSocketException, OSError) as exc:
                log.error("WebSocket read error: %s", exc)
                break
            if not isinstance(message, str):
                continue
            signature = parse_signature_notification(message)
            if signature is not None:
                signatures.put(signature)
    finally:
        signatures.put(_DONE)
        socket.close()


def monitor_large_transactions_with_subscription(client: Any, ws_url: str) -> list[str]:
    """Follow the subscription until the socket closes; return signatures with large fees."""
    log.info("Connecting to Solana WebSocket at: %s", ws_url)
    socket = websocket.create_connection(ws_url)
    log.info("WebSocket connection established")
    socket.send(json.dumps(subscription_request()))

    signatures: queue.Queue = queue.Queue()
    reader = threading.Thread(target=_read_notifications, args=(socket, signatures), daemon=True)
    reader.start()

    large: list[str] = []
    while (signature := signatures.get()) is not _DONE:
        log.info("Received new transaction signature: %s", signature)
        if not _is_valid_signature(signature):
            log.error("Invalid signature format: %s", signature)
            continue
        try:
            tx = client.get_transaction(signature, COMMITMENT)
        except RpcError as exc:
            log.error("Failed to fetch transaction details for %s: %s", signature, exc)
            continue
        if is_large_fee(tx):
            log.info(
                "Large transaction detected: Fee = %d lamports, Signature = %s",
                tx["meta"]["fee"],
                signature,
            )
            large.append(signature)

    reader.join()
    return large