"""JSON-RPC clients for a Solana node and a lock-guarded slot cursor."""

from __future__ import annotations

import asyncio
import base64
import itertools
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

DEFAULT_TIMEOUT = 30.0
_CONFIRMED_STATES = ("confirmed", "finalized")
_CONFIRM_POLL_INTERVAL = 0.5
_CONFIRM_TIMEOUT = 60.0


class RpcError(Exception):
    """Raised when a node call fails or returns a JSON-RPC error."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class SlotCursor:
    """The last slot checked, shared between tasks behind an asyncio lock."""

    def __init__(self, value: int = 0) -> None:
        self.value = value
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def lock(self) -> AsyncIterator["SlotCursor"]:
        """Hold the lock for the duration of the block and yield the cursor."""
        async with self._lock:
            yield self


def _block_config(commitment: str | None) -> dict[str, Any]:
    config: dict[str, Any] = {
        "encoding": "json",
        "transactionDetails": "full",
        "rewards": False,
        "maxSupportedTransactionVersion": 0,
    }
    if commitment is not None:
        config["commitment"] = commitment
    return config


def _transaction_config(commitment: str | None) -> dict[str, Any]:
    config: dict[str, Any] = {"encoding": "json", "maxSupportedTransactionVersion": 0}
    if commitment is not None:
        config["commitment"] = commitment
    return config


def _payload(request_id: int, method: str, args: tuple) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": list(args)}


def _result(response: httpx.Response) -> Any:
    try:
        response.raise_for_status()
        body = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise RpcError(str(exc)) from exc
    error = body.get("error")
    if error is not None:
        raise RpcError(str(error.get("message", error)), error.get("code"))
    return body.get("result")


def _encode_transaction(transaction: Any) -> str:
    raw = transaction if isinstance(transaction, (bytes, bytearray)) else transaction.serialize()
    return base64.b64encode(bytes(raw)).decode("ascii")


class AsyncRpcClient:
    """Asynchronous client for a Solana JSON-RPC endpoint."""

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.url = url
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._http = httpx.AsyncClient(timeout=timeout)

    async def call(self, method: str, *args: Any) -> Any:
        """Call a JSON-RPC method and return its result."""
        payload = _payload(next(self._ids), method, args)
        try:
            response = await self._http.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise RpcError(str(exc)) from exc
        return _result(response)

    async def get_health(self) -> str:
        return await self.call("getHealth")

    async def get_slot(self) -> int:
        return await self.call("getSlot")

    async def get_block(self, slot: int, commitment: str | None = None) -> dict[str, Any]:
        return await self.call("getBlock", slot, _block_config(commitment))

    async def get_transaction(self, signature: str, commitment: str | None = None) -> dict[str, Any] | None:
        return await self.call("getTransaction", signature, _transaction_config(commitment))

    async def get_signatures_for_address(
        self, address: str, limit: int | None = None, commitment: str | None = None
    ) -> list[dict[str, Any]]:
        config: dict[str, Any] = {}
        if limit is not None:
            config["limit"] = limit
        if commitment is not None:
            config["commitment"] = commitment
        return await self.call("getSignaturesForAddress", address, config)

    async def get_balance(self, pubkey: str) -> int:
        result = await self.call("getBalance", pubkey)
        return result["value"]

    async def get_latest_blockhash(self) -> str:
        result = await self.call("getLatestBlockhash")
        return result["value"]["blockhash"]

    async def send_and_confirm_transaction(self, transaction: Any) -> str:
        """Send a signed transaction and wait until the node reports it confirmed."""
        signature = await self.call(
            "sendTransaction", _encode_transaction(transaction), {"encoding": "base64"}
        )
        deadline = time.monotonic() + _CONFIRM_TIMEOUT
        while True:
            result = await self.call(
                "getSignatureStatuses", [signature], {"searchTransactionHistory": False}
            )
            status = (result or {}).get("value", [None])[0]
            if status is not None:
                if status.get("err") is not None:
                    raise RpcError(f"transaction {signature} failed: {status['err']}")
                if status.get("confirmationStatus") in _CONFIRMED_STATES:
                    return signature
            if time.monotonic() >= deadline:
                raise RpcError(f"transaction {signature} was not confirmed in time")
            await asyncio.sleep(_CONFIRM_POLL_INTERVAL)

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "AsyncRpcClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


class RpcClient:
    """Blocking client for a Solana JSON-RPC endpoint."""

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.url = url
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._http = httpx.Client(timeout=timeout)

    def call(self, method: str, *args: Any) -> Any:
        """Call a JSON-RPC method and return its result."""
        payload = _payload(next(self._ids), method, args)
        try:
            response = self._http.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise RpcError(str(exc)) from exc
        return _result(response)

    def get_transaction(self, signature: str, commitment: str | None = None) -> dict[str, Any] | None:
        return self.call("getTransaction", signature, _transaction_config(commitment))

    def close(self) -> None:
        self._http.close()