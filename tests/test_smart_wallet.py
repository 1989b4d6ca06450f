import pytest

from solwatch.base58 import b58encode
from solwatch.rpc import RpcError
from solwatch.smart_wallet import (
    analyze_transaction_for_token_opportunity,
    monitor_smart_wallets,
)


def _wallet(byte: int) -> str:
    return b58encode(bytes([byte]) * 32)


def _signature(byte: int) -> str:
    return b58encode(bytes([byte]) * 64)


class FakeClient:
    def __init__(self, signatures=None, failing_wallets=(), failing_signatures=()):
        self.signatures = signatures or {}
        self.failing_wallets = set(failing_wallets)
        self.failing_signatures = set(failing_signatures)
        self.signature_calls = []
        self.transaction_calls = []

    async def get_signatures_for_address(self, address, limit=None, commitment=None):
        self.signature_calls.append((address, limit, commitment))
        if address in self.failing_wallets:
            raise RpcError("node unavailable")
        return [{"signature": sig} for sig in self.signatures.get(address, [])]

    async def get_transaction(self, signature, commitment=None):
        self.transaction_calls.append((signature, commitment))
        if signature in self.failing_signatures:
            raise RpcError("not found")
        return {"blockTime": 1, "version": 0, "transaction": {"signatures": [signature]}}


def test_analysis_reports_no_opportunity():
    tx = {"version": 0, "transaction": {"signatures": [_signature(1)]}}
    assert analyze_transaction_for_token_opportunity(tx) is False
    assert analyze_transaction_for_token_opportunity(None) is False


@pytest.mark.asyncio
async def test_invalid_wallet_is_skipped():
    client = FakeClient()
    await monitor_smart_wallets(client, ["not-a-wallet", "0OIl"])
    assert client.signature_calls == []
    assert client.transaction_calls == []


@pytest.mark.asyncio
async def test_signature_request_uses_limit_and_commitment():
    wallet = _wallet(7)
    client = FakeClient()
    await monitor_smart_wallets(client, [wallet])
    assert client.signature_calls == [(wallet, 10, "confirmed")]
    assert client.transaction_calls == []


@pytest.mark.asyncio
async def test_only_first_five_transactions_are_fetched():
    wallet = _wallet(3)
    sigs = [_signature(i) for i in range(1, 8)]
    client = FakeClient(signatures={wallet: sigs})
    await monitor_smart_wallets(client, [wallet])
    assert [call[0] for call in client.transaction_calls] == sigs[:5]
    assert all(call[1] == "confirmed" for call in client.transaction_calls)


@pytest.mark.asyncio
async def test_invalid_signature_is_skipped():
    wallet = _wallet(4)
    good = _signature(9)
    client = FakeClient(signatures={wallet: ["bad!", _wallet(5), good]})
    await monitor_smart_wallets(client, [wallet])
    assert [call[0] for call in client.transaction_calls] == [good]


@pytest.mark.asyncio
async def test_failures_do_not_stop_other_wallets():
    broken = _wallet(1)
    healthy = _wallet(2)
    first, second = _signature(11), _signature(12)
    client = FakeClient(
        signatures={healthy: [first, second]},
        failing_wallets=[broken],
        failing_signatures=[first],
    )
    await monitor_smart_wallets(client, [broken, healthy])
    assert [call[0] for call in client.signature_calls] == [broken, healthy]
    assert [call[0] for call in client.transaction_calls] == [first, second]