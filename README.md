# solwatch

A library for watching the Solana blockchain over JSON-RPC. It provides:

- `solwatch.rpc` — `AsyncRpcClient` (asyncio, built on httpx) and a blocking
  `RpcClient`, both raising `RpcError` on transport or JSON-RPC errors, and
  `SlotCursor`, the last checked slot guarded by an asyncio lock.
- `solwatch.large_transaction` — scan new slots for transactions whose fee
  exceeds 10,000,000 lamports.
- `solwatch.arbitrage` — classify transactions that touch known DEX, lending
  and flash-loan programs, with a confidence score and a rough profit estimate.
- `solwatch.smart_wallet` — fetch recent signatures of a list of wallets and
  inspect their transactions.
- `solwatch.subscription` — follow transaction notifications over a WebSocket
  and collect those with fees above 10 SOL.
- `solwatch.copy_trading` and `solwatch.transaction` — rebuild, sign and send
  the instructions of a detected large transaction from your own wallet.
- `solwatch.base58` — `b58encode`, `b58decode` and `is_valid_pubkey`.
- `solwatch.utils` — `read_wallet_file`.

Install with `pip install .`, or `pip install .[test]` to run the tests.

## Loading wallets

`read_wallet_file` reads one address per line, trims whitespace and drops
blank lines. A missing or unreadable file is logged and gives an empty list.

```python
from solwatch.utils import read_wallet_file

wallets = read_wallet_file("wallets.txt")
```

## Scanning for large transactions

`monitor_large_transactions(client, cursor)` checks node health, fetches the
current slot and, if it is past the cursor, fetches the new blocks
concurrently (at most the 20 most recent slots per pass). It returns
`LargeTransaction` records (`slot`, `wallet_address`, `fee`, `signature`) and
moves the cursor to the current slot. A failed health check or slot request
raises `RpcError`; a block that cannot be fetched is logged and skipped.
`process_block(slot, block)` applies the same fee filter to a single
JSON-encoded block.

```python
import asyncio

from solwatch.large_transaction import monitor_large_transactions
from solwatch.rpc import AsyncRpcClient, SlotCursor


async def scan() -> None:
    cursor = SlotCursor(0)
    async with AsyncRpcClient("http://localhost:8899", 30.0) as client:
        for tx in await monitor_large_transactions(client, cursor):
            print(tx.slot, tx.wallet_address, tx.fee, tx.signature)


asyncio.run(scan())
```

## Detecting arbitrage

```python
import asyncio

from solwatch.arbitrage import ArbitrageDetector
from solwatch.rpc import AsyncRpcClient


async def detect() -> None:
    detector = ArbitrageDetector(5000)
    async with AsyncRpcClient("http://localhost:8899", 30.0) as client:
        slot = await client.get_slot()
        findings = await detector.detect_batch_slots(client, slot - 2, slot)
        detector.report_arbitrage_findings(findings)


asyncio.run(detect())
```

Program ids are taken from `Program <id> invoke` log lines and from any log
line that mentions a known program. A transaction becomes an
`ArbitragePattern` only when its fee is at least the detector's
`min_fee_threshold` (default 5000) and its confidence score is at least 0.3.
The `arbitrage_type` is one of `ArbitrageType.FLASH_LOAN`, `DEX_ARBITRAGE`,
`LIQUIDATION`, `CROSS_CHAIN` or `UNKNOWN`. The profit estimate is the net
change of the account balances, floored at zero; set
`detector.profit_estimation_enabled = False` to leave it out.

`run_arbitrage_detection(client, cursor, min_fee_threshold)` performs one pass
at the latest slot, logs the findings and advances the cursor.

## Watching smart wallets

```python
import asyncio

from solwatch.rpc import AsyncRpcClient
from solwatch.smart_wallet import monitor_smart_wallets
from solwatch.utils import read_wallet_file


async def watch() -> None:
    async with AsyncRpcClient("http://localhost:8899", 30.0) as client:
        await monitor_smart_wallets(client, read_wallet_file("wallets.txt"))


asyncio.run(watch())
```

Invalid addresses and signatures are logged and skipped; up to ten signatures
are fetched per wallet and the first five transactions are fetched and logged.

## Following a subscription

`monitor_large_transactions_with_subscription(client, ws_url)` takes a
blocking `RpcClient`, opens the WebSocket, sends the request returned by
`subscription_request()`, and fetches each notified transaction. It runs until
the socket closes and returns the signatures whose fee exceeds 10 SOL
(`is_large_fee`).

## Copy trading

`CopyTradeConfig(wallet, max_lamports, target_program)` holds the `Keypair`
that signs, the balance in lamports the wallet must hold at least, and the
program to follow. `monitor_and_copy_trade(client, cursor, config)` finds large
transactions, fetches each one and passes it to `try_copy_trade`, which
keeps only raw messages whose first account key is the target program,
rebuilds their instructions with `extract_instructions`, compiles them with
`Message.compile` (our wallet as payer), signs with `Transaction.sign` and
sends with `send_and_confirm_transaction`. It prints its progress and returns
the new signature, or `None` when the transaction is skipped.

`Keypair.generate()` and `Keypair.from_seed(seed)` create signing keys;
`Transaction.serialize()` gives the wire bytes.

## What it does not do

- There is no command-line program; everything is called from Python.
- `analyze_transaction_for_token_opportunity` logs the transaction but does
  not inspect the invoked programs, so it always returns `False`.
- Swap logs are not parsed per DEX: a DEX log line containing `Swap` yields
  fixed sample token names and amounts in the `TokenSwap`.
- Findings are only logged or returned; no alerts are sent and nothing is
  stored between runs apart from the in-memory `SlotCursor`.

## Logging

All modules report through the standard `logging` module; configure it with
`logging.basicConfig(level=logging.INFO)` to see progress.