"""Watch Solana blocks and wallets over JSON-RPC for large transactions, arbitrage and copy trades."""

__version__ = "0.1.0"