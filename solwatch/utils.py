"""Small helpers for loading monitor input."""

from __future__ import annotations

import logging
from pathlib import Path

log = logging.getLogger(__name__)


def read_wallet_file(file_path: str | Path) -> list[str]:
    """Read wallet addresses, one per line, skipping blank lines.

    An unreadable file is logged and yields an empty list.
    """
    try:
        content = Path(file_path).read_text()
    except OSError as exc:
        log.error("Failed to read wallet file: %s", exc)
        return []

    wallets = [line.strip() for line in content.splitlines() if line.strip()]
    if wallets:
        log.info("Loaded %d smart wallet addresses from file.", len(wallets))
    else:
        log.error("Wallet file is empty or contains no valid addresses.")
    return wallets