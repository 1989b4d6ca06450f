"""Detect transactions that look like arbitrage from block logs and fees."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence

from .rpc import RpcError, SlotCursor

log = logging.getLogger(__name__)

DEFAULT_MIN_FEE_THRESHOLD = 5000
CONFIDENCE_THRESHOLD = 0.3
BATCH_DELAY = 0.1
MIN_PROGRAM_ID_LENGTH = 32

DEX_PROGRAMS = frozenset(
    {
        "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM",  # Raydium V4
        "JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB",  # Jupiter V4
        "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8",  # Raydium
        "HWy1jotHpo6UqeQxx49dpYYdQB8wj9Qk9MdxwjLvDHB8",  # Orca
        "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK",  # Raydium CLMM
    }
)
LENDING_PROGRAMS = frozenset(
    {
        "So1endDq2YkqhipRh3WViPa8hdiSpxWy6z3Z6tMCpAo",  # Solend
        "Port7uDVFXoP6NUeRQiWQtPTfq4dM4ZAnFzfTutS5CUb",  # Port Finance
        "LendZqTs7gn5CTSJU1jWKhKuVpjJGom45nnwPb2AMTi",  # Lend
    }
)
FLASH_LOAN_PROGRAMS = frozenset({"FL7SHLoanProgram1111111111111111111111111111"})

# Swap logs are not parsed per DEX yet; a matching log yields these sample values.
_SAMPLE_SWAP = ("token_in_address", "token_out_address", 1000, 1200)


class ArbitrageType(Enum):
    DEX_ARBITRAGE = "DexArbitrage"
    FLASH_LOAN = "FlashLoan"
    CROSS_CHAIN = "CrossChain"
    LIQUIDATION = "Liquidation"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class TokenSwap:
    program_id: str
    token_in: str | None = None
    token_out: str | None = None
    amount_in: int | None = None
    amount_out: int | None = None


@dataclass(frozen=True)
class ArbitragePattern:
    slot: int
    signature: str | None
    fee: int
    involved_programs: list[str]
    token_swaps: list[TokenSwap]
    profit_estimation: int | None
    arbitrage_type: ArbitrageType
    confidence_score: float


@dataclass(frozen=True)
class KnownPrograms:
    dex_programs: frozenset[str] = DEX_PROGRAMS
    lending_programs: frozenset[str] = LENDING_PROGRAMS
    flash_loan_programs: frozenset[str] = FLASH_LOAN_PROGRAMS

    def is_known(self, program_id: str) -> bool:
        """Return True if the program is a known DEX, lending or flash-loan program."""
        return (
            program_id in self.dex_programs
            or program_id in self.lending_programs
            or program_id in self.flash_loan_programs
        )


def _log_messages(tx: dict[str, Any]) -> list[str]:
    meta = tx.get("meta") or {}
    logs = meta.get("logMessages")
    return logs if isinstance(logs, list) else []


def _invoked_program(line: str) -> str | None:
    start = line.find("Program ")
    if start == -1:
        return None
    after = line[start + len("Program "):]
    end = after.find(" invoke")
    if end == -1:
        return None
    program_id = after[:end].strip()
    if len(program_id.encode()) < MIN_PROGRAM_ID_LENGTH:
        return None
    return program_id


def _signature(tx: dict[str, Any]) -> str | None:
    encoded = tx.get("transaction")
    if not isinstance(encoded, dict):
        return None
    signatures = encoded.get("signatures") or []
    return signatures[0] if signatures else None


class ArbitrageDetector:
    """Scores transactions for signs of arbitrage."""

    def __init__(self, min_fee_threshold: int = DEFAULT_MIN_FEE_THRESHOLD) -> None:
        self.known_programs = KnownPrograms()
        self.min_fee_threshold = min_fee_threshold
        self.profit_estimation_enabled = True

    def _count(self, program_ids: Iterable[str], group: frozenset[str]) -> int:
        return sum(1 for program_id in program_ids if program_id in group)

    def analyze_transaction(self, tx: dict[str, Any], slot: int) -> ArbitragePattern | None:
        """Return a pattern for a JSON-encoded transaction, or None if it does not qualify."""
        meta = tx.get("meta")
        fee = (meta or {}).get("fee", 0) or 0
        if fee < self.min_fee_threshold:
            return None

        program_ids = self.extract_program_ids(tx)
        if not program_ids:
            return None

        token_swaps = self.analyze_token_swaps(tx, program_ids)
        arbitrage_type = self.classify_arbitrage_type(program_ids, token_swaps)
        confidence_score = self.calculate_confidence_score(program_ids, token_swaps, fee)
        if confidence_score < CONFIDENCE_THRESHOLD:
            return None

        profit = self.estimate_profit(token_swaps, tx) if self.profit_estimation_enabled else None
        return ArbitragePattern(
            slot=slot,
            signature=_signature(tx),
            fee=fee,
            involved_programs=program_ids,
            token_swaps=token_swaps,
            profit_estimation=profit,
            arbitrage_type=arbitrage_type,
            confidence_score=confidence_score,
        )

    def extract_program_ids(self, tx: dict[str, Any]) -> list[str]:
        """Collect the distinct program ids invoked or mentioned in the transaction logs."""
        logs = _log_messages(tx)
        found: dict[str, None] = {}
        for line in logs:
            program_id = _invoked_program(line)
            if program_id is not None:
                found[program_id] = None

        known = self.known_programs
        for group in (known.dex_programs, known.lending_programs, known.flash_loan_programs):
            for program_id in sorted(group):
                if any(program_id in line for line in logs):
                    found[program_id] = None
        return list(found)

    def _swap_details(self, tx: dict[str, Any], program_id: str) -> TokenSwap:
        for line in _log_messages(tx):
            if program_id in line and "Swap" in line:
                token_in, token_out, amount_in, amount_out = _SAMPLE_SWAP
                return TokenSwap(program_id, token_in, token_out, amount_in, amount_out)
        return TokenSwap(program_id)

    def analyze_token_swaps(self, tx: dict[str, Any], program_ids: Sequence[str]) -> list[TokenSwap]:
        """Return one swap per DEX program involved in the transaction."""
        return [
            self._swap_details(tx, program_id)
            for program_id in program_ids
            if program_id in self.known_programs.dex_programs
        ]

    def classify_arbitrage_type(
        self, program_ids: Sequence[str], token_swaps: Sequence[TokenSwap]
    ) -> ArbitrageType:
        known = self.known_programs
        dex_count = self._count(program_ids, known.dex_programs)
        has_lending = self._count(program_ids, known.lending_programs) > 0
        has_flash_loan = self._count(program_ids, known.flash_loan_programs) > 0
        swap_count = len(token_swaps)

        if has_flash_loan:
            return ArbitrageType.FLASH_LOAN
        if dex_count >= 2 and swap_count >= 2:
            return ArbitrageType.DEX_ARBITRAGE
        if has_lending and swap_count >= 1:
            return ArbitrageType.LIQUIDATION
        if dex_count > 0 and has_lending:
            return ArbitrageType.CROSS_CHAIN
        return ArbitrageType.UNKNOWN

    def calculate_confidence_score(
        self, program_ids: Sequence[str], token_swaps: Sequence[TokenSwap], fee: int
    ) -> float:
        """Score from 0.0 to 1.0 how likely the transaction is arbitrage."""
        known = self.known_programs
        dex_count = self._count(program_ids, known.dex_programs)
        flash_loan_count = self._count(program_ids, known.flash_loan_programs)
        swap_count = len(token_swaps)

        score = 0.0
        if dex_count >= 2:
            score += 0.4
        elif dex_count == 1:
            score += 0.1

        if flash_loan_count > 0:
            score += 0.4

        if swap_count >= 3:
            score += 0.3
        elif swap_count >= 2:
            score += 0.2

        if fee > self.min_fee_threshold * 5:
            score += 0.2
        elif fee > self.min_fee_threshold * 2:
            score += 0.1

        if len(program_ids) >= 3:
            score += 0.1

        return min(score, 1.0)

    def estimate_profit(self, token_swaps: Sequence[TokenSwap], tx: dict[str, Any]) -> int | None:
        """Estimate profit in lamports from the net balance change, never below zero."""
        if not token_swaps:
            return None
        meta = tx.get("meta")
        if not meta:
            return 0
        pre = meta.get("preBalances") or []
        post = meta.get("postBalances") or []
        change = sum(after - before for after, before in zip(post, pre))
        return max(change, 0)

    async def detect_arbitrage_transactions(self, client: Any, slot: int) -> list[ArbitragePattern]:
        """Fetch a block and return the arbitrage patterns found in it."""
        log.info("Detecting arbitrage transactions in slot %d", slot)
        try:
            block = await client.get_block(slot)
        except RpcError as exc:
            log.error("Failed to fetch block for slot %d: %s", slot, exc)
            return []

        patterns = [
            pattern
            for tx in (block or {}).get("transactions") or []
            if (pattern := self.analyze_transaction(tx, slot)) is not None
        ]
        log.info("Detected %d arbitrage patterns in slot %d", len(patterns), slot)
        return patterns

    async def detect_batch_slots(
        self, client: Any, start_slot: int, end_slot: int
    ) -> list[ArbitragePattern]:
        """Scan every slot from start_slot to end_slot inclusive, pausing between requests."""
        found: list[ArbitragePattern] = []
        for slot in range(start_slot, end_slot + 1):
            found.extend(await self.detect_arbitrage_transactions(client, slot))
            await asyncio.sleep(BATCH_DELAY)
        return found

    def report_arbitrage_findings(self, findings: Sequence[ArbitragePattern]) -> None:
        """Log a summary of each finding."""
        log.info("Found %d arbitrage patterns", len(findings))
        for number, finding in enumerate(findings, start=1):
            log.info("Arbitrage pattern #%d:", number)
            log.info("  Slot: %d", finding.slot)
            log.info("  Signature: %s", finding.signature)
            log.info("  Type: %s", finding.arbitrage_type.value)
            log.info("  Confidence: %.2f", finding.confidence_score)
            log.info("  Fee: %d lamports", finding.fee)
            log.info("  Programs: %s", finding.involved_programs)
            log.info("  Swaps: %d", len(finding.token_swaps))
            if finding.profit_estimation is not None:
                log.info("  Estimated profit: %d lamports", finding.profit_estimation)


async def run_arbitrage_detection(
    client: Any, cursor: SlotCursor, min_fee_threshold: int = DEFAULT_MIN_FEE_THRESHOLD
) -> None:
    """Check the latest slot for arbitrage and move the cursor forward."""
    log.info("Starting arbitrage detection, minimum fee threshold: %d", min_fee_threshold)
    detector = ArbitrageDetector(min_fee_threshold)

    async with cursor.lock():
        current_slot = cursor.value
    log.info("Starting arbitrage detection from slot %d", current_slot)

    try:
        new_slot = await client.get_slot()
    except RpcError as exc:
        log.error("Failed to fetch latest slot: %s", exc)
    else:
        if new_slot > current_slot:
            current_slot = new_slot
            log.info("Current slot updated to %d", current_slot)

    patterns = await detector.detect_arbitrage_transactions(client, current_slot)
    if patterns:
        log.info("Detected %d arbitrage transactions in slot %d", len(patterns), current_slot)
        detector.report_arbitrage_findings(patterns)

    async with cursor.lock():
        if current_slot > cursor.value:
            cursor.value = current_slot
            log.info("Last checked slot updated to %d", current_slot)