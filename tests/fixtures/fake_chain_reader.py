"""In-memory ledger implementing ChainReaderProtocol for tests."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional

from x402mint.domain.errors import ChainUnavailableError, TransactionNotFoundError
from x402mint.domain.minter.entities import TransactionOutcome, TransferEvent


def make_tx_hash(n: int) -> str:
    return "0x" + format(n, "064x")


class FakeChainReader:
    """Serves pre-seeded transactions and counts every call made against it."""

    def __init__(self, height: int = 1_000) -> None:
        self.height = height
        self.transactions: dict[str, TransactionOutcome] = {}
        self.calls: Counter[str] = Counter()
        self.unavailable = False

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def add_transaction(
        self,
        tx_hash: str,
        transfers: Iterable[tuple[str, str, str, int]] = (),
        *,
        block_number: Optional[int] = None,
        success: bool = True,
        finalized: bool = True,
    ) -> TransactionOutcome:
        """Seed a transaction; ``transfers`` are ``(asset, source, destination, value)``."""
        block = self.height if block_number is None else block_number
        events = [
            TransferEvent(
                asset=asset,
                source=source,
                destination=destination,
                value=value,
                tx_hash=tx_hash.lower(),
                block_number=block,
                log_index=index,
            )
            for index, (asset, source, destination, value) in enumerate(transfers)
        ]
        outcome = TransactionOutcome(
            tx_hash=tx_hash.lower(),
            block_number=block,
            finalized=finalized,
            success=success,
            events=events,
        )
        self.transactions[tx_hash.lower()] = outcome
        return outcome

    def _check_available(self) -> None:
        if self.unavailable:
            raise ChainUnavailableError("RPC unreachable")

    async def get_transaction_outcome(self, tx_hash: str) -> TransactionOutcome:
        self.calls["get_transaction_outcome"] += 1
        self._check_available()
        outcome = self.transactions.get(tx_hash.lower())
        if outcome is None:
            raise TransactionNotFoundError(tx_hash)
        return outcome

    async def get_current_height(self) -> int:
        self.calls["get_current_height"] += 1
        self._check_available()
        return self.height

    async def scan_transfer_events(
        self,
        asset: str,
        from_height: int,
        to_height: int,
        *,
        source: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> list[TransferEvent]:
        self.calls["scan_transfer_events"] += 1
        self._check_available()
        found = []
        for outcome in self.transactions.values():
            if not outcome.success:
                continue
            for event in outcome.events:
                if not from_height <= event.block_number <= to_height:
                    continue
                if event.asset.lower() != asset.lower():
                    continue
                if source and event.source.lower() != source.lower():
                    continue
                if destination and event.destination.lower() != destination.lower():
                    continue
                found.append(event)
        return sorted(found, key=lambda e: (e.block_number, e.log_index))
