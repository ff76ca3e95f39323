"""Processed-proof (idempotency ledger) domain repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .entities import MintOutcome, ProcessedProof


class ProcessedProofRepository(ABC):
    """Tracks which payment transactions already triggered a mint.

    Once ``mark_processed`` succeeds for a tx hash, ``is_processed`` returns
    True for it for as long as the backing store lives. Implementations
    normalise tx hashes to lower case.
    """

    @abstractmethod
    async def get(self, tx_hash: str) -> Optional[ProcessedProof]:
        """Return the record for a tx hash, whatever its state."""
        pass

    @abstractmethod
    async def is_processed(self, tx_hash: str) -> bool:
        """True if the proof was consumed by a confirmed mint."""
        pass

    @abstractmethod
    async def try_claim(self, tx_hash: str, payer: str) -> bool:
        """
        Atomically create a ``pending`` record for the tx hash.

        Returns False if any record (in flight or completed) already exists.
        """
        pass

    @abstractmethod
    async def record_broadcast(
        self, tx_hash: str, mint_tx_hash: str, nonce: Optional[int] = None
    ) -> ProcessedProof:
        """Move a ``pending`` claim to ``broadcast`` with the mint hash and nonce."""
        pass

    @abstractmethod
    async def mark_processed(self, tx_hash: str, outcome: MintOutcome) -> ProcessedProof:
        """Record the tx hash as consumed by ``outcome``."""
        pass

    @abstractmethod
    async def release(self, tx_hash: str) -> bool:
        """
        Drop an in-flight claim after a dispatch that provably minted nothing.

        Completed records are never released. Returns True if a claim was removed.
        """
        pass
