"""Protocol interface for read-only ledger access.

Services depend on this protocol rather than on web3 directly so they can be
exercised against in-memory chains in tests.
"""

from __future__ import annotations

from typing import Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from ..minter.entities import TransactionOutcome, TransferEvent


class ChainReaderProtocol(Protocol):
    """Read-only view of the ledger.

    Implementations never retry internally; callers own the retry policy.
    Transport failures surface as ``ChainUnavailableError``.
    """

    async def get_transaction_outcome(self, tx_hash: str) -> "TransactionOutcome":
        """Fetch the outcome and transfer events of a transaction.

        Raises:
            TransactionNotFoundError: the ledger has no receipt for ``tx_hash``
                yet. This does not mean the transaction failed.
        """
        ...

    async def get_current_height(self) -> int:
        """Return the latest block number."""
        ...

    async def scan_transfer_events(
        self,
        asset: str,
        from_height: int,
        to_height: int,
        *,
        source: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> list["TransferEvent"]:
        """Return ``Transfer`` events of ``asset`` in ``[from_height, to_height]``.

        ``source``/``destination`` filter on the indexed event parameters.
        Results are in ascending block and log order.
        """
        ...
