"""Payment verification: does a transaction pay the treasury enough?"""

from __future__ import annotations

import logging

from web3 import Web3

from ....domain.errors import (
    NoQualifyingTransferError,
    TransactionFailedError,
    TransactionPendingError,
)
from ....domain.minter.entities import PaymentRecord
from ....domain.shared import ChainReaderProtocol
from .transfer_validators import sum_qualifying_transfers, validate_paid_amount

logger = logging.getLogger(__name__)


class PaymentVerifier:
    """Derives a PaymentRecord from a transaction and checks it against the requirement.

    Reads chain state only, so repeated calls with the same tx hash are safe.
    """

    def __init__(
        self,
        chain_reader: ChainReaderProtocol,
        *,
        asset_address: str,
        treasury_address: str,
        min_amount: int,
        min_confirmations: int = 1,
    ):
        self.chain_reader = chain_reader
        self.asset_address = asset_address
        self.treasury_address = treasury_address
        self.min_amount = min_amount
        self.min_confirmations = min_confirmations

    async def verify(self, tx_hash: str) -> PaymentRecord:
        outcome = await self.chain_reader.get_transaction_outcome(tx_hash)
        if not outcome.finalized:
            head = await self.chain_reader.get_current_height()
            raise TransactionPendingError(
                tx_hash,
                confirmations=max(0, head - outcome.block_number + 1),
                required=self.min_confirmations,
            )
        if not outcome.success:
            raise TransactionFailedError(tx_hash)

        payer, paid = sum_qualifying_transfers(
            outcome.events, self.asset_address, self.treasury_address
        )
        if payer is None:
            raise NoQualifyingTransferError(tx_hash)
        validate_paid_amount(paid, self.min_amount)

        logger.info("Verified payment %s: payer=%s amount=%d", tx_hash, payer, paid)
        return PaymentRecord(
            tx_hash=tx_hash,
            payer=Web3.to_checksum_address(payer),
            amount=paid,
            asset=self.asset_address,
            treasury=self.treasury_address,
        )
