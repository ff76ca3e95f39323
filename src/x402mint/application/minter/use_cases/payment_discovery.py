"""Fallback lookup of a payer's latest payment when no tx hash is supplied."""

from __future__ import annotations

import logging

from web3 import Web3

from ....domain.errors import InvalidRequestError, NoRecentPaymentError
from ....domain.shared import ChainReaderProtocol

logger = logging.getLogger(__name__)


class PaymentDiscovery:
    """Searches the most recent ``lookback_blocks`` for payer -> treasury transfers.

    The window bounds scan cost; older payments are not found and must be
    submitted by tx hash.
    """

    def __init__(
        self,
        chain_reader: ChainReaderProtocol,
        *,
        asset_address: str,
        treasury_address: str,
        lookback_blocks: int = 50_000,
    ):
        self.chain_reader = chain_reader
        self.asset_address = asset_address
        self.treasury_address = treasury_address
        self.lookback_blocks = lookback_blocks

    async def find_latest_payment(self, payer: str) -> str:
        if not Web3.is_address(payer):
            raise InvalidRequestError(f"Invalid payer address: {payer}")

        latest = await self.chain_reader.get_current_height()
        from_height = max(0, latest - self.lookback_blocks)
        events = await self.chain_reader.scan_transfer_events(
            self.asset_address,
            from_height,
            latest,
            source=payer,
            destination=self.treasury_address,
        )
        if not events:
            raise NoRecentPaymentError(payer)

        tx_hash = events[-1].tx_hash
        logger.info(
            "Discovered payment %s from %s (blocks %d..%d)",
            tx_hash,
            payer,
            from_height,
            latest,
        )
        return tx_hash
