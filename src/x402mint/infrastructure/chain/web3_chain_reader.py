"""Read-only ledger access over JSON-RPC using web3's async client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Mapping, Optional, TypeVar

import aiohttp
from eth_abi import decode as abi_decode
from hexbytes import HexBytes
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from ...domain.errors import ChainUnavailableError, TransactionNotFoundError
from ...domain.minter.entities import TransactionOutcome, TransferEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSFER_TOPIC = HexBytes(Web3.keccak(text="Transfer(address,address,uint256)"))


def address_topic(address: str) -> str:
    """Left-pad an address to the 32-byte form used in indexed topics."""
    return "0x" + "00" * 12 + Web3.to_checksum_address(address)[2:].lower()


def decode_transfer_log(log: Mapping[str, Any]) -> Optional[TransferEvent]:
    """Decode an ERC-20 ``Transfer`` log; None for any other log shape."""
    topics = [HexBytes(t) for t in log.get("topics", [])]
    if len(topics) != 3 or topics[0] != TRANSFER_TOPIC:
        # ERC-721 Transfer has the same signature but 4 topics
        return None
    data = bytes(HexBytes(log.get("data", b"")))
    if len(data) != 32:
        return None
    (value,) = abi_decode(["uint256"], data)
    return TransferEvent(
        asset=Web3.to_checksum_address(log["address"]),
        source=Web3.to_checksum_address(Web3.to_hex(bytes(topics[1])[-20:])),
        destination=Web3.to_checksum_address(Web3.to_hex(bytes(topics[2])[-20:])),
        value=int(value),
        tx_hash=Web3.to_hex(HexBytes(log["transactionHash"])),
        block_number=int(log["blockNumber"]),
        log_index=int(log["logIndex"]),
    )


class Web3ChainReader:
    """ChainReaderProtocol implementation backed by an ``AsyncWeb3`` instance."""

    def __init__(
        self,
        w3: AsyncWeb3,
        *,
        timeout: float = 20.0,
        min_confirmations: int = 1,
        log_chunk_blocks: int = 10_000,
    ) -> None:
        self._w3 = w3
        self._timeout = timeout
        self._min_confirmations = min_confirmations
        self._log_chunk_blocks = max(1, log_chunk_blocks)

    async def _call(self, awaitable: Awaitable[T], what: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except TransactionNotFound:
            raise
        except asyncio.TimeoutError as e:
            raise ChainUnavailableError(f"Ledger RPC timed out during {what}") from e
        except (aiohttp.ClientError, Web3Exception, OSError) as e:
            raise ChainUnavailableError(f"Ledger RPC failed during {what}: {e}") from e

    async def get_transaction_outcome(self, tx_hash: str) -> TransactionOutcome:
        try:
            receipt = await self._call(
                self._w3.eth.get_transaction_receipt(tx_hash), "receipt lookup"
            )
        except TransactionNotFound as e:
            raise TransactionNotFoundError(tx_hash) from e
        if receipt is None:
            raise TransactionNotFoundError(tx_hash)

        block_number = int(receipt["blockNumber"])
        finalized = True
        if self._min_confirmations > 1:
            head = await self.get_current_height()
            finalized = head - block_number + 1 >= self._min_confirmations

        events: list[TransferEvent] = []
        for log in receipt["logs"]:
            event = decode_transfer_log(log)
            if event is not None:
                events.append(event)

        return TransactionOutcome(
            tx_hash=tx_hash,
            block_number=block_number,
            finalized=finalized,
            success=int(receipt["status"]) == 1,
            events=events,
        )

    async def get_current_height(self) -> int:
        return int(await self._call(self._w3.eth.block_number, "block number"))

    async def scan_transfer_events(
        self,
        asset: str,
        from_height: int,
        to_height: int,
        *,
        source: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> list[TransferEvent]:
        topics = [
            Web3.to_hex(TRANSFER_TOPIC),
            address_topic(source) if source else None,
            address_topic(destination) if destination else None,
        ]
        asset = Web3.to_checksum_address(asset)

        events: list[TransferEvent] = []
        start = max(0, from_height)
        while start <= to_height:
            end = min(to_height, start + self._log_chunk_blocks - 1)
            logs = await self._call(
                self._w3.eth.get_logs(
                    {
                        "address": asset,
                        "fromBlock": start,
                        "toBlock": end,
                        "topics": topics,
                    }
                ),
                f"log scan {start}-{end}",
            )
            for log in logs:
                event = decode_transfer_log(log)
                if event is not None:
                    events.append(event)
            start = end + 1

        logger.debug(
            "Scanned %s transfers %s..%s: %d events",
            asset,
            from_height,
            to_height,
            len(events),
        )
        events.sort(key=lambda e: (e.block_number, e.log_index))
        return events
