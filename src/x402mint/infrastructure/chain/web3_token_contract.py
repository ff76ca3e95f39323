"""NFT contract access for the mint operator, using web3 and eth-account."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

import aiohttp
from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.exceptions import (
    ContractLogicError,
    RequestTimedOut,
    TimeExhausted,
    TransactionNotFound,
    Web3Exception,
    Web3RPCError,
)

from ...domain.errors import ChainUnavailableError, MintRevertedError
from ...domain.shared.token_contract_protocol import PreparedMint

logger = logging.getLogger(__name__)

T = TypeVar("T")

NFT_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "mintAfterPayment",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "payer", "type": "address"},
            {"name": "quantity", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "owner",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "mintEnabled",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "paused",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "totalMinted",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "maxSupply",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class Web3TokenContract:
    """TokenContractProtocol implementation signing with a local private key."""

    def __init__(
        self,
        w3: AsyncWeb3,
        contract_address: str,
        private_key: str,
        *,
        chain_id: int,
        timeout: float = 20.0,
    ) -> None:
        self._w3 = w3
        self._address = Web3.to_checksum_address(contract_address)
        self._account = Account.from_key(private_key)
        self._chain_id = chain_id
        self._timeout = timeout
        self._contract = w3.eth.contract(address=self._address, abi=NFT_ABI)

    @property
    def address(self) -> str:
        return self._address

    @property
    def signer_address(self) -> str:
        return self._account.address

    async def _call(self, awaitable: Awaitable[T], what: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ChainUnavailableError(f"Ledger RPC timed out during {what}") from e
        except (ContractLogicError, TransactionNotFound):
            raise
        except (aiohttp.ClientError, Web3Exception, OSError) as e:
            raise ChainUnavailableError(f"Ledger RPC failed during {what}: {e}") from e

    async def owner(self) -> str:
        owner = await self._call(self._contract.functions.owner().call(), "owner()")
        return Web3.to_checksum_address(owner)

    async def mint_enabled(self) -> bool:
        return bool(
            await self._call(self._contract.functions.mintEnabled().call(), "mintEnabled()")
        )

    async def paused(self) -> bool:
        return bool(await self._call(self._contract.functions.paused().call(), "paused()"))

    async def total_minted(self) -> int:
        return int(
            await self._call(self._contract.functions.totalMinted().call(), "totalMinted()")
        )

    async def max_supply(self) -> int:
        return int(
            await self._call(self._contract.functions.maxSupply().call(), "maxSupply()")
        )

    async def simulate_mint(self, recipient: str, quantity: int) -> None:
        fn = self._contract.functions.mintAfterPayment(
            Web3.to_checksum_address(recipient), quantity
        )
        try:
            await self._call(fn.call({"from": self.signer_address}), "mint simulation")
        except ContractLogicError as e:
            raise MintRevertedError(str(e.message or e)) from e

    async def prepare_mint(
        self, recipient: str, quantity: int, *, gas_limit: int
    ) -> PreparedMint:
        nonce = await self._call(
            self._w3.eth.get_transaction_count(self.signer_address, "pending"),
            "nonce lookup",
        )
        fn = self._contract.functions.mintAfterPayment(
            Web3.to_checksum_address(recipient), quantity
        )
        try:
            tx = await self._call(
                fn.build_transaction(
                    {
                        "from": self.signer_address,
                        "nonce": nonce,
                        "gas": gas_limit,
                        "chainId": self._chain_id,
                    }
                ),
                "mint build",
            )
        except ContractLogicError as e:
            raise MintRevertedError(str(e.message or e)) from e
        signed = self._account.sign_transaction(tx)
        return PreparedMint(
            tx_hash=Web3.to_hex(signed.hash),
            raw_transaction=bytes(signed.raw_transaction),
            recipient=recipient,
            quantity=quantity,
            nonce=nonce,
        )

    async def confirmed_nonce(self) -> int:
        return await self._call(
            self._w3.eth.get_transaction_count(self.signer_address, "latest"),
            "confirmed nonce lookup",
        )

    async def _node_knows(self, mint_tx_hash: str) -> bool:
        try:
            await self._call(
                self._w3.eth.get_transaction(mint_tx_hash), "mint lookup"
            )
        except TransactionNotFound:
            return False
        return True

    async def broadcast_mint(self, prepared: PreparedMint) -> None:
        try:
            await asyncio.wait_for(
                self._w3.eth.send_raw_transaction(prepared.raw_transaction),
                timeout=self._timeout,
            )
        except RequestTimedOut as e:
            raise ChainUnavailableError(
                f"Mint broadcast {prepared.tx_hash} timed out at the node: {e}"
            ) from e
        except Web3RPCError as e:
            # "already known" or "nonce too low" may answer a send that got through
            if await self._node_knows(prepared.tx_hash):
                logger.warning(
                    "Node reported %r for mint %s it already holds", e, prepared.tx_hash
                )
            else:
                raise MintRevertedError(f"node rejected mint: {e}") from e
        except (asyncio.TimeoutError, aiohttp.ClientError, OSError, Web3Exception) as e:
            raise ChainUnavailableError(
                f"Mint broadcast {prepared.tx_hash} did not complete: {e}"
            ) from e
        logger.info("Broadcast mint %s to %s", prepared.tx_hash, prepared.recipient)

    async def wait_for_mint(self, mint_tx_hash: str, *, timeout: float) -> bool:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                mint_tx_hash, timeout=timeout
            )
        except TimeExhausted as e:
            raise TimeoutError(str(e)) from e
        except (aiohttp.ClientError, OSError, Web3Exception) as e:
            raise ChainUnavailableError(
                f"Lost contact with ledger waiting for {mint_tx_hash}: {e}"
            ) from e
        return int(receipt["status"]) == 1

    async def mint_status(self, mint_tx_hash: str) -> Optional[bool]:
        try:
            receipt = await self._call(
                self._w3.eth.get_transaction_receipt(mint_tx_hash), "mint receipt lookup"
            )
        except TransactionNotFound:
            return None
        return int(receipt["status"]) == 1
