"""Mint dispatch: the only code path that spends the operator's mint authority."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ....domain.errors import (
    AuthorityMismatchError,
    ChainUnavailableError,
    MintRevertedError,
    MintTimeoutError,
)
from ....domain.minter.entities import MintOutcome
from ....domain.shared import TokenContractProtocol
from ....domain.shared.token_contract_protocol import PreparedMint
from .transfer_validators import same_address

logger = logging.getLogger(__name__)

OnBroadcast = Callable[[PreparedMint], Awaitable[None]]


class MintDispatcher:
    """Issues the privileged mint and waits for its confirmation.

    Calling ``dispatch`` twice mints twice; callers gate it with the
    processed-proof ledger.
    """

    def __init__(
        self,
        token_contract: TokenContractProtocol,
        *,
        gas_limit: int = 300_000,
        confirmation_timeout: float = 120.0,
    ):
        self.token_contract = token_contract
        self.gas_limit = gas_limit
        self.confirmation_timeout = confirmation_timeout
        # One signer, one nonce sequence: broadcasts go out one at a time
        self._broadcast_lock = asyncio.Lock()

    async def ensure_authority(self) -> None:
        """Guard: the signer must be the contract's current owner."""
        onchain_owner = await self.token_contract.owner()
        signer = self.token_contract.signer_address
        if not same_address(onchain_owner, signer):
            raise AuthorityMismatchError(
                onchain_owner=onchain_owner,
                signer=signer,
                contract=self.token_contract.address,
            )

    async def contract_state(self) -> dict[str, Any]:
        """Read the contract's mint gates and supply counters."""
        mint_enabled, paused, total_minted, max_supply = await asyncio.gather(
            self.token_contract.mint_enabled(),
            self.token_contract.paused(),
            self.token_contract.total_minted(),
            self.token_contract.max_supply(),
        )
        return {
            "mintEnabled": mint_enabled,
            "paused": paused,
            "totalMinted": total_minted,
            "maxSupply": max_supply,
        }

    async def _simulate(self, recipient: str, quantity: int) -> None:
        try:
            await self.token_contract.simulate_mint(recipient, quantity)
        except MintRevertedError as e:
            try:
                state = await self.contract_state()
            except ChainUnavailableError as read_error:
                logger.warning("Could not read contract state after revert: %s", read_error)
            else:
                e.details = {**(e.details or {}), **state}
            raise

    async def dispatch(
        self,
        recipient: str,
        quantity: int = 1,
        *,
        on_broadcast: Optional[OnBroadcast] = None,
    ) -> MintOutcome:
        """
        Mint ``quantity`` tokens to ``recipient``.

        ``on_broadcast`` receives the signed mint before it is sent, so
        callers can persist its hash and nonce first.

        Raises:
            AuthorityMismatchError: signer is not the contract owner (nothing sent)
            MintRevertedError: the contract or node rejected the mint
            MintTimeoutError: the mint was sent but not confirmed in time
        """
        await self.ensure_authority()
        await self._simulate(recipient, quantity)

        async with self._broadcast_lock:
            prepared = await self.token_contract.prepare_mint(
                recipient, quantity, gas_limit=self.gas_limit
            )
            if on_broadcast is not None:
                await on_broadcast(prepared)
            await self.token_contract.broadcast_mint(prepared)

        try:
            success = await self.token_contract.wait_for_mint(
                prepared.tx_hash, timeout=self.confirmation_timeout
            )
        except TimeoutError as e:
            raise MintTimeoutError(prepared.tx_hash, self.confirmation_timeout) from e
        if not success:
            raise MintRevertedError("transaction reverted", mint_tx_hash=prepared.tx_hash)

        logger.info(
            "Minted %d to %s in %s", quantity, recipient, prepared.tx_hash
        )
        return MintOutcome(recipient=recipient, quantity=quantity, tx_hash=prepared.tx_hash)
