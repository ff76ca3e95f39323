"""In-memory NFT contract implementing TokenContractProtocol for tests.

Models the on-chain rules of the mint contract: the paused gate, owner-only
mint and setters, ``MintDisabled``, ``QuantityZero``, ``SoldOut``,
``MaxSupplyExceeded`` and sequential token ids starting at
``totalMinted + 1``. Ownership cannot be renounced.
"""

from __future__ import annotations

from typing import Optional

from x402mint.domain.errors import ChainUnavailableError, MintRevertedError
from x402mint.domain.shared.token_contract_protocol import PreparedMint


class ContractRevert(Exception):
    """Raised by a contract call the rules reject; carries the revert reason."""


class InMemoryTokenContract:
    def __init__(
        self,
        *,
        address: str,
        owner: str,
        signer: Optional[str] = None,
        max_supply: int = 10,
        mint_enabled: bool = True,
    ) -> None:
        self._address = address
        self._owner = owner
        self._signer = signer or owner
        self._mint_enabled = mint_enabled
        self._paused = False
        self._max_supply = max_supply
        self._total_minted = 0
        self.token_owners: dict[int, str] = {}
        # Signer transactions included in blocks; reverted ones count too
        self.nonce = 0
        self._signed = 0

        # Sent but not yet executed transactions, by hash
        self.mempool: dict[str, PreparedMint] = {}
        self.receipts: dict[str, bool] = {}
        self.broadcast_count = 0

        # Failure knobs
        self.hold_mints = False
        self.broadcast_error: Optional[Exception] = None
        self.lose_response_after_send = False
        self.revert_reason: Optional[str] = None

    # -- TokenContractProtocol ------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def signer_address(self) -> str:
        return self._signer

    async def owner(self) -> str:
        return self._owner

    async def mint_enabled(self) -> bool:
        return self._mint_enabled

    async def paused(self) -> bool:
        return self._paused

    async def total_minted(self) -> int:
        return self._total_minted

    async def max_supply(self) -> int:
        return self._max_supply

    async def confirmed_nonce(self) -> int:
        return self.nonce

    async def simulate_mint(self, recipient: str, quantity: int) -> None:
        try:
            self._check_mint(self._signer, quantity)
        except ContractRevert as e:
            raise MintRevertedError(str(e)) from e

    async def prepare_mint(
        self, recipient: str, quantity: int, *, gas_limit: int
    ) -> PreparedMint:
        tx_hash = "0x" + "ee" * 28 + format(self._signed, "08x")
        self._signed += 1
        return PreparedMint(
            tx_hash=tx_hash,
            raw_transaction=tx_hash.encode(),
            recipient=recipient,
            quantity=quantity,
            nonce=self.nonce + len(self.mempool),
        )

    async def broadcast_mint(self, prepared: PreparedMint) -> None:
        if self.broadcast_error is not None:
            raise self.broadcast_error
        self.broadcast_count += 1
        self.mempool[prepared.tx_hash] = prepared
        if self.lose_response_after_send:
            raise ChainUnavailableError("connection reset after send")

    async def wait_for_mint(self, mint_tx_hash: str, *, timeout: float) -> bool:
        if self.hold_mints:
            raise TimeoutError(mint_tx_hash)
        self.mine_pending()
        return self.receipts[mint_tx_hash]

    async def mint_status(self, mint_tx_hash: str) -> Optional[bool]:
        return self.receipts.get(mint_tx_hash)

    # -- Contract state machine -----------------------------------------

    def _only_owner(self, sender: str) -> None:
        if sender.lower() != self._owner.lower():
            raise ContractRevert("OwnableUnauthorizedAccount")

    def _check_mint(self, sender: str, quantity: int) -> None:
        if self._paused:
            raise ContractRevert("EnforcedPause")
        self._only_owner(sender)
        if not self._mint_enabled:
            raise ContractRevert("MintDisabled")
        if quantity == 0:
            raise ContractRevert("QuantityZero")
        if self._total_minted >= self._max_supply:
            raise ContractRevert("SoldOut")
        if self._total_minted + quantity > self._max_supply:
            raise ContractRevert("MaxSupplyExceeded")

    def mint_after_payment(self, sender: str, recipient: str, quantity: int) -> list[int]:
        """Execute the mint as the contract would; returns the new token ids."""
        self._check_mint(sender, quantity)
        first = self._total_minted + 1
        token_ids = list(range(first, first + quantity))
        for token_id in token_ids:
            self.token_owners[token_id] = recipient
        self._total_minted += quantity
        return token_ids

    def mine_pending(self) -> None:
        """Execute every sent transaction in send order."""
        for tx_hash, prepared in list(self.mempool.items()):
            del self.mempool[tx_hash]
            self.nonce += 1
            if self.revert_reason is not None:
                self.receipts[tx_hash] = False
                continue
            try:
                self.mint_after_payment(self._signer, prepared.recipient, prepared.quantity)
            except ContractRevert:
                self.receipts[tx_hash] = False
            else:
                self.receipts[tx_hash] = True

    def set_mint_enabled(self, sender: str, enabled: bool) -> None:
        self._only_owner(sender)
        self._mint_enabled = enabled

    def set_paused(self, sender: str, paused: bool) -> None:
        self._only_owner(sender)
        self._paused = paused

    def transfer_ownership(self, sender: str, new_owner: str) -> None:
        self._only_owner(sender)
        self._owner = new_owner

    def renounce_ownership(self, sender: str) -> None:
        self._only_owner(sender)
        raise ContractRevert("RenounceDisabled")
