"""Protocol interface for the NFT contract the minter drives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class PreparedMint:
    """A signed mint transaction that has not been broadcast yet."""

    tx_hash: str
    raw_transaction: bytes
    recipient: str
    quantity: int
    nonce: int


class TokenContractProtocol(Protocol):
    """Privileged handle on the token contract.

    ``signer_address`` is the account whose key signs mint transactions. The
    view methods always read current chain state; nothing is cached.
    """

    @property
    def address(self) -> str: ...

    @property
    def signer_address(self) -> str: ...

    async def owner(self) -> str:
        """Return the contract's current privileged authority."""
        ...

    async def mint_enabled(self) -> bool: ...

    async def paused(self) -> bool: ...

    async def total_minted(self) -> int: ...

    async def max_supply(self) -> int: ...

    async def confirmed_nonce(self) -> int:
        """Return how many of the signer's transactions are included in blocks."""
        ...

    async def simulate_mint(self, recipient: str, quantity: int) -> None:
        """Dry-run the mint from the signer.

        Raises:
            MintRevertedError: the contract would reject the call.
        """
        ...

    async def prepare_mint(
        self, recipient: str, quantity: int, *, gas_limit: int
    ) -> PreparedMint:
        """Build and sign the mint with the signer's next nonce."""
        ...

    async def broadcast_mint(self, prepared: PreparedMint) -> None:
        """Send a prepared mint to the network.

        Raises:
            MintRevertedError: the node refused the transaction and does not
                know its hash.
            ChainUnavailableError: any other failure; the transaction may or
                may not have reached the network.
        """
        ...

    async def wait_for_mint(self, mint_tx_hash: str, *, timeout: float) -> bool:
        """Block until the mint is included; True if it executed successfully.

        Raises:
            TimeoutError: no receipt within ``timeout`` seconds.
        """
        ...

    async def mint_status(self, mint_tx_hash: str) -> Optional[bool]:
        """Return the receipt status of a mint, or None if not mined yet."""
        ...
