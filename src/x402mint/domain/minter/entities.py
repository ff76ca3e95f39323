"""Minter domain entities: chain events, payment records, idempotency records."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class TransferEvent(BaseModel):
    """A decoded ERC-20 ``Transfer`` log."""

    model_config = ConfigDict(frozen=True)

    asset: str = Field(..., description="Address of the token contract that emitted the log")
    source: str
    destination: str
    value: int = Field(..., ge=0, description="Amount in the asset's smallest unit")
    tx_hash: str
    block_number: int
    log_index: int


class TransactionOutcome(BaseModel):
    """Finalized outcome of a ledger transaction with its transfer events in log order."""

    model_config = ConfigDict(frozen=True)

    tx_hash: str
    block_number: int
    finalized: bool
    success: bool
    events: list[TransferEvent] = Field(default_factory=list)


class PaymentRecord(BaseModel):
    """Payment derived from a transaction; recomputed on every verification."""

    model_config = ConfigDict(frozen=True)

    tx_hash: str
    payer: str
    amount: int
    asset: str
    treasury: str


class MintOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    recipient: str
    quantity: int = Field(1, ge=1)
    tx_hash: str


class ProofState(str, Enum):
    PENDING = "pending"  # claimed, mint not broadcast yet
    BROADCAST = "broadcast"  # mint tx sent, receipt not seen
    COMPLETED = "completed"


class ProcessedProof(BaseModel):
    """Idempotency record keyed by the payment transaction hash."""

    tx_hash: str
    state: ProofState = ProofState.PENDING
    payer: Optional[str] = None
    mint_tx_hash: Optional[str] = None
    mint_nonce: Optional[int] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return value.isoformat()

    @field_serializer("updated_at")
    def serialize_updated_at(self, value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None

    @property
    def is_completed(self) -> bool:
        return self.state == ProofState.COMPLETED

    def broadcast(self, mint_tx_hash: str, nonce: Optional[int] = None) -> None:
        """Record the hash and signer nonce of the mint sent for this proof."""
        if self.state != ProofState.PENDING:
            raise ValueError(f"Cannot record broadcast from state {self.state.value}")
        self.state = ProofState.BROADCAST
        self.mint_tx_hash = mint_tx_hash
        self.mint_nonce = nonce
        self.updated_at = datetime.now(timezone.utc)

    def complete(self, outcome: MintOutcome) -> None:
        """Mark the proof as consumed by a confirmed mint."""
        if self.state == ProofState.COMPLETED:
            raise ValueError("Proof is already completed.")
        self.state = ProofState.COMPLETED
        self.payer = outcome.recipient
        self.mint_tx_hash = outcome.tx_hash
        self.updated_at = datetime.now(timezone.utc)
