"""Use case: verify a USDC payment and mint exactly one NFT for it."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from ....domain.errors import (
    InvalidRequestError,
    InvalidResourceError,
    MintIndeterminateError,
    MintInProgressError,
    MintRevertedError,
    ServerMisconfiguredError,
)
from ....domain.minter.entities import MintOutcome, ProcessedProof, ProofState
from ....domain.minter.processed_proof_repository import ProcessedProofRepository
from ....domain.shared.token_contract_protocol import PreparedMint
from ..dtos import AlreadyProcessedResponseDTO, ConfirmPaymentDTO, MintResponseDTO
from ..keyed_lock import KeyedLock
from .mint_dispatcher import MintDispatcher
from .payment_discovery import PaymentDiscovery
from .payment_verifier import PaymentVerifier

logger = logging.getLogger(__name__)

ConfirmResult = Union[MintResponseDTO, AlreadyProcessedResponseDTO]

MISCONFIGURED_MESSAGE = (
    "Server misconfigured: missing OWNER_PRIVATE_KEY or NFT_CONTRACT_ADDRESS"
)


class PaymentMintService:
    """Service turning a payment proof into a single confirmed mint.

    For one tx hash, the ledger lookup, verification, claim and dispatch run
    under a per-key lock, and the claim itself is an atomic set-if-absent in
    the shared store, so a payment is dispatched at most once.
    """

    def __init__(
        self,
        processed_proof_repository: ProcessedProofRepository,
        verifier: PaymentVerifier,
        discovery: PaymentDiscovery,
        dispatcher: Optional[MintDispatcher],
        *,
        resource: str,
        locks: KeyedLock,
        claim_ttl_seconds: float = 300.0,
    ):
        self.processed_proof_repository = processed_proof_repository
        self.verifier = verifier
        self.discovery = discovery
        self.dispatcher = dispatcher
        self.resource = resource
        self.locks = locks
        self.claim_ttl_seconds = claim_ttl_seconds

    async def confirm_payment(self, dto: ConfirmPaymentDTO) -> ConfirmResult:
        """Verify the payment referenced by ``dto`` and mint to its payer."""
        dispatcher = self.dispatcher
        if dispatcher is None:
            raise ServerMisconfiguredError(MISCONFIGURED_MESSAGE)
        if dto.resource != self.resource:
            raise InvalidResourceError(
                f"Invalid resource: expected {self.resource!r}, got {dto.resource!r}"
            )

        tx_hash = dto.tx_hash
        if tx_hash is None:
            if dto.payer is None:
                raise InvalidRequestError("Missing txHash and payer; cannot infer payment")
            tx_hash = await self.discovery.find_latest_payment(dto.payer)
        tx_hash = tx_hash.lower()

        async with self.locks.hold(tx_hash):
            return await self._confirm_locked(tx_hash, dispatcher)

    async def _confirm_locked(
        self, tx_hash: str, dispatcher: MintDispatcher
    ) -> ConfirmResult:
        existing = await self.processed_proof_repository.get(tx_hash)
        if existing is not None:
            if existing.is_completed:
                return AlreadyProcessedResponseDTO(tx_hash=tx_hash)
            resolved = await self._reconcile(existing, dispatcher)
            if resolved is not None:
                return resolved

        payment = await self.verifier.verify(tx_hash)

        claimed = await self.processed_proof_repository.try_claim(tx_hash, payment.payer)
        if not claimed:
            # Another process claimed it between our read and our claim
            current = await self.processed_proof_repository.get(tx_hash)
            if current is not None and current.is_completed:
                return AlreadyProcessedResponseDTO(tx_hash=tx_hash)
            raise MintInProgressError(tx_hash)

        return await self._dispatch(tx_hash, payment.payer, dispatcher)

    async def _reconcile(
        self, proof: ProcessedProof, dispatcher: MintDispatcher
    ) -> Optional[ConfirmResult]:
        """
        Resolve a claim left in flight by an earlier attempt.

        Returns a response when the earlier mint turns out to have succeeded,
        None when the claim was dropped and the payment may be minted afresh.
        """
        if proof.state == ProofState.PENDING:
            # Pending claims never reached broadcast: the mint hash is
            # persisted before the transaction is sent
            age = (datetime.now(timezone.utc) - proof.created_at).total_seconds()
            if age < self.claim_ttl_seconds:
                raise MintInProgressError(proof.tx_hash)
            logger.warning("Releasing stale claim for payment %s", proof.tx_hash)
            await self.processed_proof_repository.release(proof.tx_hash)
            return None

        mint_tx_hash = proof.mint_tx_hash
        if mint_tx_hash is None:
            raise MintIndeterminateError(proof.tx_hash, None)
        token_contract = dispatcher.token_contract

        status = await token_contract.mint_status(mint_tx_hash)
        if status is None and await self._nonce_consumed(proof, dispatcher):
            # The nonce moved on; read again in case our mint was what consumed it
            status = await token_contract.mint_status(mint_tx_hash)
            if status is None:
                logger.warning(
                    "Mint %s for payment %s was dropped (nonce %s reused); releasing claim",
                    mint_tx_hash,
                    proof.tx_hash,
                    proof.mint_nonce,
                )
                await self.processed_proof_repository.release(proof.tx_hash)
                return None
        if status is None:
            raise MintIndeterminateError(proof.tx_hash, mint_tx_hash)
        if not status:
            logger.warning(
                "Earlier mint %s for payment %s reverted; releasing claim",
                mint_tx_hash,
                proof.tx_hash,
            )
            await self.processed_proof_repository.release(proof.tx_hash)
            return None

        outcome = MintOutcome(
            recipient=proof.payer or "",
            quantity=1,
            tx_hash=mint_tx_hash,
        )
        await self.processed_proof_repository.mark_processed(proof.tx_hash, outcome)
        logger.info("Earlier mint %s for payment %s confirmed", mint_tx_hash, proof.tx_hash)
        return MintResponseDTO(minted_to=outcome.recipient, nft_tx_hash=outcome.tx_hash)

    @staticmethod
    async def _nonce_consumed(proof: ProcessedProof, dispatcher: MintDispatcher) -> bool:
        """True once a block holds some signer transaction at the mint's nonce."""
        if proof.mint_nonce is None:
            return False
        confirmed = await dispatcher.token_contract.confirmed_nonce()
        return confirmed > proof.mint_nonce

    async def _dispatch(
        self, tx_hash: str, payer: str, dispatcher: MintDispatcher
    ) -> MintResponseDTO:
        broadcast_hash: Optional[str] = None

        async def on_broadcast(prepared: PreparedMint) -> None:
            nonlocal broadcast_hash
            await self.processed_proof_repository.record_broadcast(
                tx_hash, prepared.tx_hash, prepared.nonce
            )
            broadcast_hash = prepared.tx_hash

        try:
            outcome = await dispatcher.dispatch(payer, 1, on_broadcast=on_broadcast)
        except MintRevertedError:
            # A reverted or refused mint created no token
            await self.processed_proof_repository.release(tx_hash)
            raise
        except Exception as e:
            if broadcast_hash is None:
                await self.processed_proof_repository.release(tx_hash)
                raise
            logger.error(
                "Mint %s for payment %s is indeterminate: %s", broadcast_hash, tx_hash, e
            )
            raise MintIndeterminateError(tx_hash, broadcast_hash) from e

        await self.processed_proof_repository.mark_processed(tx_hash, outcome)
        return MintResponseDTO(minted_to=outcome.recipient, nft_tx_hash=outcome.tx_hash)
