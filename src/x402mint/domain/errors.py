"""Domain-specific exceptions.

Client-side faults (bad input, a payment that does not satisfy the
requirement) subclass ``ValueError``; infrastructure and dispatch faults do
not. Each class carries a stable ``code`` used in error responses.
"""

from __future__ import annotations

from typing import Any, Optional


class MintServiceError(Exception):
    """Base class for every fault raised by the payment-and-mint flow."""

    code = "InternalError"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


# Caller-input faults


class InvalidRequestError(MintServiceError, ValueError):
    """Raised when required request fields are missing or malformed."""

    code = "InvalidRequest"


class InvalidResourceError(MintServiceError, ValueError):
    """Raised when the request targets a resource this service does not sell."""

    code = "InvalidResource"


# Payment-validation faults


class PaymentValidationError(MintServiceError, ValueError):
    """A payment proof that cannot (yet) be accepted."""


class TransactionNotFoundError(PaymentValidationError):
    code = "TransactionNotFound"

    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction not found: {tx_hash}")
        self.tx_hash = tx_hash


class TransactionPendingError(PaymentValidationError):
    """The transaction is mined but has not reached the required confirmations."""

    code = "TransactionPending"

    def __init__(self, tx_hash: str, confirmations: int, required: int):
        super().__init__(
            f"Transaction {tx_hash} is not finalized yet "
            f"(confirmations={confirmations} required={required})"
        )
        self.tx_hash = tx_hash


class TransactionFailedError(PaymentValidationError):
    code = "TransactionFailed"

    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction failed: {tx_hash}")
        self.tx_hash = tx_hash


class NoQualifyingTransferError(PaymentValidationError):
    code = "NoQualifyingTransfer"

    def __init__(self, tx_hash: str):
        super().__init__(f"No USDC Transfer to treasury found in tx {tx_hash}")
        self.tx_hash = tx_hash


class InsufficientAmountError(PaymentValidationError):
    code = "InsufficientAmount"

    def __init__(self, paid: int, required: int):
        super().__init__(f"Insufficient amount: paid={paid} required={required}")
        self.paid = paid
        self.required = required


class NoRecentPaymentError(PaymentValidationError):
    code = "NoRecentPayment"

    def __init__(self, payer: str):
        super().__init__(f"No recent USDC payment from {payer} to treasury")
        self.payer = payer


# Authority and dispatch faults


class AuthorityMismatchError(MintServiceError):
    """The configured signer is not the contract's recorded owner."""

    code = "AuthorityMismatch"

    def __init__(self, *, onchain_owner: str, signer: str, contract: str):
        super().__init__(
            "Misconfiguration: signer is not contract owner",
            details={
                "onchainOwner": onchain_owner,
                "signer": signer,
                "contract": contract,
            },
        )
        self.onchain_owner = onchain_owner
        self.signer = signer


class MintInProgressError(MintServiceError):
    """Another worker holds the in-flight claim for this payment."""

    code = "MintInProgress"

    def __init__(self, tx_hash: str):
        super().__init__(f"Mint for payment {tx_hash} is already in progress")
        self.tx_hash = tx_hash


class MintRevertedError(MintServiceError):
    code = "MintReverted"

    def __init__(self, reason: str, *, mint_tx_hash: Optional[str] = None):
        details = {"mintTxHash": mint_tx_hash} if mint_tx_hash else None
        super().__init__(f"Mint rejected by contract: {reason}", details=details)
        self.reason = reason
        self.mint_tx_hash = mint_tx_hash


class MintTimeoutError(MintServiceError):
    code = "MintTimeout"

    def __init__(self, mint_tx_hash: str, timeout: float):
        super().__init__(
            f"Mint transaction {mint_tx_hash} not confirmed within {timeout}s",
            details={"mintTxHash": mint_tx_hash},
        )
        self.mint_tx_hash = mint_tx_hash


class MintIndeterminateError(MintServiceError):
    """A mint was broadcast for this payment but its outcome is unknown.

    Must not be retried with a fresh dispatch; the ledger resolves it.
    """

    code = "MintIndeterminate"

    def __init__(self, tx_hash: str, mint_tx_hash: Optional[str]):
        super().__init__(
            f"Mint for payment {tx_hash} was broadcast but is not confirmed yet",
            details={"txHash": tx_hash, "mintTxHash": mint_tx_hash},
        )
        self.tx_hash = tx_hash
        self.mint_tx_hash = mint_tx_hash


class ChainUnavailableError(MintServiceError):
    """The ledger RPC could not be reached or answered with an error."""

    code = "ChainUnavailable"


class ServerMisconfiguredError(MintServiceError):
    code = "ServerMisconfigured"
