"""Data Transfer Objects for the minter application layer.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from web3 import Web3

_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ConfirmPaymentDTO(WireModel):
    """DTO for the "I paid, mint now" request body."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "resource": "mint:x402apes:1",
                "txHash": "0x" + "aa" * 32,
            }
        }
    )

    resource: Optional[str] = Field(None, description="Resource being purchased")
    tx_hash: Optional[str] = Field(None, description="Payment transaction hash")
    payer: Optional[str] = Field(
        None, description="Payer address, used to discover the payment when txHash is absent"
    )

    @field_validator("tx_hash")
    @classmethod
    def validate_tx_hash(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not _TX_HASH_RE.match(v):
            raise ValueError("txHash must be a 0x-prefixed 32-byte hex string")
        return v.lower()

    @field_validator("payer")
    @classmethod
    def validate_payer(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not Web3.is_address(v):
            raise ValueError("payer must be an address")
        return Web3.to_checksum_address(v)


class MintResponseDTO(WireModel):
    ok: bool = True
    minted_to: str
    nft_tx_hash: str
    note: str = "Minted automatically after USDC payment confirmation."


class AlreadyProcessedResponseDTO(WireModel):
    ok: bool = True
    note: str = "Already processed"
    tx_hash: str


class ErrorResponseDTO(WireModel):
    x402_version: int
    error: str
    code: str
    details: Optional[dict[str, Any]] = None


class InputSchemaDTO(WireModel):
    type: str = "http"
    method: str = "POST"
    body_type: str = "json"
    body_fields: Optional[dict[str, dict[str, Any]]] = None


class OutputSchemaDTO(WireModel):
    input: InputSchemaDTO
    output: dict[str, Any]


class PaymentOfferDTO(WireModel):
    scheme: str = "exact"
    network: str
    max_amount_required: str
    resource: str
    description: str
    mime_type: str = "application/json"
    pay_to: str
    max_timeout_seconds: int
    asset: str
    output_schema: OutputSchemaDTO
    extra: dict[str, Any] = Field(default_factory=dict)


class PaymentRequirementsDTO(WireModel):
    """x402 payment-requirement document served on GET."""

    x402_version: int
    payer: Optional[str] = None
    accepts: list[PaymentOfferDTO]
