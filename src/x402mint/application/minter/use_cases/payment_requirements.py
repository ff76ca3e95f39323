"""Builds the x402 payment-requirement document clients read before paying."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ..dtos import (
    InputSchemaDTO,
    OutputSchemaDTO,
    PaymentOfferDTO,
    PaymentRequirementsDTO,
)

SUCCESS_OUTPUT_EXAMPLE = {
    "ok": True,
    "mintedTo": "0x...",
    "nftTxHash": "0x...",
    "note": "Mint completed.",
}


class PaymentRequirementsBuilder:
    """Static description of what must be paid; never touches the chain."""

    def __init__(
        self,
        *,
        x402_version: int,
        network: str,
        price: int,
        resource: str,
        description: str,
        pay_to: str,
        max_timeout_seconds: int,
        asset: str,
        project: str,
        input_fields: Sequence[str] = (),
    ):
        self.x402_version = x402_version
        self.network = network
        self.price = price
        self.resource = resource
        self.description = description
        self.pay_to = pay_to
        self.max_timeout_seconds = max_timeout_seconds
        self.asset = asset
        self.project = project
        self.input_fields = tuple(input_fields)

    def _input_schema(self) -> InputSchemaDTO:
        # Proof fields are never required; only configured fields are
        body_fields: dict[str, dict[str, Any]] = {
            "resource": {
                "type": "string",
                "required": False,
                "description": f"Must equal {self.resource!r}",
            },
            "txHash": {
                "type": "string",
                "required": False,
                "description": "Hash of the USDC transfer paying for the mint",
            },
        }
        for name in self.input_fields:
            body_fields[name] = {"type": "string", "required": True}
        return InputSchemaDTO(body_fields=body_fields)

    def build(self, payer: Optional[str] = None) -> PaymentRequirementsDTO:
        offer = PaymentOfferDTO(
            network=self.network,
            max_amount_required=str(self.price),
            resource=self.resource,
            description=self.description,
            pay_to=self.pay_to,
            max_timeout_seconds=self.max_timeout_seconds,
            asset=self.asset,
            output_schema=OutputSchemaDTO(
                input=self._input_schema(),
                output=dict(SUCCESS_OUTPUT_EXAMPLE),
            ),
            extra={
                "autoConfirm": True,
                "onePerPayment": True,
                "project": self.project,
            },
        )
        return PaymentRequirementsDTO(
            x402_version=self.x402_version,
            payer=payer,
            accepts=[offer],
        )
