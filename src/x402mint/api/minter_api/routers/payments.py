"""x402 payment API routes (Minter)."""

from __future__ import annotations

import logging
import time
from json import JSONDecodeError
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram
from pydantic import ValidationError

from ....application.minter.dtos import (
    AlreadyProcessedResponseDTO,
    ConfirmPaymentDTO,
    ErrorResponseDTO,
)
from ....application.minter.use_cases.payment_mint import (
    MISCONFIGURED_MESSAGE,
    PaymentMintService,
)
from ....application.minter.use_cases.payment_requirements import (
    PaymentRequirementsBuilder,
)
from ....domain.errors import (
    AuthorityMismatchError,
    InvalidRequestError,
    MintInProgressError,
    MintServiceError,
    NoRecentPaymentError,
    ServerMisconfiguredError,
    TransactionNotFoundError,
    TransactionPendingError,
)
from ....envs.minter_env import Settings, get_settings
from ..dependencies import get_payment_mint_service, get_payment_requirements_builder

logger = logging.getLogger(__name__)

router = APIRouter(tags=["x402"])

ALLOWED_METHODS = "GET, POST"

mint_requests_total = Counter(
    "mint_requests_total",
    "Total payment confirmation requests processed",
    ["status"],
)

mint_request_duration_seconds = Histogram(
    "mint_request_duration_seconds",
    "Wall time to verify a payment and mint for it",
    ["status"],
)

mint_failures_total = Counter(
    "mint_failures_total",
    "Payment confirmation failures by error code",
    ["code"],
)

_NOT_FOUND = (TransactionNotFoundError, TransactionPendingError, NoRecentPaymentError)


def _status_code_for(error: MintServiceError) -> int:
    if isinstance(error, _NOT_FOUND):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, MintInProgressError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, (ValueError, AuthorityMismatchError)):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _metric_label(status_code: int) -> str:
    if status_code == status.HTTP_409_CONFLICT:
        return "conflict"
    if status_code < 500:
        return "client_error"
    return "server_error"


def _error_response(
    settings: Settings,
    status_code: int,
    message: str,
    code: str,
    details: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponseDTO(
        x402_version=settings.x402_version,
        error=message,
        code=code,
        details=details,
    )
    return JSONResponse(body.to_wire(), status_code=status_code, headers=headers)


async def _parse_confirm_request(
    request: Request, payer_hint: Optional[str]
) -> ConfirmPaymentDTO:
    raw = await request.body()
    try:
        payload = await request.json() if raw.strip() else {}
    except (JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequestError("Request body must be a JSON object")
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    if payer_hint and not payload.get("payer"):
        payload["payer"] = payer_hint

    try:
        return ConfirmPaymentDTO.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "body"
        raise InvalidRequestError(f"Invalid {field}: {first['msg']}")


@router.get("/402")
async def get_payment_requirements(
    payer: Optional[str] = Query(None, description="Payer address to echo back"),
    x_402_payer: Optional[str] = Header(None, alias="X-402-Payer"),
    builder: PaymentRequirementsBuilder = Depends(get_payment_requirements_builder),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Describe what must be paid to obtain the resource."""
    document = builder.build(payer=payer or x_402_payer)
    return JSONResponse(document.to_wire(), status_code=settings.x402_get_status)


@router.post("/402")
async def confirm_payment(
    request: Request,
    payer: Optional[str] = Query(None, description="Payer hint used for discovery"),
    x_402_payer: Optional[str] = Header(None, alias="X-402-Payer"),
    payment_mint_service: PaymentMintService = Depends(get_payment_mint_service),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Verify a USDC payment and mint one NFT to its payer."""
    start_time = time.perf_counter()
    try:
        if payment_mint_service.dispatcher is None:
            raise ServerMisconfiguredError(MISCONFIGURED_MESSAGE)
        dto = await _parse_confirm_request(request, x_402_payer or payer)
        result = await payment_mint_service.confirm_payment(dto)
    except MintServiceError as e:
        status_code = _status_code_for(e)
        label = _metric_label(status_code)
        mint_requests_total.labels(status=label).inc()
        mint_failures_total.labels(code=e.code).inc()
        elapsed = time.perf_counter() - start_time
        mint_request_duration_seconds.labels(status=label).observe(elapsed)
        if status_code >= 500:
            logger.error("Payment confirmation failed (%s): %s", e.code, e.message)
        return _error_response(settings, status_code, e.message, e.code, e.details)
    except Exception as e:
        mint_requests_total.labels(status="server_error").inc()
        mint_failures_total.labels(code="InternalError").inc()
        elapsed = time.perf_counter() - start_time
        mint_request_duration_seconds.labels(status="server_error").observe(elapsed)
        logger.exception("Unexpected failure while confirming payment")
        return _error_response(
            settings,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Failed to confirm payment: {str(e)}",
            "InternalError",
        )

    label = (
        "already_processed"
        if isinstance(result, AlreadyProcessedResponseDTO)
        else "success"
    )
    mint_requests_total.labels(status=label).inc()
    elapsed = time.perf_counter() - start_time
    mint_request_duration_seconds.labels(status=label).observe(elapsed)
    return JSONResponse(result.to_wire(), status_code=status.HTTP_200_OK)


@router.api_route(
    "/402", methods=["PUT", "PATCH", "DELETE"], include_in_schema=False
)
async def method_not_allowed(
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    return _error_response(
        settings,
        status.HTTP_405_METHOD_NOT_ALLOWED,
        "Method Not Allowed",
        "MethodNotAllowed",
        headers={"Allow": ALLOWED_METHODS},
    )
