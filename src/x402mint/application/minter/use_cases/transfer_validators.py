"""Pure validation helpers for payment verification.

These functions are extracted to enable unit testing without chain access.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ....domain.errors import InsufficientAmountError
from ....domain.minter.entities import TransferEvent


def same_address(a: str, b: str) -> bool:
    return str(a).lower() == str(b).lower()


def sum_qualifying_transfers(
    events: Iterable[TransferEvent], asset: str, treasury: str
) -> tuple[Optional[str], int]:
    """
    Sum every transfer of ``asset`` into ``treasury``.

    The payer is the source of the first qualifying event in log order, and
    the whole sum is attributed to it even when later events come from other
    sources.

    Returns:
        (payer, total) - payer is None when no event qualifies
    """
    payer: Optional[str] = None
    total = 0
    for event in events:
        if not same_address(event.asset, asset):
            continue
        if not same_address(event.destination, treasury):
            continue
        total += event.value
        if payer is None:
            payer = event.source
    return payer, total


def validate_paid_amount(paid: int, required: int) -> None:
    """
    Validate the summed payment against the configured minimum.

    Raises:
        InsufficientAmountError: If paid is strictly less than required
    """
    if paid < required:
        raise InsufficientAmountError(paid=paid, required=required)
