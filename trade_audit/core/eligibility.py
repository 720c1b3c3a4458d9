"""
Order eligibility checks.

Advisory only: the checker says whether an order may proceed to execution.
Freezing funds and moving the order status are left to the caller.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from .order import EXECUTABLE_STATUSES, Order, resolve_price

REASON_INSUFFICIENT_BALANCE = "insufficient account balance"
REASON_INVALID_STATUS = "order status does not permit execution"


@dataclass(frozen=True, slots=True)
class EligibilityResult:
    """Outcome of an eligibility check."""

    allowed: bool
    reason: Optional[str] = None
    required_amount: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "required_amount": str(self.required_amount) if self.required_amount is not None else None,
        }


def required_funds(order: Order) -> Decimal:
    """Amount a buy order needs available: resolved price times quantity."""
    return resolve_price(order) * order.quantity


def can_execute(order: Order, available_balance: Union[Decimal, int]) -> EligibilityResult:
    """
    Check whether an order may proceed to execution.

    Buy orders need ``resolved price * quantity`` of available balance.
    Orders of either side must be pending or approved. The funding check is
    evaluated first, so an underfunded order in a bad state reports the
    funding reason.

    Args:
        order: Order snapshot
        available_balance: Balance already fetched for the owning account

    Returns:
        EligibilityResult with ``allowed`` and, on rejection, a reason
    """
    required = None
    if order.is_buy:
        required = required_funds(order)
        if available_balance < required:
            return EligibilityResult(False, REASON_INSUFFICIENT_BALANCE, required)

    if order.status not in EXECUTABLE_STATUSES:
        return EligibilityResult(False, REASON_INVALID_STATUS, required)

    return EligibilityResult(True, None, required)
