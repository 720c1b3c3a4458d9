"""
Administrative forced execution.

Marks an order completed on an administrator's authority, bypassing the
matcher and the eligibility checks. Used for manual settlement.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, TypeVar

from .order import Order, OrderStatus

O = TypeVar("O", bound=Order)


def force_execute(order: O, approver_id: str, now: Optional[datetime] = None) -> O:
    """
    Return a completed copy of an order stamped with the approver.

    The input snapshot is left untouched; persisting the returned copy is
    the caller's job.

    Args:
        order: Order snapshot to settle
        approver_id: Administrator performing the override
        now: Settlement time (defaults to the current UTC time)

    Returns:
        New order of the same kind with status COMPLETED
    """
    stamp = now or datetime.now(timezone.utc)
    return replace(
        order,
        status=OrderStatus.COMPLETED,
        approved_by=approver_id,
        approved_at=stamp,
        updated_at=stamp,
    )
