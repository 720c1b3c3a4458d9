"""
Core domain models, matching and eligibility logic
"""

from .order import (
    Order,
    AShareOrder,
    HKShareOrder,
    IPOOrder,
    BlockOrder,
    BoardOrder,
    TradeType,
    OrderSide,
    OrderStatus,
    resolve_price,
    has_resolvable_price,
    order_from_record,
)
from .matching import MatchResult, match_orders, evaluate_pair
from .eligibility import EligibilityResult, can_execute
from .forced_execution import force_execute

__all__ = [
    "Order",
    "AShareOrder",
    "HKShareOrder",
    "IPOOrder",
    "BlockOrder",
    "BoardOrder",
    "TradeType",
    "OrderSide",
    "OrderStatus",
    "resolve_price",
    "has_resolvable_price",
    "order_from_record",
    "MatchResult",
    "match_orders",
    "evaluate_pair",
    "EligibilityResult",
    "can_execute",
    "force_execute",
]
