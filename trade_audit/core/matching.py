"""
Semi-automatic order matching with price-time priority.

The matcher proposes candidate pairings for an administrator to confirm.
It does not consume quantity: every buy is paired against every sell it
crosses, so one order can show up in several candidates. The approval
workflow settles at most one of them per order.

Execution price is the midpoint of the two resolved prices and execution
quantity is the smaller of the two order quantities.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .order import Order, has_resolvable_price, resolve_price

logger = logging.getLogger(__name__)

TWO = Decimal("2")

REASON_SYMBOL_MISMATCH = "instrument symbols differ"
REASON_NO_CROSS = "buy price is below sell price"
REASON_UNPRICED = "order has no tradable price"


@dataclass(frozen=True, slots=True)
class MatchResult:
    """
    Candidate pairing of one buy and one sell order.

    Transient: produced by the matcher and handed back to the caller for
    confirmation, never persisted by the core.

    Attributes:
        matched: Whether the pair crosses
        buy_order: Buy side snapshot
        sell_order: Sell side snapshot
        match_price: Midpoint of the buy and sell resolved prices
        match_quantity: Smaller of the two order quantities
        reason: Why the pair does not match, when it doesn't
    """

    matched: bool
    buy_order: Optional[Order]
    sell_order: Optional[Order]
    match_price: Decimal
    match_quantity: Decimal
    reason: Optional[str] = None

    @property
    def symbol(self) -> Optional[str]:
        order = self.buy_order or self.sell_order
        return order.symbol if order else None

    @property
    def total_value(self) -> Decimal:
        """Execution price times execution quantity."""
        return self.match_price * self.match_quantity

    def to_dict(self) -> Dict[str, Any]:
        """Convert match result to dictionary for API serialization."""
        return {
            "matched": self.matched,
            "symbol": self.symbol,
            "buy_order_id": self.buy_order.order_id if self.buy_order else None,
            "sell_order_id": self.sell_order.order_id if self.sell_order else None,
            "match_price": str(self.match_price),
            "match_quantity": str(self.match_quantity),
            "total_value": str(self.total_value),
            "reason": self.reason,
        }


def sort_buy_orders(orders: Iterable[Order]) -> List[Order]:
    """Highest price first, earlier orders first within a price."""
    return sorted(orders, key=lambda o: (-resolve_price(o), o.created_at))


def sort_sell_orders(orders: Iterable[Order]) -> List[Order]:
    """Lowest price first, earlier orders first within a price."""
    return sorted(orders, key=lambda o: (resolve_price(o), o.created_at))


def evaluate_pair(buy: Order, sell: Order, exclude_unpriced: bool = True) -> MatchResult:
    """
    Apply the crossing rule to a single buy/sell pair.

    Args:
        buy: Buy order snapshot
        sell: Sell order snapshot
        exclude_unpriced: Reject pairs where either side has no tradable price
            instead of treating the missing price as zero

    Returns:
        MatchResult; ``matched`` is False with a reason when the pair does not cross
    """
    buy_price = resolve_price(buy)
    sell_price = resolve_price(sell)
    match_quantity = min(buy.quantity, sell.quantity)
    match_price = (buy_price + sell_price) / TWO

    reason = None
    if exclude_unpriced and not (has_resolvable_price(buy) and has_resolvable_price(sell)):
        reason = REASON_UNPRICED
    elif buy.symbol != sell.symbol:
        reason = REASON_SYMBOL_MISMATCH
    elif buy_price < sell_price:
        reason = REASON_NO_CROSS

    return MatchResult(
        matched=reason is None,
        buy_order=buy,
        sell_order=sell,
        match_price=match_price,
        match_quantity=match_quantity,
        reason=reason,
    )


def match_orders(
    buy_orders: Iterable[Order],
    sell_orders: Iterable[Order],
    exclude_unpriced: bool = True,
) -> List[MatchResult]:
    """
    Propose candidate matches between buy and sell orders.

    Both collections are sorted by price-time priority and every buy is
    paired against every sell. A pair is emitted when the symbols are equal
    and the buy price is at least the sell price. Results come out in buy
    priority, then sell priority.

    Inputs are not modified and the result only depends on the inputs, so
    repeated calls on the same snapshots return equal sequences.

    Args:
        buy_orders: Buy side snapshots (any symbols)
        sell_orders: Sell side snapshots (any symbols)
        exclude_unpriced: Drop orders with no tradable price before matching.
            When False they take part at price zero.

    Returns:
        List of matched MatchResult candidates
    """
    buys = list(buy_orders)
    sells = list(sell_orders)

    if exclude_unpriced:
        unpriced = [o for o in buys + sells if not has_resolvable_price(o)]
        if unpriced:
            logger.warning(
                f"Excluding {len(unpriced)} order(s) without a tradable price from matching: "
                f"{', '.join(o.order_id for o in unpriced)}"
            )
            buys = [o for o in buys if has_resolvable_price(o)]
            sells = [o for o in sells if has_resolvable_price(o)]

    sorted_buys = sort_buy_orders(buys)
    sorted_sells = sort_sell_orders(sells)

    matches: List[MatchResult] = []
    for buy in sorted_buys:
        for sell in sorted_sells:
            result = evaluate_pair(buy, sell, exclude_unpriced=exclude_unpriced)
            if result.matched:
                matches.append(result)

    logger.debug(
        f"Matched {len(sorted_buys)} buys against {len(sorted_sells)} sells: "
        f"{len(matches)} candidates"
    )
    return matches
