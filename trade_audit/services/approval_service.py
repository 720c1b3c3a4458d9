"""
Trade Approval Service - Administrative workflow over the matching core.

Loads order snapshots from the store, runs the matcher and the eligibility
checks, and persists the decisions an administrator takes: approve, reject,
cancel, confirm a candidate match, or force an order through. Every decision
is written to the audit log.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

from trade_audit.config import Settings, get_settings
from trade_audit.core.eligibility import EligibilityResult, can_execute
from trade_audit.core.forced_execution import force_execute
from trade_audit.core.matching import MatchResult, evaluate_pair, match_orders
from trade_audit.core.order import BlockOrder, Order, OrderStatus, TradeType, order_from_record
from trade_audit.services.order_store import AuditEntry, OrderStore
from trade_audit.utils.exceptions import (
    IneligibleOrderException,
    InvalidReviewActionException,
    MatchConflictException,
    OrderStateException,
    ValidationException,
)
from trade_audit.utils.logger import get_logger
from trade_audit.utils.validators import validate_balance, validate_pagination


# Review action -> resulting status
REVIEW_ACTIONS: Dict[str, OrderStatus] = {
    "approve": OrderStatus.APPROVED,
    "reject": OrderStatus.REJECTED,
    "cancel": OrderStatus.CANCELLED,
}

# Audit target type per trade kind, as named in the audit log
AUDIT_TARGETS: Dict[TradeType, str] = {
    TradeType.A_SHARE: "order",
    TradeType.HK_SHARE: "order",
    TradeType.IPO: "ipo_application",
    TradeType.BLOCK: "block_order",
    TradeType.BOARD: "board_strategy",
}

# A confirmed match spans two orders that may be of different kinds
MATCH_AUDIT_TARGET = "match"


class TradeApprovalService:
    """
    Service class for administrative trade review.

    Provides the business logic between the API and the matching core,
    including persistence of decisions and audit logging.
    """

    def __init__(self, store: OrderStore, settings: Optional[Settings] = None):
        """
        Initialize the approval service.

        Args:
            store: Order store used for all reads and writes
            settings: Application settings (defaults to the global instance)
        """
        self.store = store
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(f"{__name__}.TradeApprovalService")
        self.audit_logger = get_logger(
            log_level=self.settings.log_level,
            log_dir=self.settings.log_dir,
            use_json=self.settings.log_json,
        )
        self.logger.info("TradeApprovalService initialized")

    # Intake

    def ingest_order(self, record: Dict[str, Any]) -> Order:
        """
        Validate an order record and store it as a snapshot.

        Raises:
            InvalidOrderException: If the record does not describe a valid order
        """
        order = order_from_record(record)
        self.store.save(order)
        self.logger.info(
            f"Ingested {order.trade_type.value} order {order.order_id}: "
            f"{order.side.value} {order.quantity} {order.symbol} ({order.status.value})"
        )
        return order

    # Queries

    def list_orders(
        self,
        trade_type: Optional[TradeType] = None,
        status: Optional[OrderStatus] = OrderStatus.PENDING,
        user_id: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Tuple[List[Order], int]:
        """
        List orders newest first.

        Args:
            trade_type: Only this trade kind (None for all)
            status: Only this status (None for all)
            user_id: Only this account's orders
            page: 1-based page number
            limit: Page size (defaults to the configured page size)

        Returns:
            Tuple of (orders on the page, total matching orders)
        """
        limit = limit or self.settings.default_page_size
        validate_pagination(page, limit, self.settings.max_page_size)

        orders = self.store.list_orders(trade_type=trade_type, status=status, user_id=user_id)
        orders.sort(key=lambda o: o.created_at, reverse=True)

        start = (page - 1) * limit
        return orders[start:start + limit], len(orders)

    def get_order(self, order_id: str) -> Order:
        """Fetch an order snapshot by id."""
        return self.store.get(order_id)

    def propose_matches(
        self,
        symbol: Optional[str] = None,
        trade_type: Optional[TradeType] = None,
    ) -> List[MatchResult]:
        """
        Run the matcher over all executable orders.

        Args:
            symbol: Restrict to one instrument
            trade_type: Restrict to one trade kind

        Returns:
            Candidate matches for confirmation, in priority order
        """
        orders = [
            o for o in self.store.list_orders(trade_type=trade_type, symbol=symbol)
            if o.is_executable
        ]
        buys = [o for o in orders if o.is_buy]
        sells = [o for o in orders if o.is_sell]

        matches = match_orders(
            buys,
            sells,
            exclude_unpriced=self.settings.exclude_unpriced_orders,
        )
        self.audit_logger.log_match_proposals(len(buys), len(sells), len(matches), symbol)
        return matches

    def check_eligibility(
        self,
        order_id: str,
        available_balance: Union[Decimal, str, int, float],
    ) -> EligibilityResult:
        """
        Check whether an order may be executed given the account balance.

        Raises:
            OrderNotFoundException: If the order doesn't exist
            ValidationException: If the balance is invalid
        """
        balance = validate_balance(available_balance)
        order = self.store.get(order_id)
        result = can_execute(order, balance)

        self.logger.info(
            f"Eligibility for {order_id}: allowed={result.allowed}"
            + (f" ({result.reason})" if result.reason else "")
        )
        return result

    # Decisions

    def review_order(
        self,
        order_id: str,
        action: str,
        admin_id: str,
        admin_name: str,
        reason: Optional[str] = None,
    ) -> Order:
        """
        Approve, reject or cancel an order.

        Only pending orders can be approved. Pending or approved orders can
        be rejected or cancelled. Rejection requires a reason.

        Returns:
            The updated order as persisted

        Raises:
            InvalidReviewActionException: Unknown action or missing reason
            OrderNotFoundException: If the order doesn't exist
            OrderStateException: If the order's status does not allow the action
        """
        action = (action or "").strip().lower()
        if action not in REVIEW_ACTIONS:
            raise InvalidReviewActionException(
                f"Invalid review action: {action}",
                details={"action": action, "valid_actions": list(REVIEW_ACTIONS)}
            )
        if action == "reject" and not (reason and reason.strip()):
            raise InvalidReviewActionException("A reason is required to reject an order")

        order = self.store.get(order_id)
        allowed_from = {OrderStatus.PENDING} if action == "approve" else {
            OrderStatus.PENDING, OrderStatus.APPROVED,
        }
        if order.status not in allowed_from:
            raise OrderStateException(
                f"Cannot {action} order {order_id} in status {order.status.value}",
                details={"order_id": order_id, "status": order.status.value, "action": action}
            )

        now = datetime.now(timezone.utc)
        updated = replace(
            order,
            status=REVIEW_ACTIONS[action],
            approved_by=admin_id,
            approved_at=now,
            updated_at=now,
            reject_reason=reason if action == "reject" else None,
        )
        self.store.save(updated)

        target = AUDIT_TARGETS[order.trade_type]
        self._audit(admin_id, admin_name, f"{target}_{action}", order, f"{target} {action}", reason)
        self.audit_logger.log_review_action(order_id, action, admin_id, reason)

        return updated

    def confirm_match(
        self,
        buy_order_id: str,
        sell_order_id: str,
        admin_id: str,
        admin_name: str,
        buyer_balance: Optional[Union[Decimal, str, int, float]] = None,
    ) -> MatchResult:
        """
        Confirm one candidate match and settle both orders.

        Both orders are re-read from the store, so candidates that overlap an
        already confirmed match are refused. When the buyer's balance is
        given, the buy order must also pass the eligibility check.

        Returns:
            The confirmed MatchResult (with the pre-settlement snapshots)

        Raises:
            OrderNotFoundException: If either order doesn't exist
            ValidationException: If the orders are not a buy and a sell
            MatchConflictException: If either order was already settled or
                the pair no longer crosses
            IneligibleOrderException: If the buyer cannot fund the order
        """
        buy = self.store.get(buy_order_id)
        sell = self.store.get(sell_order_id)

        if not buy.is_buy or not sell.is_sell:
            raise ValidationException(
                "A match needs one buy order and one sell order",
                details={"buy_order_id": buy_order_id, "sell_order_id": sell_order_id}
            )

        settled = [o.order_id for o in (buy, sell) if not o.is_executable]
        if settled:
            raise MatchConflictException(
                f"Order(s) {', '.join(settled)} can no longer be matched",
                details={"order_ids": settled}
            )

        result = evaluate_pair(buy, sell, exclude_unpriced=self.settings.exclude_unpriced_orders)
        if not result.matched:
            raise MatchConflictException(
                f"Orders {buy_order_id} and {sell_order_id} do not match: {result.reason}",
                details={"reason": result.reason}
            )

        if buyer_balance is not None:
            eligibility = can_execute(buy, validate_balance(buyer_balance))
            if not eligibility.allowed:
                raise IneligibleOrderException(
                    f"Buy order {buy_order_id} is not eligible: {eligibility.reason}",
                    details=eligibility.to_dict()
                )

        now = datetime.now(timezone.utc)
        for order in (buy, sell):
            completed = force_execute(order, admin_id, now)
            if isinstance(completed, BlockOrder):
                completed = replace(completed, is_matched=True)
            self.store.save(completed)

        description = (
            f"match confirmed: {result.match_quantity} {result.symbol} @ {result.match_price} "
            f"({AUDIT_TARGETS[buy.trade_type]} buy, {AUDIT_TARGETS[sell.trade_type]} sell)"
        )
        self._audit(admin_id, admin_name, "match_confirm", buy, description, None,
                    target_id=f"{buy_order_id}:{sell_order_id}",
                    target_type=MATCH_AUDIT_TARGET)
        self.audit_logger.log_match_confirmation(
            buy_order_id, sell_order_id, result.symbol,
            result.match_price, result.match_quantity, admin_id,
        )
        return result

    def force_execute_order(
        self,
        order_id: str,
        admin_id: str,
        admin_name: str,
        reason: Optional[str] = None,
    ) -> Order:
        """
        Settle an order manually, bypassing matching and eligibility.

        Returns:
            The completed order as persisted

        Raises:
            OrderNotFoundException: If the order doesn't exist
        """
        order = self.store.get(order_id)
        completed = force_execute(order, admin_id)
        self.store.save(completed)

        target = AUDIT_TARGETS[order.trade_type]
        self._audit(admin_id, admin_name, f"{target}_force_execute", order,
                    f"{target} force executed", reason)
        self.audit_logger.log_forced_execution(order_id, order.symbol, admin_id, order.status.value)

        return completed

    def _audit(
        self,
        admin_id: str,
        admin_name: str,
        action: str,
        order: Order,
        description: str,
        reason: Optional[str],
        target_id: Optional[str] = None,
        target_type: Optional[str] = None,
    ) -> None:
        self.store.append_audit(AuditEntry(
            admin_id=admin_id,
            admin_name=admin_name,
            action=action,
            target_type=target_type or AUDIT_TARGETS[order.trade_type],
            target_id=target_id or order.order_id,
            description=description,
            reason=reason,
        ))
