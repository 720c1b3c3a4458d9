"""
Order Store - Persistence boundary for order snapshots and audit entries.

The approval workflow talks to storage only through the OrderStore
interface. InMemoryOrderStore backs tests and local runs; a database-backed
store implements the same five methods.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from trade_audit.core.order import Order, OrderStatus, TradeType
from trade_audit.utils.exceptions import OrderNotFoundException


@dataclass(frozen=True)
class AuditEntry:
    """One administrative action as written to the audit log."""

    admin_id: str
    admin_name: str
    action: str
    target_type: str
    target_id: str
    description: str
    reason: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admin_id": self.admin_id,
            "admin_name": self.admin_name,
            "action": self.action,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "description": self.description,
            "reason": self.reason,
            "created_at": self.created_at.isoformat(),
        }


class OrderStore(ABC):
    """Read/write access to persisted orders and the audit log."""

    @abstractmethod
    def get(self, order_id: str) -> Order:
        """
        Fetch one order snapshot.

        Raises:
            OrderNotFoundException: If no order has this id
        """

    @abstractmethod
    def list_orders(
        self,
        trade_type: Optional[TradeType] = None,
        status: Optional[OrderStatus] = None,
        user_id: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> List[Order]:
        """Return orders matching every given filter."""

    @abstractmethod
    def save(self, order: Order) -> None:
        """Insert or replace an order by id."""

    @abstractmethod
    def append_audit(self, entry: AuditEntry) -> None:
        """Append an entry to the audit log."""

    @abstractmethod
    def audit_entries(self) -> List[AuditEntry]:
        """Return the audit log, oldest first."""


class InMemoryOrderStore(OrderStore):
    """Thread-safe dictionary-backed store."""

    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._audit_log: List[AuditEntry] = []
        self.lock = threading.Lock()
        self.logger = logging.getLogger(f"{__name__}.InMemoryOrderStore")

    def get(self, order_id: str) -> Order:
        with self.lock:
            order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundException(
                f"Order {order_id} not found",
                details={"order_id": order_id}
            )
        return order

    def list_orders(
        self,
        trade_type: Optional[TradeType] = None,
        status: Optional[OrderStatus] = None,
        user_id: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> List[Order]:
        with self.lock:
            orders = list(self._orders.values())

        return [
            o for o in orders
            if (trade_type is None or o.trade_type == trade_type)
            and (status is None or o.status == status)
            and (user_id is None or o.user_id == user_id)
            and (symbol is None or o.symbol == symbol)
        ]

    def save(self, order: Order) -> None:
        with self.lock:
            self._orders[order.order_id] = order
        self.logger.debug(f"Saved order {order.order_id} ({order.status.value})")

    def append_audit(self, entry: AuditEntry) -> None:
        with self.lock:
            self._audit_log.append(entry)

    def audit_entries(self) -> List[AuditEntry]:
        with self.lock:
            return list(self._audit_log)

    def __len__(self) -> int:
        with self.lock:
            return len(self._orders)
