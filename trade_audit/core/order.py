"""
Order domain model with enums and price resolution

This module defines the order snapshots the matching core works on. Orders
come in five trade kinds that share a common base and differ in which
fields carry their price. Each variant knows how to resolve its own
tradable price, so callers never probe for field presence.

Snapshots are frozen: the persistence layer owns the order, the core only
ever derives new values from it.
"""

from dataclasses import dataclass, field, fields, MISSING
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Optional, Type, Union
from uuid import uuid4

from ..utils.exceptions import InvalidOrderException
from ..utils.validators import (
    optional_decimal,
    parse_timestamp,
    sanitize_decimal,
    validate_price,
    validate_quantity,
    validate_symbol,
)


ZERO = Decimal("0")


class TradeType(Enum):
    """Trade kind discriminator."""
    A_SHARE = "a-share"    # Plain domestic equity
    HK_SHARE = "hk-share"  # Cross-border equity
    IPO = "ipo"            # New issue subscription
    BLOCK = "block"        # Negotiated block trade
    BOARD = "board"        # Limit-up board order

    def __str__(self) -> str:
        return self.value


class OrderSide(Enum):
    """Order side enumeration."""
    BUY = "buy"
    SELL = "sell"

    def __str__(self) -> str:
        return self.value


class OrderStatus(Enum):
    """Order lifecycle status as stored by the persistence layer."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


# Statuses from which an order may still be executed
EXECUTABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.APPROVED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True, kw_only=True)
class Order:
    """
    Common shape of every order snapshot.

    Attributes:
        order_id: Identifier assigned by the persistence layer
        user_id: Owning account
        symbol: Instrument code (e.g. "600000")
        side: Buy or sell
        quantity: Number of shares
        status: Lifecycle status
        created_at: Creation time, used for time priority
        symbol_name: Display name of the instrument
        updated_at: Last modification time
        approved_by: Administrator who approved or settled the order
        approved_at: When it was approved or settled
        reject_reason: Reason given on rejection
    """

    trade_type: ClassVar[TradeType]

    order_id: str = field(default_factory=lambda: str(uuid4()))
    user_id: str
    symbol: str
    side: OrderSide
    quantity: Decimal
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = field(default_factory=_utcnow)
    symbol_name: str = ""
    updated_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    reject_reason: Optional[str] = None

    @property
    def tradable_price(self) -> Optional[Decimal]:
        """Price the matcher compares on, or None when the kind has none."""
        return None

    @property
    def is_buy(self) -> bool:
        """Check if this is a buy order."""
        return self.side == OrderSide.BUY

    @property
    def is_sell(self) -> bool:
        """Check if this is a sell order."""
        return self.side == OrderSide.SELL

    @property
    def is_executable(self) -> bool:
        """Check if the order status still permits execution."""
        return self.status in EXECUTABLE_STATUSES

    @property
    def notional(self) -> Decimal:
        """Resolved price times quantity."""
        return resolve_price(self) * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        """Convert order to dictionary for API serialization."""
        data: Dict[str, Any] = {"trade_type": self.trade_type.value}
        for f in fields(self):
            data[f.name] = _serialize(getattr(self, f.name))
        price = self.tradable_price
        data["resolved_price"] = str(price) if price is not None else None
        return data

    def __repr__(self) -> str:
        price = self.tradable_price
        price_str = str(price) if price is not None else "N/A"
        return (
            f"{type(self).__name__}(id={self.order_id}, "
            f"{self.side.value} {self.quantity} {self.symbol} @ {price_str}, "
            f"status={self.status.value})"
        )


@dataclass(frozen=True, slots=True, kw_only=True, repr=False)
class AShareOrder(Order):
    """Plain domestic equity order with a single unit price."""

    trade_type: ClassVar[TradeType] = TradeType.A_SHARE

    price: Decimal
    amount: Optional[Decimal] = None
    commission_rate: Decimal = ZERO
    stamp_duty_rate: Decimal = ZERO
    transfer_fee_rate: Decimal = ZERO

    @property
    def tradable_price(self) -> Optional[Decimal]:
        return self.price


@dataclass(frozen=True, slots=True, kw_only=True, repr=False)
class HKShareOrder(Order):
    """
    Cross-border equity order.

    Carries the foreign-currency price alongside the domestic price it was
    converted to. Conversion happens at intake, so the domestic price is the
    one that takes part in matching and funding checks.
    """

    trade_type: ClassVar[TradeType] = TradeType.HK_SHARE

    price_hkd: Decimal
    price_cny: Decimal
    exchange_rate: Decimal
    amount_hkd: Optional[Decimal] = None
    amount_cny: Optional[Decimal] = None
    commission_rate: Decimal = ZERO
    currency: str = "HKD"

    @property
    def tradable_price(self) -> Optional[Decimal]:
        return self.price_cny


@dataclass(frozen=True, slots=True, kw_only=True, repr=False)
class IPOOrder(Order):
    """New issue subscription. Has no market price and never matches."""

    trade_type: ClassVar[TradeType] = TradeType.IPO

    ipo_code: str
    ipo_name: str = ""
    issue_price: Decimal
    apply_quantity: Decimal
    frozen_amount: Optional[Decimal] = None
    qualification_status: str = "pending"
    lottery_status: str = "pending"
    won_quantity: Optional[Decimal] = None


@dataclass(frozen=True, slots=True, kw_only=True, repr=False)
class BlockOrder(Order):
    """Negotiated block trade with a minimum execution quantity."""

    trade_type: ClassVar[TradeType] = TradeType.BLOCK

    price: Decimal
    min_quantity: Decimal
    total_amount: Optional[Decimal] = None
    discount_rate: Optional[Decimal] = None
    counterparty: Optional[str] = None
    settlement_date: Optional[str] = None
    is_matched: bool = False

    @property
    def tradable_price(self) -> Optional[Decimal]:
        return self.price


@dataclass(frozen=True, slots=True, kw_only=True, repr=False)
class BoardOrder(Order):
    """Limit-up board order, priced at the limit-up reference price."""

    trade_type: ClassVar[TradeType] = TradeType.BOARD

    limit_up_price: Decimal
    risk_level: str = "low"
    daily_limit_count: int = 0
    user_quota: Decimal = ZERO
    used_quota: Decimal = ZERO
    manual_approval_required: bool = False
    risk_warning: Optional[str] = None

    @property
    def tradable_price(self) -> Optional[Decimal]:
        return self.limit_up_price


AnyOrder = Union[AShareOrder, HKShareOrder, IPOOrder, BlockOrder, BoardOrder]


def resolve_price(order: Order) -> Decimal:
    """
    Resolve the single comparable price of an order.

    Total and pure: returns zero when the order kind carries no tradable
    price. Callers must read zero as "no price available", not as a quote.
    """
    price = order.tradable_price
    return price if price is not None else ZERO


def has_resolvable_price(order: Order) -> bool:
    """Check whether the order exposes a tradable price."""
    return order.tradable_price is not None


# ============================================================================
# Record intake
# ============================================================================

ORDER_CLASSES: Dict[TradeType, Type[Order]] = {
    TradeType.A_SHARE: AShareOrder,
    TradeType.HK_SHARE: HKShareOrder,
    TradeType.IPO: IPOOrder,
    TradeType.BLOCK: BlockOrder,
    TradeType.BOARD: BoardOrder,
}


def parse_trade_type(value: Union[str, TradeType]) -> TradeType:
    """
    Parse a trade type, accepting both "a-share" and "a_share" spellings.

    Raises:
        InvalidOrderException: If the trade type is unknown
    """
    if isinstance(value, TradeType):
        return value
    try:
        return TradeType(str(value).strip().lower().replace("_", "-"))
    except ValueError:
        raise InvalidOrderException(
            f"Unknown trade type: {value}",
            details={"trade_type": value, "valid_types": [t.value for t in TradeType]}
        )


def _parse_enum(enum_cls: Type[Enum]) -> Callable[[Any], Enum]:
    def parse(value: Any) -> Enum:
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(str(value).strip().lower())
        except ValueError:
            raise InvalidOrderException(
                f"Invalid {enum_cls.__name__}: {value}",
                details={"value": value, "valid": [m.value for m in enum_cls]}
            )
    return parse


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "t")
    return bool(value)


PRICE_FIELDS = ("price", "price_hkd", "price_cny", "exchange_rate", "issue_price", "limit_up_price")


_CONVERTERS: Dict[Any, Callable[[Any], Any]] = {
    Decimal: sanitize_decimal,
    Optional[Decimal]: optional_decimal,
    datetime: parse_timestamp,
    Optional[datetime]: parse_timestamp,
    OrderSide: _parse_enum(OrderSide),
    OrderStatus: _parse_enum(OrderStatus),
    str: str,
    Optional[str]: _optional_str,
    int: int,
    bool: _parse_bool,
}


def order_from_record(record: Dict[str, Any]) -> AnyOrder:
    """
    Build an order snapshot from a persistence record.

    The record is discriminated by its ``trade_type``. Columns that are not
    part of the order shape (joined user rows, computed totals) are ignored.
    Legacy records that store the side under ``type`` are accepted.

    Args:
        record: Row as returned by the persistence layer

    Returns:
        The matching order variant

    Raises:
        InvalidOrderException: If the trade type is unknown, a required field
            is missing or a value cannot be coerced
    """
    if "trade_type" not in record:
        raise InvalidOrderException("Order record has no trade_type", details={"record": record})

    trade_type = parse_trade_type(record["trade_type"])
    order_cls = ORDER_CLASSES[trade_type]

    values = dict(record)
    if "id" in values and "order_id" not in values:
        values["order_id"] = values["id"]
    if "side" not in values and values.get("type") in ("buy", "sell"):
        values["side"] = values["type"]

    kwargs: Dict[str, Any] = {}
    missing = []
    for f in fields(order_cls):
        if f.name in values and values[f.name] is not None:
            convert = _CONVERTERS.get(f.type, lambda v: v)
            kwargs[f.name] = convert(values[f.name])
        elif f.default is MISSING and f.default_factory is MISSING:
            missing.append(f.name)

    if missing:
        raise InvalidOrderException(
            f"Order record is missing required fields: {', '.join(missing)}",
            details={"trade_type": trade_type.value, "missing": missing}
        )

    kwargs["symbol"] = validate_symbol(kwargs["symbol"])
    validate_quantity(kwargs["quantity"], kwargs["symbol"])
    for name in PRICE_FIELDS:
        if name in kwargs:
            validate_price(kwargs[name], kwargs["symbol"], field_name=name)
    # Without an id the snapshot keeps its generated one
    if "order_id" in kwargs:
        kwargs["order_id"] = str(kwargs["order_id"])

    return order_cls(**kwargs)


def _serialize(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value
