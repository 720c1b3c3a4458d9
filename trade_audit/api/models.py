"""
Pydantic models for API request/response validation.

This module defines the data models used by the administrative trade API.
Monetary values travel as decimal strings.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trade_audit.core.eligibility import EligibilityResult
from trade_audit.core.matching import MatchResult
from trade_audit.core.order import Order, parse_trade_type
from trade_audit.utils.exceptions import InvalidOrderException

DECIMAL_PATTERN = r'^\d+(\.\d+)?$'

# Fields shared by every order kind; everything else goes under "attributes"
_COMMON_FIELDS = {
    "order_id", "trade_type", "user_id", "symbol", "symbol_name", "side",
    "quantity", "status", "created_at", "updated_at", "approved_by",
    "approved_at", "reject_reason", "resolved_price",
}


# ============================================================================
# Request Models
# ============================================================================

class OrderRecordRequest(BaseModel):
    """Order record as handed over by the intake layer."""

    model_config = ConfigDict(extra="allow", json_schema_extra={
        "example": {
            "trade_type": "a-share",
            "user_id": "u-1001",
            "symbol": "600000",
            "side": "buy",
            "quantity": "100",
            "price": "10.00",
            "created_at": "2026-10-19T09:30:00Z"
        }
    })

    trade_type: str = Field(..., description="a-share, hk-share, ipo, block or board")
    user_id: str = Field(..., min_length=1, description="Owning account")
    symbol: str = Field(..., min_length=1, max_length=20, description="Instrument code")
    side: str = Field(..., pattern=r'^(buy|sell)$', description="Order side: buy or sell")
    quantity: str = Field(..., pattern=DECIMAL_PATTERN, description="Order quantity as decimal string")

    @field_validator('trade_type')
    @classmethod
    def validate_trade_type(cls, v: str) -> str:
        """Validate the trade type is known."""
        try:
            return parse_trade_type(v).value
        except InvalidOrderException as e:
            raise ValueError(e.message)

    def to_record(self) -> Dict[str, Any]:
        """Convert to a persistence-style record."""
        return self.model_dump()


class ReviewRequest(BaseModel):
    """Request model for approving, rejecting or cancelling an order."""

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "action": "reject",
            "order_id": "3f1c6a52-6a0e-4f5e-9d3e-0b7f4b1f2a10",
            "admin_id": "admin-1",
            "admin_name": "Operations",
            "reason": "Suspicious price"
        }
    })

    action: str = Field(..., pattern=r'^(approve|reject|cancel)$', description="approve, reject or cancel")
    order_id: str = Field(..., min_length=1)
    admin_id: str = Field(..., min_length=1)
    admin_name: str = Field(..., min_length=1)
    reason: Optional[str] = Field(None, description="Required when rejecting")


class ConfirmMatchRequest(BaseModel):
    """Request model for confirming a candidate match."""

    buy_order_id: str = Field(..., min_length=1)
    sell_order_id: str = Field(..., min_length=1)
    admin_id: str = Field(..., min_length=1)
    admin_name: str = Field(..., min_length=1)
    buyer_balance: Optional[str] = Field(
        None,
        pattern=DECIMAL_PATTERN,
        description="Buyer's available balance; when given the buy order must be eligible"
    )


class EligibilityRequest(BaseModel):
    """Request model for an eligibility check."""

    available_balance: str = Field(..., pattern=DECIMAL_PATTERN, description="Account's available balance")


class ForceExecuteRequest(BaseModel):
    """Request model for a forced execution."""

    admin_id: str = Field(..., min_length=1)
    admin_name: str = Field(..., min_length=1)
    reason: Optional[str] = None


# ============================================================================
# Response Models
# ============================================================================

class OrderResponse(BaseModel):
    """Response model for an order snapshot."""

    order_id: str
    trade_type: str
    user_id: str
    symbol: str
    symbol_name: str = ""
    side: str
    quantity: str
    status: str
    resolved_price: Optional[str] = Field(None, description="Tradable price, null when the kind has none")
    created_at: datetime
    updated_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    reject_reason: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Kind-specific fields")

    @classmethod
    def from_order(cls, order: Order) -> 'OrderResponse':
        """Create from an Order snapshot."""
        data = order.to_dict()
        common = {k: v for k, v in data.items() if k in _COMMON_FIELDS}
        attributes = {k: v for k, v in data.items() if k not in _COMMON_FIELDS}
        return cls(**common, attributes=attributes)


class PaginationInfo(BaseModel):
    """Pagination block of a listing."""

    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> 'PaginationInfo':
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class OrderListResponse(BaseModel):
    """Response model for an order listing."""

    success: bool = True
    data: List[OrderResponse]
    pagination: PaginationInfo
    type: str = Field(..., description="Trade type filter, or 'all'")


class MatchResponse(BaseModel):
    """Response model for a candidate match."""

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "matched": True,
            "symbol": "600000",
            "buy_order_id": "b-1",
            "sell_order_id": "s-1",
            "match_price": "9.75",
            "match_quantity": "50",
            "total_value": "487.50",
            "reason": None
        }
    })

    matched: bool
    symbol: Optional[str] = None
    buy_order_id: Optional[str] = None
    sell_order_id: Optional[str] = None
    match_price: str
    match_quantity: str
    total_value: str
    reason: Optional[str] = None

    @classmethod
    def from_match(cls, match: MatchResult) -> 'MatchResponse':
        """Create from a MatchResult."""
        return cls(**match.to_dict())


class MatchListResponse(BaseModel):
    """Response model for a matching pass."""

    count: int
    matches: List[MatchResponse]


class EligibilityResponse(BaseModel):
    """Response model for an eligibility check."""

    order_id: str
    allowed: bool
    reason: Optional[str] = None
    required_amount: Optional[str] = None

    @classmethod
    def from_result(cls, order_id: str, result: EligibilityResult) -> 'EligibilityResponse':
        return cls(order_id=order_id, **result.to_dict())


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Check timestamp")
    version: str = Field(..., description="API version")
    orders: int = Field(..., description="Orders held by the store")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error timestamp")
