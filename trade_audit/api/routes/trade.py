"""
REST API endpoints for administrative trade review.

Provides endpoints for listing orders, proposing and confirming matches,
approving/rejecting orders, eligibility checks and forced execution.
Domain exceptions propagate to the handlers registered in main.py.
"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from trade_audit.api.models import (
    ConfirmMatchRequest,
    EligibilityRequest,
    EligibilityResponse,
    ErrorResponse,
    ForceExecuteRequest,
    MatchListResponse,
    MatchResponse,
    OrderListResponse,
    OrderRecordRequest,
    OrderResponse,
    PaginationInfo,
    ReviewRequest,
)
from trade_audit.core.order import OrderStatus, parse_trade_type
from trade_audit.services.approval_service import TradeApprovalService
from trade_audit.utils.exceptions import ValidationException

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/admin/trade", tags=["trade"])


# Dependency injection for TradeApprovalService
# This will be overridden in main.py with actual instance
_approval_service: Optional[TradeApprovalService] = None


def get_approval_service() -> TradeApprovalService:
    """Dependency to get TradeApprovalService instance."""
    if _approval_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Approval service not initialized"
        )
    return _approval_service


def set_approval_service(service: Optional[TradeApprovalService]) -> None:
    """Set the global TradeApprovalService instance."""
    global _approval_service
    _approval_service = service


def _parse_status(value: str) -> Optional[OrderStatus]:
    if value == "all":
        return None
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationException(
            f"Invalid status filter: {value}",
            details={"valid": [s.value for s in OrderStatus] + ["all"]}
        )


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List orders awaiting review",
    description="Paginated order listing, newest first. status=all disables the status filter.",
)
async def list_orders(
    type: Optional[str] = Query(None, description="Trade type filter"),
    status_filter: str = Query("pending", alias="status", description="Order status or 'all'"),
    user_id: Optional[str] = Query(None, description="Owning account filter"),
    page: int = Query(1, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size"),
    service: TradeApprovalService = Depends(get_approval_service),
) -> OrderListResponse:
    trade_type = parse_trade_type(type) if type else None
    limit = limit or service.settings.default_page_size

    orders, total = service.list_orders(
        trade_type=trade_type,
        status=_parse_status(status_filter),
        user_id=user_id,
        page=page,
        limit=limit,
    )

    return OrderListResponse(
        data=[OrderResponse.from_order(o) for o in orders],
        pagination=PaginationInfo.build(page, limit, total),
        type=trade_type.value if trade_type else "all",
    )


@router.post(
    "/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest an order record",
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def ingest_order(
    record: OrderRecordRequest,
    service: TradeApprovalService = Depends(get_approval_service),
) -> OrderResponse:
    order = service.ingest_order(record.to_record())
    return OrderResponse.from_order(order)


@router.get(
    "/matches",
    response_model=MatchListResponse,
    summary="Propose candidate matches",
    description="Runs price-time priority matching over pending and approved orders. "
                "Candidates may overlap; confirm at most one per order.",
)
async def propose_matches(
    symbol: Optional[str] = Query(None, description="Instrument filter"),
    type: Optional[str] = Query(None, description="Trade type filter"),
    service: TradeApprovalService = Depends(get_approval_service),
) -> MatchListResponse:
    trade_type = parse_trade_type(type) if type else None
    matches = service.propose_matches(symbol=symbol, trade_type=trade_type)
    return MatchListResponse(
        count=len(matches),
        matches=[MatchResponse.from_match(m) for m in matches],
    )


@router.post(
    "/matches/confirm",
    response_model=MatchResponse,
    summary="Confirm a candidate match",
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def confirm_match(
    request: ConfirmMatchRequest,
    service: TradeApprovalService = Depends(get_approval_service),
) -> MatchResponse:
    logger.info(
        f"Confirming match {request.buy_order_id} x {request.sell_order_id} "
        f"by {request.admin_id}"
    )
    result = service.confirm_match(
        request.buy_order_id,
        request.sell_order_id,
        admin_id=request.admin_id,
        admin_name=request.admin_name,
        buyer_balance=Decimal(request.buyer_balance) if request.buyer_balance else None,
    )
    return MatchResponse.from_match(result)


@router.post(
    "/review",
    response_model=OrderResponse,
    summary="Approve, reject or cancel an order",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def review_order(
    request: ReviewRequest,
    service: TradeApprovalService = Depends(get_approval_service),
) -> OrderResponse:
    order = service.review_order(
        request.order_id,
        request.action,
        admin_id=request.admin_id,
        admin_name=request.admin_name,
        reason=request.reason,
    )
    return OrderResponse.from_order(order)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get an order",
    responses={404: {"model": ErrorResponse}},
)
async def get_order(
    order_id: str,
    service: TradeApprovalService = Depends(get_approval_service),
) -> OrderResponse:
    return OrderResponse.from_order(service.get_order(order_id))


@router.post(
    "/{order_id}/eligibility",
    response_model=EligibilityResponse,
    summary="Check whether an order may execute",
    responses={404: {"model": ErrorResponse}},
)
async def check_eligibility(
    order_id: str,
    request: EligibilityRequest,
    service: TradeApprovalService = Depends(get_approval_service),
) -> EligibilityResponse:
    result = service.check_eligibility(order_id, request.available_balance)
    return EligibilityResponse.from_result(order_id, result)


@router.post(
    "/{order_id}/force-execute",
    response_model=OrderResponse,
    summary="Force an order through",
    description="Administrative override: completes the order without matching or eligibility checks.",
    responses={404: {"model": ErrorResponse}},
)
async def force_execute_order(
    order_id: str,
    request: ForceExecuteRequest,
    service: TradeApprovalService = Depends(get_approval_service),
) -> OrderResponse:
    logger.warning(f"Force execution of {order_id} requested by {request.admin_id}")
    order = service.force_execute_order(
        order_id,
        admin_id=request.admin_id,
        admin_name=request.admin_name,
        reason=request.reason,
    )
    return OrderResponse.from_order(order)
