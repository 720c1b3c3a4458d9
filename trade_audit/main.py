"""
FastAPI Application - Main Entry Point

REST API for administrative trade review: order listing, candidate matching,
approval decisions and forced execution.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional, Type

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trade_audit.api.models import ErrorResponse, HealthResponse
from trade_audit.api.routes import trade
from trade_audit.config import get_settings
from trade_audit.services.approval_service import TradeApprovalService
from trade_audit.services.order_store import InMemoryOrderStore, OrderStore
from trade_audit.utils.logger import get_logger
from trade_audit.utils.exceptions import (
    BaseTradeAuditException,
    IneligibleOrderException,
    InvalidOrderException,
    InvalidReviewActionException,
    MatchConflictException,
    OrderNotFoundException,
    OrderStateException,
    ValidationException,
)

API_VERSION = "1.0.0"

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global instances
order_store: Optional[OrderStore] = None
approval_service: Optional[TradeApprovalService] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Initializes global services on startup unless they were set up already
    (tests install their own).
    """
    global order_store, approval_service

    logger.info("Starting Trade Audit Console API")

    if approval_service is None:
        order_store = InMemoryOrderStore()
        approval_service = TradeApprovalService(order_store, settings)
    trade.set_approval_service(approval_service)

    logger.info("API startup complete, docs at /docs")

    yield

    logger.info("API shutdown complete")


app = FastAPI(
    title=settings.app_name,
    description="""
    Administrative review of brokerage orders.

    ## Endpoints
    * **GET /api/admin/trade**: List orders by type and status
    * **GET /api/admin/trade/matches**: Propose candidate matches (price-time priority)
    * **POST /api/admin/trade/matches/confirm**: Confirm one candidate
    * **POST /api/admin/trade/review**: Approve, reject or cancel an order
    * **POST /api/admin/trade/{order_id}/eligibility**: Funding and status check
    * **POST /api/admin/trade/{order_id}/force-execute**: Manual settlement
    """,
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request for tracking."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


# Logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests and responses."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.info(
        f"Request [{request_id}]: {request.method} {request.url.path} "
        f"from {request.client.host if request.client else 'unknown'}"
    )

    response = await call_next(request)

    logger.info(f"Response [{request_id}]: {response.status_code}")

    return response


def _error_response(status_code: int, error: str, message: str, detail: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            message=message,
            detail=detail,
            timestamp=datetime.now(timezone.utc)
        ).model_dump(mode='json')
    )


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(f"Validation error [{request_id}]: {exc.errors()}")

    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        str(exc.errors()),
    )


# Domain exception -> HTTP status
EXCEPTION_STATUS: Dict[Type[BaseTradeAuditException], int] = {
    ValidationException: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidOrderException: status.HTTP_400_BAD_REQUEST,
    InvalidReviewActionException: status.HTTP_400_BAD_REQUEST,
    OrderNotFoundException: status.HTTP_404_NOT_FOUND,
    OrderStateException: status.HTTP_409_CONFLICT,
    MatchConflictException: status.HTTP_409_CONFLICT,
    IneligibleOrderException: status.HTTP_409_CONFLICT,
}


@app.exception_handler(BaseTradeAuditException)
async def trade_audit_exception_handler(request: Request, exc: BaseTradeAuditException):
    """Map domain exceptions to HTTP errors."""
    request_id = getattr(request.state, "request_id", "unknown")
    status_code = EXCEPTION_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning(f"{type(exc).__name__} [{request_id}]: {exc.message}")

    return _error_response(status_code, type(exc).__name__, exc.message)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    get_logger().log_error(f"Unhandled exception [{request_id}]: {str(exc)}", exc, correlation_id=request_id)

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An internal error occurred",
        "Contact support with request ID: " + request_id,
    )


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    orders = len(order_store.list_orders()) if order_store else 0

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=API_VERSION,
        orders=orders,
    )


app.include_router(trade.router)


@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": API_VERSION,
        "status": "operational",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "trade_audit.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level="info"
    )
