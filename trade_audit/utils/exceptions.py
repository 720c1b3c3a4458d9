"""
Custom exceptions for the trade audit console

This module defines a hierarchy of exceptions used by the approval workflow
and the order intake layer. The matching core itself never raises for
business outcomes; it reports rejections as ordinary return values.
"""


class BaseTradeAuditException(Exception):
    """Base exception class for all trade audit exceptions."""

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidOrderException(BaseTradeAuditException):
    """Raised when an order record cannot be turned into a valid order."""
    pass


class ValidationException(BaseTradeAuditException):
    """Raised when input validation fails."""
    pass


class OrderNotFoundException(BaseTradeAuditException):
    """Raised when attempting to access an order that doesn't exist."""
    pass


class InvalidReviewActionException(BaseTradeAuditException):
    """Raised when a review action is unknown or missing required context."""
    pass


class OrderStateException(BaseTradeAuditException):
    """Raised when an order's status does not allow the requested operation."""
    pass


class MatchConflictException(BaseTradeAuditException):
    """Raised when a candidate match can no longer be confirmed."""
    pass


class IneligibleOrderException(BaseTradeAuditException):
    """Raised when a confirmed match fails the buyer's eligibility check."""
    pass
