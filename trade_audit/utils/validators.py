"""
Input validation utilities

Coercion and validation helpers used when order records coming from the
persistence layer are turned into order snapshots.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from .exceptions import (
    InvalidOrderException,
    ValidationException,
)


def sanitize_decimal(value: Union[str, int, float, Decimal]) -> Decimal:
    """
    Convert a value to Decimal with proper error handling.

    Args:
        value: Value to convert to Decimal

    Returns:
        Decimal representation of the value

    Raises:
        InvalidOrderException: If value cannot be converted to Decimal
    """
    try:
        if isinstance(value, bool):
            raise TypeError("booleans are not numeric values")
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidOrderException(
            f"Invalid decimal value: {value}",
            details={"value": value, "error": str(e)}
        )

    if not result.is_finite():
        raise InvalidOrderException(
            f"Decimal value must be finite, got {value}",
            details={"value": str(value)}
        )
    return result


def optional_decimal(value: Any) -> Optional[Decimal]:
    """Like sanitize_decimal, but passes None and empty strings through as None."""
    if value is None or value == "":
        return None
    return sanitize_decimal(value)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp as stored by the persistence layer.

    Naive timestamps are assumed to be UTC. A trailing "Z" is accepted.

    Raises:
        InvalidOrderException: If the value is not a valid timestamp
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidOrderException(
                f"Invalid timestamp: {value}",
                details={"value": value, "error": str(e)}
            )

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_symbol(symbol: str) -> str:
    """
    Validate and normalize an instrument symbol.

    Symbols are exchange codes such as "600000" or "00700"; they are compared
    verbatim by the matcher, so only surrounding whitespace is stripped.

    Raises:
        InvalidOrderException: If symbol is empty or not a string
    """
    if not symbol or not isinstance(symbol, str) or not symbol.strip():
        raise InvalidOrderException(
            f"Invalid symbol: {symbol!r}",
            details={"symbol": symbol}
        )
    return symbol.strip()


def validate_quantity(quantity: Decimal, symbol: str) -> bool:
    """
    Validate an order quantity.

    Raises:
        InvalidOrderException: If quantity is not positive
    """
    if quantity <= 0:
        raise InvalidOrderException(
            f"Quantity must be positive, got {quantity}",
            details={"symbol": symbol, "quantity": str(quantity)}
        )
    return True


def validate_price(
    price: Optional[Decimal],
    symbol: str,
    field_name: str = "price",
    required: bool = False,
    max_price: Decimal = Decimal("100000000"),
) -> bool:
    """
    Validate a price value.

    Args:
        price: Price to validate
        symbol: Instrument symbol for context
        field_name: Name of the price column, reported in the error
        required: Whether the price must be present
        max_price: Maximum acceptable price

    Returns:
        True if price is valid

    Raises:
        InvalidOrderException: If a required price is missing or the price
            is outside (0, max_price]
    """
    if price is None:
        if required:
            raise InvalidOrderException(
                f"{field_name} is required",
                details={"symbol": symbol, "field": field_name}
            )
        return True

    if price <= 0 or price > max_price:
        raise InvalidOrderException(
            f"{field_name} must be positive and at most {max_price}, got {price}",
            details={"symbol": symbol, "field": field_name, "value": str(price)}
        )
    return True


def validate_balance(balance: Union[str, int, float, Decimal]) -> Decimal:
    """
    Coerce an account balance supplied by the caller.

    Raises:
        ValidationException: If the balance is not a number or is negative
    """
    try:
        value = sanitize_decimal(balance)
    except InvalidOrderException as e:
        raise ValidationException(e.message, details=e.details)

    if value < 0:
        raise ValidationException(
            f"Available balance cannot be negative, got {value}",
            details={"balance": str(value)}
        )
    return value


def validate_pagination(page: int, limit: int, max_limit: int) -> tuple[int, int]:
    """
    Validate page/limit query parameters.

    Raises:
        ValidationException: If page or limit is out of range
    """
    if page < 1:
        raise ValidationException(f"Page must be >= 1, got {page}")
    if limit < 1 or limit > max_limit:
        raise ValidationException(
            f"Limit must be between 1 and {max_limit}, got {limit}",
            details={"limit": limit, "max": max_limit}
        )
    return page, limit
