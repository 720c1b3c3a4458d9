"""
Logging configuration and utilities for the trade audit console.

Provides structured logging with JSON format for production environments
and human-readable format for development.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Optional


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Converts log records to JSON format with additional context fields.
    """

    EXTRA_FIELDS = ("order_id", "symbol", "admin_id", "action", "match_count", "correlation_id")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in self.EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = str(getattr(record, name))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class TradeAuditLogger:
    """
    Centralized logger for matching proposals and administrative actions.

    Supports both JSON (production) and console (development) formats.
    Administrative actions go to a dedicated audit channel so they can be
    shipped separately from application noise.
    """

    def __init__(
        self,
        name: str = "TradeAudit",
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        use_json: bool = False,
    ):
        """
        Initialize the trade audit logger.

        Args:
            name: Logger name
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (None for console only)
            use_json: Use JSON formatting (for production)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, log_level.upper()))
        self.logger.handlers.clear()
        # Console output comes from our own handler, not the root logger's
        self.logger.propagate = False

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(self._create_formatter(use_json))
        self.logger.addHandler(console_handler)

        if log_dir:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            self.logger.addHandler(
                self._create_file_handler(log_dir / "application.log", use_json)
            )

            self.audit_logger = logging.getLogger(f"{name}.audit")
            self.audit_logger.setLevel(logging.INFO)
            self.audit_logger.addHandler(
                self._create_file_handler(log_dir / "audit.log", use_json)
            )

            self.match_logger = logging.getLogger(f"{name}.matches")
            self.match_logger.setLevel(logging.INFO)
            self.match_logger.addHandler(
                self._create_file_handler(log_dir / "matches.log", use_json)
            )

            error_handler = self._create_file_handler(log_dir / "errors.log", use_json)
            error_handler.setLevel(logging.ERROR)
            self.logger.addHandler(error_handler)
        else:
            self.audit_logger = self.logger
            self.match_logger = self.logger

    @staticmethod
    def _create_formatter(use_json: bool) -> logging.Formatter:
        if use_json:
            return JSONFormatter()
        return logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def _create_file_handler(self, filepath: Path, use_json: bool) -> logging.FileHandler:
        """Create a file handler with appropriate formatter."""
        handler = logging.FileHandler(filepath)
        handler.setFormatter(self._create_formatter(use_json))
        return handler

    def log_match_proposals(
        self,
        buy_count: int,
        sell_count: int,
        match_count: int,
        symbol: Optional[str] = None,
    ):
        """Log the outcome of one matching pass."""
        extra = {"match_count": match_count, "symbol": symbol or "*"}
        msg = (
            f"Matching pass: {buy_count} buys x {sell_count} sells "
            f"-> {match_count} candidate matches ({symbol or 'all symbols'})"
        )
        self.match_logger.info(msg, extra=extra)

    def log_forced_execution(
        self,
        order_id: str,
        symbol: str,
        admin_id: str,
        previous_status: str,
    ):
        """Log an administrative forced execution."""
        extra = {"order_id": order_id, "symbol": symbol, "admin_id": admin_id, "action": "force_execute"}
        msg = f"Order force-executed: {order_id} {symbol} ({previous_status} -> completed) by {admin_id}"
        self.audit_logger.warning(msg, extra=extra)

    def log_review_action(
        self,
        order_id: str,
        action: str,
        admin_id: str,
        reason: Optional[str] = None,
    ):
        """Log an approve/reject/cancel decision."""
        extra = {"order_id": order_id, "admin_id": admin_id, "action": action}
        msg = f"Order {action}: {order_id} by {admin_id}"
        if reason:
            msg += f" ({reason})"
        self.audit_logger.info(msg, extra=extra)

    def log_match_confirmation(
        self,
        buy_order_id: str,
        sell_order_id: str,
        symbol: str,
        price: Decimal,
        quantity: Decimal,
        admin_id: str,
    ):
        """Log a confirmed match."""
        extra = {"order_id": buy_order_id, "symbol": symbol, "admin_id": admin_id, "action": "confirm_match"}
        msg = (
            f"Match confirmed: {quantity} {symbol} @ {price} "
            f"(buy: {buy_order_id}, sell: {sell_order_id}) by {admin_id}"
        )
        self.audit_logger.info(msg, extra=extra)

    def log_error(
        self,
        message: str,
        exception: Optional[Exception] = None,
        **kwargs
    ):
        """Log error with optional exception."""
        if exception:
            self.logger.error(message, exc_info=exception, extra=kwargs)
        else:
            self.logger.error(message, extra=kwargs)


# Global logger instance
_logger: Optional[TradeAuditLogger] = None


def get_logger(
    name: str = "TradeAudit",
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    use_json: bool = False,
) -> TradeAuditLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        log_level: Logging level
        log_dir: Directory for log files
        use_json: Use JSON formatting

    Returns:
        TradeAuditLogger instance
    """
    global _logger

    if _logger is None:
        _logger = TradeAuditLogger(name, log_level, log_dir, use_json)

    return _logger
