"""
Structured Logging Configuration Module

JSON or text logging for ledger operations. Ledger events carry the amount,
resulting balance and outcome status as first-class fields; PINs are never
logged.
"""

import logging
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

# Record attributes promoted to top-level JSON keys
LEDGER_FIELDS = ("action", "resource", "amount", "balance", "status")

DEFAULT_RESOURCE = "account"

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, ledger fields at the top level"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in LEDGER_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value

        extra = getattr(record, 'extra', None)
        if extra:
            log_entry["extra"] = extra

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", log_format: str = "json",
                  logger_name: str = "atm_ledger") -> logging.Logger:
    """
    Setup logging for the ledger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "json" for structured output, "text" for human-readable lines
        logger_name: Root of the logger tree to configure

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Handled here; do not repeat through the root logger
    logger.propagate = False

    return logger


def get_logger(name: str = "atm_ledger") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               action: Optional[str] = None, resource: str = DEFAULT_RESOURCE,
               amount: Optional[Decimal] = None, balance: Optional[Decimal] = None,
               status: Optional[str] = None, extra: Optional[dict] = None):
    """
    Log a ledger event with structured fields.

    Args:
        logger: Logger instance
        level: Log level name (info, warning, error, ...)
        message: Log message
        action: Ledger operation (deposit, withdraw, change_pin, ...)
        resource: Part of the account touched (balance, pin); "account" by default
        amount: Amount requested, logged as a string to keep cents exact
        balance: Balance after the operation
        status: Outcome status value for rejected requests
        extra: Any other structured data
    """
    log_level = getattr(logging, level.upper())
    if not logger.isEnabledFor(log_level):
        return

    record = logger.makeRecord(
        logger.name, log_level,
        __name__, 0, message, (), None
    )

    record.action = action
    record.resource = resource
    record.amount = str(amount) if amount is not None else None
    record.balance = str(balance) if balance is not None else None
    record.status = status
    if extra:
        record.extra = extra

    logger.handle(record)
