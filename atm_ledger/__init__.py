"""
ATM Ledger

A single-user account simulator: balance, PIN and a bounded recent-transaction
history, with Decimal arithmetic and an optional append-only transaction log.
"""

__version__ = "1.0.0"

from .ledger import AccountLedger, TransactionResult, TransactionStatus, PinChangeOutcome
from .history import TransactionRecord, TransactionType, TransactionHistory

__all__ = [
    "AccountLedger",
    "TransactionResult",
    "TransactionStatus",
    "PinChangeOutcome",
    "TransactionRecord",
    "TransactionType",
    "TransactionHistory",
]
