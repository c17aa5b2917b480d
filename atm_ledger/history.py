"""
Transaction History Module

Immutable transaction records and the bounded, oldest-first history the
ledger keeps in memory. When the history is full the oldest record is
evicted on insert.
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Deque, Dict, Iterator, List, Tuple

from .currency import CURRENCY_SYMBOL, format_amount

DEFAULT_HISTORY_CAPACITY = 10
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
TYPE_COLUMN_WIDTH = 17
CSV_HEADER = ["Timestamp", "Transaction Type", "Amount", "Balance After Transaction"]


class TransactionType(Enum):
    """Kinds of ledger events"""
    INITIAL_DEPOSIT = "INITIAL DEPOSIT"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    PIN_CHANGE = "PIN CHANGE"

    @property
    def label(self) -> str:
        """Display label used in history lines and the CSV log"""
        return self.value

    @property
    def sign(self) -> str:
        """'+' for credits, '-' for debits, '' for events that move no money"""
        if self in (TransactionType.DEPOSIT, TransactionType.INITIAL_DEPOSIT):
            return "+"
        if self == TransactionType.WITHDRAWAL:
            return "-"
        return ""

    @property
    def affects_balance(self) -> bool:
        return self != TransactionType.PIN_CHANGE


@dataclass(frozen=True)
class TransactionRecord:
    """
    One ledger event, immutable once created
    """
    timestamp: datetime
    transaction_type: TransactionType
    amount: Decimal
    balance_after: Decimal

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError("Transaction amount cannot be negative")
        if self.balance_after < 0:
            raise ValueError("Balance after transaction cannot be negative")

    @property
    def sign(self) -> str:
        return self.transaction_type.sign

    @property
    def formatted_timestamp(self) -> str:
        return self.timestamp.strftime(TIMESTAMP_FORMAT)

    def format_line(self) -> str:
        """
        Render the record for column display

        Returns:
            e.g. '2026-10-16 09:30:00 | DEPOSIT           | +$200.50'
        """
        sign = self.sign or " "
        return (
            f"{self.formatted_timestamp} | "
            f"{self.transaction_type.label:<{TYPE_COLUMN_WIDTH}} | "
            f"{sign}{CURRENCY_SYMBOL}{format_amount(self.amount)}"
        )

    def to_csv_row(self) -> List[str]:
        """Fields in CSV_HEADER order"""
        return [
            self.formatted_timestamp,
            self.transaction_type.label,
            format_amount(self.amount),
            format_amount(self.balance_after),
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary"""
        return {
            "timestamp": self.timestamp.isoformat(),
            "transaction_type": self.transaction_type.name,
            "amount": str(self.amount),
            "sign": self.sign,
            "balance_after": str(self.balance_after),
        }


class TransactionHistory:
    """
    Capacity-bounded FIFO of transaction records, oldest first
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self._capacity = capacity
        self._records: Deque[TransactionRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, record: TransactionRecord) -> None:
        """Add a record, evicting the oldest one when full"""
        self._records.append(record)

    def snapshot(self) -> Tuple[TransactionRecord, ...]:
        """Read-only copy in insertion order"""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TransactionRecord]:
        return iter(self.snapshot())
