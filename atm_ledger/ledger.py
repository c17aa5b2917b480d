"""
Account Ledger Engine

Owns the account's balance, PIN and bounded recent history. Every mutating
operation validates fully, then mutates, then records, so a rejected request
never leaves a partial update behind. Outcomes such as insufficient funds are
returned as results rather than raised.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple
import logging

from .currency import AmountLike, MAX_BALANCE, ZERO, format_money, to_decimal
from .history import (
    DEFAULT_HISTORY_CAPACITY, TransactionHistory, TransactionRecord, TransactionType
)
from .logging_config import log_action
from .pin import DEFAULT_MIN_PIN_LENGTH, StoredPin, is_valid_pin_format, make_pin
from .sinks import CsvFileSink, NullSink, TransactionSink

logger = logging.getLogger("atm_ledger.ledger")


class TransactionStatus(Enum):
    """Outcome of a deposit or withdrawal"""
    OK = "ok"
    INVALID_AMOUNT = "invalid_amount"          # Non-positive, or deposit past MAX_BALANCE
    INSUFFICIENT_FUNDS = "insufficient_funds"  # Withdrawal exceeds balance


class PinChangeOutcome(Enum):
    """Outcome of a PIN change request"""
    CHANGED = "changed"
    PIN_MISMATCH = "pin_mismatch"
    INVALID_PIN_FORMAT = "invalid_pin_format"


@dataclass(frozen=True)
class TransactionResult:
    """Message for the caller plus the balance after the request"""
    status: TransactionStatus
    message: str
    new_balance: Decimal

    @property
    def success(self) -> bool:
        return self.status == TransactionStatus.OK

    def __str__(self) -> str:
        return self.message


class AccountLedger:
    """
    Single-account ledger with PIN gating and a bounded transaction history

    Not thread-safe: callers that share an instance across threads must
    serialize access themselves.
    """

    def __init__(
        self,
        initial_balance: AmountLike,
        pin: str,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        sink: Optional[TransactionSink] = None,
        enforce_pin_format: bool = True,
        pin_min_length: int = DEFAULT_MIN_PIN_LENGTH,
        hash_pin: bool = False,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Create the account

        Args:
            initial_balance: Seed balance; negative values are clamped to zero
            pin: Account PIN, stored verbatim unless hash_pin is set
            history_capacity: Number of recent records kept in memory
            sink: Optional append-only log for every record
            enforce_pin_format: Reject new PINs that are not all digits
            pin_min_length: Minimum digits for a new PIN
            hash_pin: Keep a salted hash instead of the PIN
            clock: Source of record timestamps (defaults to datetime.now)

        Raises:
            ValueError: If the PIN is empty, the balance is not a finite
                number or exceeds MAX_BALANCE, or the capacity is below one
        """
        amount = to_decimal(initial_balance)
        if amount > MAX_BALANCE:
            raise ValueError(f"Initial balance cannot exceed {format_money(MAX_BALANCE)}")

        self._pin: StoredPin = make_pin(pin, hashed=hash_pin)
        self._hash_pin = hash_pin
        self._history = TransactionHistory(history_capacity)
        self._sink = sink or NullSink()
        self._enforce_pin_format = enforce_pin_format
        self._pin_min_length = pin_min_length
        self._clock = clock or datetime.now
        self._balance = max(ZERO, amount)

        if self._balance > ZERO:
            self._record(TransactionType.INITIAL_DEPOSIT, self._balance)

    @classmethod
    def from_config(cls, config, sink: Optional[TransactionSink] = None) -> 'AccountLedger':
        """
        Build a ledger from LedgerConfig settings

        A CSV sink is attached when config.history_file is set and no sink
        is passed explicitly.
        """
        if sink is None and config.history_file:
            sink = CsvFileSink(config.history_file, delimiter=config.csv_delimiter)

        return cls(
            initial_balance=config.initial_balance,
            pin=config.initial_pin,
            history_capacity=config.history_capacity,
            sink=sink,
            enforce_pin_format=config.enforce_pin_format,
            pin_min_length=config.pin_min_length,
            hash_pin=config.hash_pin
        )

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def history_capacity(self) -> int:
        return self._history.capacity

    def get_balance(self) -> Decimal:
        """Current balance"""
        return self._balance

    def get_history(self) -> Tuple[TransactionRecord, ...]:
        """Recent balance-affecting records, oldest first"""
        return self._history.snapshot()

    def get_history_lines(self) -> List[str]:
        """Recent records formatted for display, oldest first"""
        return [record.format_line() for record in self._history]

    def validate_pin(self, candidate: Any) -> bool:
        """
        Check a PIN against the stored one

        Exact, case-sensitive comparison. None or non-string input returns
        False rather than raising.
        """
        return self._pin.matches(candidate)

    def try_change_pin(self, old_pin: Any, new_pin: Any) -> PinChangeOutcome:
        """
        Replace the PIN, reporting why a change was refused

        Args:
            old_pin: Current PIN
            new_pin: Replacement PIN

        Returns:
            PinChangeOutcome describing the result
        """
        if not self.validate_pin(old_pin):
            log_action(logger, "warning", "PIN change rejected: old PIN mismatch",
                       action="change_pin", resource="pin")
            return PinChangeOutcome.PIN_MISMATCH

        if not new_pin or not isinstance(new_pin, str):
            log_action(logger, "warning", "PIN change rejected: empty PIN",
                       action="change_pin", resource="pin")
            return PinChangeOutcome.INVALID_PIN_FORMAT

        if self._enforce_pin_format and not is_valid_pin_format(new_pin, self._pin_min_length):
            log_action(logger, "warning", "PIN change rejected: invalid format",
                       action="change_pin", resource="pin")
            return PinChangeOutcome.INVALID_PIN_FORMAT

        self._pin = make_pin(new_pin, hashed=self._hash_pin)
        self._record(TransactionType.PIN_CHANGE, ZERO)
        log_action(logger, "info", "PIN changed", action="change_pin", resource="pin")
        return PinChangeOutcome.CHANGED

    def change_pin(self, old_pin: Any, new_pin: Any) -> bool:
        """Replace the PIN; True on success, False with no change otherwise"""
        return self.try_change_pin(old_pin, new_pin) == PinChangeOutcome.CHANGED

    def deposit(self, amount: AmountLike) -> TransactionResult:
        """
        Add funds to the account

        Args:
            amount: Finite number; non-positive amounts and amounts that
                would push the balance past MAX_BALANCE are rejected

        Returns:
            TransactionResult with message and resulting balance

        Raises:
            ValueError: If amount is not a finite number
        """
        value = to_decimal(amount)

        if value <= ZERO:
            return self._reject(TransactionStatus.INVALID_AMOUNT,
                                "Deposit amount must be positive.", "deposit", value)

        if self._balance + value > MAX_BALANCE:
            return self._reject(TransactionStatus.INVALID_AMOUNT,
                                "Deposit would exceed the maximum balance.", "deposit", value)

        self._balance += value
        self._record(TransactionType.DEPOSIT, value)

        log_action(logger, "info", "Deposit posted", action="deposit", resource="balance",
                   amount=value, balance=self._balance)
        return TransactionResult(
            status=TransactionStatus.OK,
            message=f"Successfully deposited {format_money(value)}",
            new_balance=self._balance
        )

    def withdraw(self, amount: AmountLike) -> TransactionResult:
        """
        Remove funds from the account

        Args:
            amount: Finite number; must be positive and not exceed the balance

        Returns:
            TransactionResult with message and resulting balance

        Raises:
            ValueError: If amount is not a finite number
        """
        value = to_decimal(amount)

        if value <= ZERO:
            return self._reject(TransactionStatus.INVALID_AMOUNT,
                                "Withdrawal amount must be positive.", "withdraw", value)

        if value > self._balance:
            return self._reject(TransactionStatus.INSUFFICIENT_FUNDS,
                                "Insufficient funds.", "withdraw", value)

        self._balance -= value
        self._record(TransactionType.WITHDRAWAL, value)

        log_action(logger, "info", "Withdrawal posted", action="withdraw", resource="balance",
                   amount=value, balance=self._balance)
        return TransactionResult(
            status=TransactionStatus.OK,
            message=f"Successfully withdrew {format_money(value)}",
            new_balance=self._balance
        )

    def _reject(self, status: TransactionStatus, message: str,
                action: str, amount: Decimal) -> TransactionResult:
        log_action(logger, "warning", message, action=action, resource="balance",
                   amount=amount, balance=self._balance, status=status.value)
        return TransactionResult(status=status, message=message, new_balance=self._balance)

    def _record(self, transaction_type: TransactionType, amount: Decimal) -> TransactionRecord:
        """Create a record, keep it if it moved money, and hand it to the sink"""
        record = TransactionRecord(
            timestamp=self._clock(),
            transaction_type=transaction_type,
            amount=amount,
            balance_after=self._balance
        )

        if transaction_type.affects_balance:
            self._history.append(record)

        try:
            self._sink.write(record)
        except Exception as e:
            # State is already updated; the log is best-effort
            logger.error(f"Failed to write transaction to sink: {e}", exc_info=True)

        return record

    def __repr__(self) -> str:
        return f"AccountLedger(balance={self._balance}, history={len(self._history)})"
