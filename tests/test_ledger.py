"""
Test suite for the account ledger

Tests balance arithmetic, PIN gating and bounded history.
CRITICAL: Validates that the balance never goes negative and rejected
requests leave no trace.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timedelta

from atm_ledger.currency import MAX_BALANCE
from atm_ledger.exceptions import SinkError
from atm_ledger.history import TransactionType
from atm_ledger.ledger import (
    AccountLedger, TransactionStatus, PinChangeOutcome, TransactionResult
)
from atm_ledger.sinks import InMemorySink, TransactionSink


class FailingSink(TransactionSink):
    """Sink that always fails, like a log on a read-only disk"""

    def __init__(self, error: Exception):
        self.error = error
        self.attempts = 0

    def write(self, record):
        self.attempts += 1
        raise self.error


class StepClock:
    """Deterministic clock advancing one second per call"""

    def __init__(self):
        self.now = datetime(2026, 10, 16, 9, 30, 0)

    def __call__(self):
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@pytest.fixture
def account():
    return AccountLedger(Decimal('1000.00'), "1015")


class TestConstruction:
    """Test ledger creation"""

    def test_positive_initial_balance(self, account):
        """Test seed balance is kept and recorded"""
        assert account.get_balance() == Decimal('1000.00')
        history = account.get_history()
        assert len(history) == 1
        assert history[0].transaction_type == TransactionType.INITIAL_DEPOSIT
        assert history[0].amount == Decimal('1000.00')
        assert history[0].sign == "+"
        assert history[0].balance_after == Decimal('1000.00')

    @pytest.mark.parametrize("initial", [Decimal('-50.00'), -1, "-0.01"])
    def test_negative_initial_balance_clamped(self, initial):
        """Test negative seed balance becomes zero with no history"""
        account = AccountLedger(initial, "1015")
        assert account.get_balance() == Decimal('0.00')
        assert account.get_history() == ()

    def test_zero_initial_balance_has_empty_history(self):
        account = AccountLedger(0, "1015")
        assert account.get_balance() == Decimal('0')
        assert len(account.get_history()) == 0

    def test_float_initial_balance_is_exact(self):
        """Test floats are converted through their decimal text"""
        account = AccountLedger(200.1, "1015")
        assert account.get_balance() == Decimal('200.10')

    @pytest.mark.parametrize("pin", ["", None])
    def test_empty_pin_rejected(self, pin):
        with pytest.raises(ValueError, match="PIN must be a non-empty string"):
            AccountLedger(100, pin)

    def test_invalid_capacity_rejected(self):
        with pytest.raises(ValueError, match="at least 1"):
            AccountLedger(100, "1015", history_capacity=0)

    def test_non_finite_balance_rejected(self):
        with pytest.raises(ValueError):
            AccountLedger(float('nan'), "1015")

    def test_initial_deposit_sent_to_sink(self):
        sink = InMemorySink()
        AccountLedger(Decimal('250.00'), "1015", sink=sink)
        assert [r.transaction_type for r in sink.records] == [TransactionType.INITIAL_DEPOSIT]


class TestPinValidation:
    """Test PIN checks"""

    @pytest.mark.parametrize("candidate, expected", [
        ("1015", True),
        ("0000", False),
        ("abcd", False),
        ("", False),
        (" 1015", False),
        ("10150", False),
        (None, False),
        (1015, False),
    ])
    def test_validate_pin(self, account, candidate, expected):
        assert account.validate_pin(candidate) is expected

    def test_validate_pin_is_case_sensitive(self):
        account = AccountLedger(0, "AbCd", enforce_pin_format=False)
        assert account.validate_pin("AbCd")
        assert not account.validate_pin("abcd")

    def test_hashed_pin_validation(self):
        account = AccountLedger(0, "1015", hash_pin=True)
        assert account.validate_pin("1015")
        assert not account.validate_pin("1016")


class TestChangePin:
    """Test PIN change"""

    def test_change_pin_success(self, account):
        """Test new PIN works and old one stops working"""
        assert account.change_pin("1015", "9876") is True
        assert account.validate_pin("9876")
        assert not account.validate_pin("1015")

    def test_change_pin_wrong_old_pin(self, account):
        """Test wrong old PIN leaves PIN unchanged"""
        assert account.change_pin("0000", "9876") is False
        assert not account.validate_pin("9876")
        assert account.validate_pin("1015")

    @pytest.mark.parametrize("new_pin", ["", None, "123", "12a4", "abcd", "12 34"])
    def test_change_pin_invalid_format(self, account, new_pin):
        assert account.try_change_pin("1015", new_pin) == PinChangeOutcome.INVALID_PIN_FORMAT
        assert account.change_pin("1015", new_pin) is False
        assert account.validate_pin("1015")

    def test_change_pin_outcomes(self, account):
        assert account.try_change_pin("9999", "4321") == PinChangeOutcome.PIN_MISMATCH
        assert account.try_change_pin("1015", "4321") == PinChangeOutcome.CHANGED

    def test_change_pin_without_format_enforcement(self):
        """Test baseline behavior trusts the caller on format"""
        account = AccountLedger(0, "1015", enforce_pin_format=False)
        assert account.change_pin("1015", "ab")
        assert account.validate_pin("ab")
        # Empty PIN is still refused
        assert not account.change_pin("ab", "")
        assert account.validate_pin("ab")

    def test_custom_min_length(self):
        account = AccountLedger(0, "123456", pin_min_length=6)
        assert not account.change_pin("123456", "1234")
        assert account.change_pin("123456", "654321")

    def test_change_pin_with_hashed_storage(self):
        account = AccountLedger(0, "1015", hash_pin=True)
        assert account.change_pin("1015", "2468")
        assert account.validate_pin("2468")
        assert not account.validate_pin("1015")

    def test_pin_change_logged_to_sink_not_history(self, account):
        """Test PIN change goes to the sink but not the balance history"""
        sink = InMemorySink()
        account = AccountLedger(Decimal('500.00'), "1015", sink=sink)

        account.change_pin("1015", "9999")

        assert len(account.get_history()) == 1
        last = sink.records[-1]
        assert last.transaction_type == TransactionType.PIN_CHANGE
        assert last.amount == Decimal('0')
        assert last.sign == ""
        assert last.balance_after == Decimal('500.00')

    def test_failed_pin_change_not_logged(self):
        sink = InMemorySink()
        account = AccountLedger(0, "1015", sink=sink)
        account.change_pin("0000", "9999")
        account.change_pin("1015", "99")
        assert sink.records == []


class TestDeposit:
    """Test deposits"""

    def test_valid_deposit(self, account):
        result = account.deposit(Decimal('200.50'))

        assert isinstance(result, TransactionResult)
        assert result.success
        assert result.status == TransactionStatus.OK
        assert result.message == "Successfully deposited $200.50"
        assert result.new_balance == Decimal('1200.50')
        assert account.get_balance() == Decimal('1200.50')

        last = account.get_history()[-1]
        assert last.transaction_type == TransactionType.DEPOSIT
        assert last.sign == "+"
        assert last.amount == Decimal('200.50')
        assert last.balance_after == Decimal('1200.50')

    @pytest.mark.parametrize("amount", [Decimal('-100.00'), 0, 0.0, "-0.01"])
    def test_invalid_deposit(self, account, amount):
        result = account.deposit(amount)

        assert not result.success
        assert result.status == TransactionStatus.INVALID_AMOUNT
        assert result.message == "Deposit amount must be positive."
        assert result.new_balance == Decimal('1000.00')
        assert account.get_balance() == Decimal('1000.00')
        assert len(account.get_history()) == 1

    def test_sub_cent_deposit_rounds_to_zero_and_is_rejected(self, account):
        result = account.deposit(Decimal('0.004'))
        assert result.status == TransactionStatus.INVALID_AMOUNT

    def test_non_finite_deposit_raises(self, account):
        with pytest.raises(ValueError):
            account.deposit(float('inf'))
        assert account.get_balance() == Decimal('1000.00')

    def test_str_of_result_is_message(self, account):
        assert str(account.deposit(5)) == "Successfully deposited $5.00"

    def test_large_deposit_message_uses_thousands_separator(self, account):
        result = account.deposit(Decimal('12345.60'))
        assert result.message == "Successfully deposited $12,345.60"


class TestWithdraw:
    """Test withdrawals"""

    def test_valid_withdraw(self, account):
        result = account.withdraw(Decimal('300.00'))

        assert result.success
        assert result.message == "Successfully withdrew $300.00"
        assert account.get_balance() == Decimal('700.00')

        last = account.get_history()[-1]
        assert last.transaction_type == TransactionType.WITHDRAWAL
        assert last.sign == "-"
        assert last.balance_after == Decimal('700.00')

    def test_withdraw_entire_balance(self, account):
        result = account.withdraw(Decimal('1000.00'))
        assert result.success
        assert account.get_balance() == Decimal('0.00')

    @pytest.mark.parametrize("amount", [Decimal('-200.00'), 0])
    def test_non_positive_withdraw(self, account, amount):
        result = account.withdraw(amount)

        assert result.status == TransactionStatus.INVALID_AMOUNT
        assert result.message == "Withdrawal amount must be positive."
        assert account.get_balance() == Decimal('1000.00')
        assert len(account.get_history()) == 1

    def test_insufficient_funds(self, account):
        result = account.withdraw(Decimal('1500.00'))

        assert result.status == TransactionStatus.INSUFFICIENT_FUNDS
        assert result.message == "Insufficient funds."
        assert result.new_balance == Decimal('1000.00')
        assert account.get_balance() == Decimal('1000.00')
        assert len(account.get_history()) == 1

    def test_overdraw_by_one_cent(self, account):
        result = account.withdraw(Decimal('1000.01'))
        assert result.status == TransactionStatus.INSUFFICIENT_FUNDS


class TestBalanceLimits:
    """Test amounts too large for exact cent arithmetic"""

    def test_deposit_past_max_balance_rejected(self, account):
        result = account.deposit(Decimal('99999999999999999999999999.99'))

        assert result.status == TransactionStatus.INVALID_AMOUNT
        assert result.message == "Deposit would exceed the maximum balance."
        assert account.get_balance() == Decimal('1000.00')
        assert len(account.get_history()) == 1

    def test_deposits_up_to_max_balance_stay_exact(self):
        account = AccountLedger(MAX_BALANCE - Decimal('0.02'), "1015")

        assert account.deposit(Decimal('0.01')).success
        assert account.deposit(Decimal('0.01')).success
        assert account.get_balance() == MAX_BALANCE

        result = account.deposit(Decimal('0.01'))
        assert result.status == TransactionStatus.INVALID_AMOUNT
        assert account.get_balance() == MAX_BALANCE

    @pytest.mark.parametrize("amount", [Decimal('1e27'), "9" * 30, 10 ** 40])
    def test_amount_beyond_decimal_precision_raises_value_error(self, account, amount):
        with pytest.raises(ValueError, match="too many digits"):
            account.deposit(amount)
        with pytest.raises(ValueError, match="too many digits"):
            account.withdraw(amount)
        assert account.get_balance() == Decimal('1000.00')

    def test_large_withdrawal_is_insufficient_funds(self, account):
        result = account.withdraw(Decimal('99999999999999999999999999.99'))
        assert result.status == TransactionStatus.INSUFFICIENT_FUNDS

    def test_initial_balance_above_max_rejected(self):
        with pytest.raises(ValueError, match="Initial balance cannot exceed"):
            AccountLedger(MAX_BALANCE + Decimal('0.01'), "1015")


class TestHistory:
    """Test bounded history"""

    def test_history_capped_at_ten(self):
        account = AccountLedger(0, "1015")
        for i in range(1, 12):
            account.deposit(i)

        history = account.get_history()
        assert len(history) == 10
        assert [r.amount for r in history] == [Decimal(i) for i in range(2, 12)]

    def test_initial_deposit_evicted_first(self, account):
        for _ in range(10):
            account.deposit(1)

        history = account.get_history()
        assert len(history) == 10
        assert all(r.transaction_type == TransactionType.DEPOSIT for r in history)

    def test_custom_capacity(self):
        account = AccountLedger(0, "1015", history_capacity=3)
        for i in range(1, 6):
            account.deposit(i)
        assert [r.amount for r in account.get_history()] == [Decimal(3), Decimal(4), Decimal(5)]
        assert account.history_capacity == 3

    def test_history_is_read_only_snapshot(self, account):
        history = account.get_history()
        assert isinstance(history, tuple)

        account.deposit(10)
        assert len(history) == 1
        assert len(account.get_history()) == 2

    def test_history_lines(self):
        account = AccountLedger(Decimal('1000.00'), "1015", clock=StepClock())
        account.deposit(Decimal('200.50'))
        account.withdraw(Decimal('300.00'))

        assert account.get_history_lines() == [
            "2026-10-16 09:30:00 | INITIAL DEPOSIT   | +$1000.00",
            "2026-10-16 09:30:01 | DEPOSIT           | +$200.50",
            "2026-10-16 09:30:02 | WITHDRAWAL        | -$300.00",
        ]


class TestSinkFailures:
    """Test that sink failures never affect the ledger"""

    @pytest.mark.parametrize("error", [
        SinkError("disk full"),
        OSError("read-only"),
        TypeError("delimiter must be a 1-character string"),
        RuntimeError("broker unavailable"),
    ])
    def test_failed_sink_keeps_state(self, error, caplog):
        sink = FailingSink(error)
        account = AccountLedger(Decimal('100.00'), "1015", sink=sink)

        with caplog.at_level("ERROR", logger="atm_ledger.ledger"):
            result = account.deposit(Decimal('50.00'))

        assert result.success
        assert account.get_balance() == Decimal('150.00')
        assert len(account.get_history()) == 2
        assert sink.attempts == 2
        assert "Failed to write transaction to sink" in caplog.text

    def test_failed_sink_on_pin_change(self):
        account = AccountLedger(0, "1015", sink=FailingSink(SinkError("boom")))
        assert account.change_pin("1015", "2222")
        assert account.validate_pin("2222")


class TestScenario:
    """End-to-end scenario from a fresh account"""

    def test_atm_session_scenario(self):
        account = AccountLedger(Decimal('1000.00'), "1015")
        assert account.get_balance() == Decimal('1000.00')
        assert len(account.get_history()) == 1

        account.deposit(Decimal('200.50'))
        assert account.get_balance() == Decimal('1200.50')
        assert len(account.get_history()) == 2

        result = account.withdraw(Decimal('300.00'))
        assert account.get_balance() == Decimal('900.50')
        assert result.success

        result = account.withdraw(5000)
        assert account.get_balance() == Decimal('900.50')
        assert result.message == "Insufficient funds."

        assert account.change_pin("1015", "9999")
        assert account.validate_pin("1015") is False
        assert account.validate_pin("9999") is True
