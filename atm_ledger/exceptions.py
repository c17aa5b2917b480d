"""Exception hierarchy for the ATM ledger."""


class LedgerError(Exception):
    """Base exception for all ledger errors"""


class MalformedAmountError(LedgerError, ValueError):
    """Raised when text entered for an amount is not a number"""


class SinkError(LedgerError):
    """Raised when a transaction sink cannot write a record"""
