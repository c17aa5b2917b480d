"""
PIN Module

PIN format rules and PIN storage. The ledger compares PINs by exact,
case-sensitive equality; storage can optionally keep a salted scrypt hash
instead of the PIN itself.
"""

import hashlib
import hmac
import re
import secrets
from abc import ABC, abstractmethod
from typing import Any

DEFAULT_MIN_PIN_LENGTH = 4


def is_valid_pin_format(pin: Any, min_length: int = DEFAULT_MIN_PIN_LENGTH) -> bool:
    """
    Check that a PIN is all digits and at least min_length long

    Args:
        pin: Candidate PIN
        min_length: Minimum number of digits

    Returns:
        True if the PIN matches \\d{min_length,}
    """
    if not isinstance(pin, str):
        return False
    return re.fullmatch(r"\d{%d,}" % min_length, pin) is not None


class StoredPin(ABC):
    """Abstract holder for the account secret"""

    @abstractmethod
    def matches(self, candidate: Any) -> bool:
        """Return True iff candidate equals the stored PIN; never raises"""
        pass


class PlainPin(StoredPin):
    """PIN kept verbatim, compared in constant time"""

    def __init__(self, secret: str):
        if not secret or not isinstance(secret, str):
            raise ValueError("PIN must be a non-empty string")
        self._secret = secret

    def matches(self, candidate: Any) -> bool:
        if not isinstance(candidate, str):
            return False
        return hmac.compare_digest(candidate.encode(), self._secret.encode())

    def __repr__(self) -> str:
        return "PlainPin(****)"


class HashedPin(StoredPin):
    """PIN kept as a salted scrypt hash"""

    def __init__(self, secret: str):
        if not secret or not isinstance(secret, str):
            raise ValueError("PIN must be a non-empty string")
        self._salt = self._generate_salt()
        self._hash = self._hash_pin(secret, self._salt)

    def matches(self, candidate: Any) -> bool:
        if not isinstance(candidate, str):
            return False
        return hmac.compare_digest(self._hash_pin(candidate, self._salt), self._hash)

    def _generate_salt(self) -> str:
        """Generate random salt for PIN hashing"""
        return secrets.token_hex(16)

    def _hash_pin(self, pin: str, salt: str) -> str:
        return hashlib.scrypt(
            pin.encode(),
            salt=salt.encode(),
            n=16384, r=8, p=1
        ).hex()

    def __repr__(self) -> str:
        return "HashedPin(****)"


def make_pin(secret: str, hashed: bool = False) -> StoredPin:
    """
    Build the stored form of a PIN

    Args:
        secret: The PIN itself
        hashed: Keep a salted hash rather than the PIN

    Returns:
        StoredPin instance

    Raises:
        ValueError: If the PIN is empty or not a string
    """
    if hashed:
        return HashedPin(secret)
    return PlainPin(secret)
