"""
ATM Session Module

Text-driven presentation layer over AccountLedger. The session is an explicit
finite-state machine: each call to handle() consumes one line of user input,
performs at most one ledger operation and returns the text to display. Every
menu action asks for the PIN first; too many wrong PINs lock the session.
"""

from enum import Enum
from typing import Callable, Dict, Optional
import logging

from .currency import format_money, parse_amount
from .exceptions import MalformedAmountError
from .ledger import AccountLedger, PinChangeOutcome
from .pin import DEFAULT_MIN_PIN_LENGTH, is_valid_pin_format

logger = logging.getLogger("atm_ledger.atm")

DEFAULT_MAX_PIN_ATTEMPTS = 3

WELCOME_TEXT = "Welcome to the ATM!\n\nPlease select an option."


class ATMState(Enum):
    """Screens the session can be on"""
    MENU = "menu"
    AWAITING_PIN = "awaiting_pin"
    AWAITING_DEPOSIT_AMOUNT = "awaiting_deposit_amount"
    AWAITING_WITHDRAW_AMOUNT = "awaiting_withdraw_amount"
    AWAITING_OLD_PIN = "awaiting_old_pin"
    AWAITING_NEW_PIN = "awaiting_new_pin"
    LOCKED = "locked"
    EXITED = "exited"


class MenuOption(Enum):
    """Menu entries keyed by the digit the user types"""
    CHECK_BALANCE = ("1", "Check Balance")
    DEPOSIT = ("2", "Deposit")
    WITHDRAW = ("3", "Withdraw")
    HISTORY = ("4", "Transaction History")
    CHANGE_PIN = ("5", "Change PIN")
    EXIT = ("6", "Exit")

    def __init__(self, key: str, title: str):
        self.key = key
        self.title = title

    @classmethod
    def from_key(cls, key: str) -> Optional['MenuOption']:
        for option in cls:
            if option.key == key:
                return option
        return None


PROMPTS = {
    ATMState.MENU: "\n".join(f"{o.key}. {o.title}" for o in MenuOption),
    ATMState.AWAITING_PIN: "Enter PIN:",
    ATMState.AWAITING_DEPOSIT_AMOUNT: "Enter amount to deposit:",
    ATMState.AWAITING_WITHDRAW_AMOUNT: "Enter amount to withdraw:",
    ATMState.AWAITING_OLD_PIN: "Enter OLD PIN:",
    ATMState.AWAITING_NEW_PIN: "Enter NEW PIN:",
    ATMState.LOCKED: "",
    ATMState.EXITED: "",
}


class ATMSession:
    """
    One user's interaction with the ATM
    """

    def __init__(self, ledger: AccountLedger,
                 max_pin_attempts: int = DEFAULT_MAX_PIN_ATTEMPTS,
                 pin_min_length: int = DEFAULT_MIN_PIN_LENGTH):
        self.ledger = ledger
        self.max_pin_attempts = max_pin_attempts
        self.pin_min_length = pin_min_length
        self.state = ATMState.MENU
        self.pin_attempts = 0
        self._pending: Optional[MenuOption] = None
        self._old_pin: Optional[str] = None

        self._actions: Dict[MenuOption, Callable[[], str]] = {
            MenuOption.CHECK_BALANCE: self._check_balance,
            MenuOption.DEPOSIT: lambda: self._goto(ATMState.AWAITING_DEPOSIT_AMOUNT, ""),
            MenuOption.WITHDRAW: lambda: self._goto(ATMState.AWAITING_WITHDRAW_AMOUNT, ""),
            MenuOption.HISTORY: self._show_history,
            MenuOption.CHANGE_PIN: lambda: self._goto(ATMState.AWAITING_OLD_PIN, ""),
        }

    @property
    def prompt(self) -> str:
        """Text asking for the next input"""
        return PROMPTS[self.state]

    @property
    def is_finished(self) -> bool:
        return self.state in (ATMState.LOCKED, ATMState.EXITED)

    def handle(self, text: Optional[str]) -> str:
        """
        Consume one line of input and return the screen text

        Empty input at any prompt cancels back to the menu.
        """
        if self.is_finished:
            return ""

        value = (text or "").strip()

        if self.state == ATMState.MENU:
            return self._select(value)

        if not value:
            self._pending = None
            self._old_pin = None
            return self._goto(ATMState.MENU, "Operation cancelled.")

        if self.state == ATMState.AWAITING_PIN:
            return self._enter_pin(value)
        if self.state == ATMState.AWAITING_DEPOSIT_AMOUNT:
            return self._deposit(value)
        if self.state == ATMState.AWAITING_WITHDRAW_AMOUNT:
            return self._withdraw(value)
        if self.state == ATMState.AWAITING_OLD_PIN:
            return self._enter_old_pin(value)
        if self.state == ATMState.AWAITING_NEW_PIN:
            return self._enter_new_pin(value)

        raise RuntimeError(f"Unhandled ATM state: {self.state}")

    def _goto(self, state: ATMState, message: str) -> str:
        self.state = state
        return message

    def _select(self, key: str) -> str:
        option = MenuOption.from_key(key)
        if option is None:
            return "Please select an option."
        if option == MenuOption.EXIT:
            return self._goto(ATMState.EXITED, "Thank you for using the ATM. Goodbye!")

        self._pending = option
        return self._goto(ATMState.AWAITING_PIN, "")

    def _enter_pin(self, pin: str) -> str:
        if self.ledger.validate_pin(pin):
            self.pin_attempts = 0
            option, self._pending = self._pending, None
            self.state = ATMState.MENU
            result = self._actions[option]()
            return f"PIN accepted.\n{result}" if result else "PIN accepted."

        self.pin_attempts += 1
        if self.pin_attempts >= self.max_pin_attempts:
            logger.warning("Session locked after repeated incorrect PIN entries")
            self._pending = None
            return self._goto(ATMState.LOCKED, "Too many incorrect attempts.\nAccount locked. Exiting.")

        self._pending = None
        remaining = self.max_pin_attempts - self.pin_attempts
        return self._goto(ATMState.MENU, f"Incorrect PIN. Attempts remaining: {remaining}")

    def _check_balance(self) -> str:
        return f"Your current balance is: {format_money(self.ledger.get_balance())}"

    def _show_history(self) -> str:
        lines = self.ledger.get_history_lines()
        if not lines:
            return "No transaction history found."
        return "\n".join(["--- Transaction History ---"] + list(reversed(lines)))

    def _deposit(self, text: str) -> str:
        return self._apply_amount(text, self.ledger.deposit)

    def _withdraw(self, text: str) -> str:
        return self._apply_amount(text, self.ledger.withdraw)

    def _apply_amount(self, text: str, operation) -> str:
        self.state = ATMState.MENU
        try:
            amount = parse_amount(text)
        except MalformedAmountError:
            return "Invalid amount."

        result = operation(amount)
        return f"{result.message}\nNew balance: {format_money(result.new_balance)}"

    def _enter_old_pin(self, pin: str) -> str:
        if not self.ledger.validate_pin(pin):
            return self._goto(ATMState.MENU, "Incorrect old PIN.")
        self._old_pin = pin
        return self._goto(ATMState.AWAITING_NEW_PIN, "")

    def _enter_new_pin(self, pin: str) -> str:
        old_pin, self._old_pin = self._old_pin, None
        self.state = ATMState.MENU

        if not is_valid_pin_format(pin, self.pin_min_length):
            return f"Invalid PIN format. Must be at least {self.pin_min_length} digits."

        outcome = self.ledger.try_change_pin(old_pin, pin)
        if outcome == PinChangeOutcome.CHANGED:
            return "PIN changed successfully."
        if outcome == PinChangeOutcome.PIN_MISMATCH:
            return "Incorrect old PIN."
        return f"Invalid PIN format. Must be at least {self.pin_min_length} digits."
