#!/usr/bin/env python3
"""Console entry point: python -m atm_ledger"""

import sys

from .atm import ATMSession, WELCOME_TEXT
from .config import get_config
from .ledger import AccountLedger
from .logging_config import setup_logging


def main() -> int:
    """Run an ATM session on stdin/stdout"""
    config = get_config()
    setup_logging(config.log_level, config.log_format)

    ledger = AccountLedger.from_config(config)
    session = ATMSession(
        ledger,
        max_pin_attempts=config.max_pin_attempts,
        pin_min_length=config.pin_min_length
    )

    print(WELCOME_TEXT)
    while not session.is_finished:
        print()
        print(session.prompt)
        try:
            line = input("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        output = session.handle(line)
        if output:
            print(output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
