"""Runtime settings for checkout, read from the environment.

Protean's own configuration (providers, event processing) is selected by
``PROTEAN_ENV``; the values here only shape money handling and the usage
ledger's retry budget.
"""

import os

DEFAULT_CURRENCY = "VND"
DEFAULT_CURRENCY_EXPONENT = 0
DEFAULT_MAX_RESERVATION_ATTEMPTS = 3


def get_currency() -> str:
    return os.getenv("CHECKOUT_CURRENCY", DEFAULT_CURRENCY).upper()


def get_currency_exponent() -> int:
    """Number of decimal places in the currency's smallest unit (0 for VND, 2 for USD)."""
    return int(os.getenv("CHECKOUT_CURRENCY_EXPONENT", DEFAULT_CURRENCY_EXPONENT))


def get_max_reservation_attempts() -> int:
    attempts = int(os.getenv("CHECKOUT_MAX_RESERVATION_ATTEMPTS", DEFAULT_MAX_RESERVATION_ATTEMPTS))
    return max(attempts, 1)
