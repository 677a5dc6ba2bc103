"""Typed access to the ``[custom]`` constants of the domain configuration.

Protean exposes each custom constant as an attribute of the domain, after
``${ENV|default}`` substitution, so values may arrive as strings.
"""

from protean.utils.globals import current_domain

_DEFAULTS = {
    "DELIVERY_FEE": 500.0,
    "REFUND_MINIMUM_AMOUNT": 1000.0,
    "PAYMENT_TIMEOUT_SECONDS": 900,
    "DEFAULT_CURRENCY": "XAF",
}


def _setting(name):
    return getattr(current_domain, name, _DEFAULTS[name])


def delivery_fee() -> float:
    return float(_setting("DELIVERY_FEE"))


def refund_minimum_amount() -> float:
    return float(_setting("REFUND_MINIMUM_AMOUNT"))


def payment_timeout_seconds() -> int:
    return int(_setting("PAYMENT_TIMEOUT_SECONDS"))


def default_currency() -> str:
    return str(_setting("DEFAULT_CURRENCY"))
