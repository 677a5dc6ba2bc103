"""Payer phone number validation and normalization (MSISDN format).

Numbers are checked against the pattern of the payer's country code before
any gateway call; unknown countries fall back to a generic 9-15 digit rule.
"""

import os
import re

DEFAULT_COUNTRY_CODE = "242"

COUNTRY_PATTERNS = {
    "237": re.compile(r"^(237)?[67][0-9]{8}$"),  # Cameroon
    "225": re.compile(r"^(225)?[0-9]{10}$"),  # Côte d'Ivoire
    "243": re.compile(r"^(243)?[89][0-9]{8}$"),  # DR Congo
    "242": re.compile(r"^(242)?[0-9]{9}$"),  # Congo
}

FALLBACK_PATTERN = re.compile(r"^[0-9]{9,15}$")


class InvalidPhoneNumber(ValueError):
    pass


def _clean(phone: str) -> str:
    cleaned = re.sub(r"\s", "", phone or "")
    return cleaned[1:] if cleaned.startswith("+") else cleaned


def is_valid_phone(phone: str, country_code: str = DEFAULT_COUNTRY_CODE) -> bool:
    pattern = COUNTRY_PATTERNS.get(country_code, FALLBACK_PATTERN)
    return bool(pattern.match(_clean(phone)))


def normalize_phone(phone: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Return the number as digits with the country code prefix.

    Raises InvalidPhoneNumber when the number does not match the country's
    pattern.
    """
    if not is_valid_phone(phone, country_code):
        raise InvalidPhoneNumber(f"Invalid phone number for country code {country_code}")

    cleaned = _clean(phone)
    if not cleaned.startswith(country_code):
        cleaned = f"{country_code}{cleaned}"
    return cleaned


def default_country_code() -> str:
    return os.environ.get("MTN_MOMO_DEFAULT_COUNTRY", DEFAULT_COUNTRY_CODE)
