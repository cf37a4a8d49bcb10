"""
Phone number normalization — pure functions.

Every phone number entering the auth flow is reduced to the 12-digit
canonical form (country prefix + 10-digit national number) before it is
used as a storage key or a message destination.
"""

from __future__ import annotations

import re

from errors import AuthErrorCode
from shared.result import Err, Ok, Result

DEFAULT_COUNTRY_CODE = "91"
NATIONAL_NUMBER_LENGTH = 10
PHONE_PRINCIPAL_PREFIX = "phone_"

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(
    raw_phone: str, country_code: str = DEFAULT_COUNTRY_CODE
) -> Result[str]:
    """Normalize *raw_phone* to its canonical form.

    Non-digits are stripped first. A bare 10-digit national number gets the
    country prefix; a number that already carries the prefix and has the
    full canonical length is kept as is. Anything else is rejected.

    Args:
        raw_phone: Phone number as typed by the user (spaces, dashes, ``+``).
        country_code: Country prefix without ``+`` (default ``"91"``).

    Returns:
        ``Ok(canonical_phone)`` or ``Err(INVALID_PHONE_FORMAT)``.
    """
    digits = _NON_DIGITS.sub("", raw_phone or "")
    canonical_length = len(country_code) + NATIONAL_NUMBER_LENGTH

    if len(digits) == NATIONAL_NUMBER_LENGTH:
        return Ok(f"{country_code}{digits}")
    if len(digits) == canonical_length and digits.startswith(country_code):
        return Ok(digits)
    return Err(AuthErrorCode.INVALID_PHONE_FORMAT)


def phone_principal_id(canonical_phone: str) -> str:
    """Deterministic principal id for a phone-only user."""
    return f"{PHONE_PRINCIPAL_PREFIX}{canonical_phone}"
