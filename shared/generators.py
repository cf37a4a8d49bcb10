"""
Random code generators — pure, side-effect-free functions.

All generators use the cryptographically secure ``secrets`` module.
"""

from __future__ import annotations

import secrets

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Generate a 6-digit numeric OTP.

    The code is drawn uniformly from ``100000``–``999999`` so it never has a
    leading zero.

    Returns:
        Six-character string of decimal digits.
    """
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure URL-safe random token.

    Args:
        length: Number of random bytes before base64 encoding (default 32).

    Returns:
        URL-safe base64-encoded token string.
    """
    return secrets.token_urlsafe(length)
