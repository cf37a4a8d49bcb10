"""
Profile input validators — framework-agnostic, pure functions.
"""

from __future__ import annotations

from typing import Optional

import validators as _validators

MAX_DISPLAY_NAME_LENGTH = 80


def validate_display_name(display_name: Optional[str]) -> bool:
    """Return True if *display_name* is non-blank and reasonably short."""
    if display_name is None:
        return False
    name = display_name.strip()
    return 0 < len(name) <= MAX_DISPLAY_NAME_LENGTH


def validate_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid address."""
    return bool(_validators.email(email))
