"""
Logger factory and utility functions for the dineezy auth service.

Provides:
- get_logger(): Get a configured logger instance
- mask_phone(): Mask phone numbers for privacy
"""

from typing import Optional

import structlog
from structlog.stdlib import BoundLogger

from .logging_config import mask_phone as _mask_phone


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance

    Example:
        >>> from shared.logging import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("otp_issued", phone_number="919876543210")
    """
    return structlog.get_logger(name)


def mask_phone(phone_number: Optional[str]) -> Optional[str]:
    """
    Mask a phone number for privacy in production.

    Convenience wrapper around logging_config.mask_phone() that handles
    None values gracefully.
    """
    if phone_number is None:
        return None
    return _mask_phone(phone_number)
