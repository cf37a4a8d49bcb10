"""
Logging utilities — framework-agnostic re-exports.

Re-exports from utils.logger and utils.logging_config so that service and
infrastructure code can import from shared.logging.
"""

from utils.logger import get_logger, mask_phone
from utils.logging_config import setup_logging

__all__ = [
    "get_logger",
    "mask_phone",
    "setup_logging",
]
