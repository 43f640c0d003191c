"""
Utilities package for customstore.

Exports shared helpers for logging, clocks and id generation.
Keep this package lightweight and free of domain-specific logic.
"""

from customstore.utils.clock import MAX_DATETIME, utc_now
from customstore.utils.ids import new_id
from customstore.utils.logging import configure_logging, get_logger

__all__ = [
    "MAX_DATETIME",
    "configure_logging",
    "get_logger",
    "new_id",
    "utc_now",
]
