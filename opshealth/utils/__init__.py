"""Utility modules for logging, time handling, and common helpers."""

from opshealth.utils.logging import configure_logging, get_logger
from opshealth.utils.numbers import round_half_up, safe_pct
from opshealth.utils.clock import to_naive_utc, utcnow

__all__ = [
    "configure_logging",
    "get_logger",
    "round_half_up",
    "safe_pct",
    "to_naive_utc",
    "utcnow",
]
