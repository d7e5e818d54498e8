"""Utility modules for the Guardian proposal engine."""

from utils.formatting import (
    format_currency,
    format_event_date,
    format_number,
    round_half_up,
)
from utils.proposal_logger import (
    log_generation_start,
    log_generation_complete,
    log_generation_failed,
    log_content_fallback,
)

__all__ = [
    "format_currency",
    "format_event_date",
    "format_number",
    "round_half_up",
    "log_generation_start",
    "log_generation_complete",
    "log_generation_failed",
    "log_content_fallback",
]
