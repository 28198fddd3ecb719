"""Utility functions for gasdiary."""

from gasdiary.utils.amounts import format_amount, format_taka
from gasdiary.utils.date_parser import parse_date, get_diary_windows
from gasdiary.utils.retry import call_with_retry

__all__ = [
    "format_amount",
    "format_taka",
    "parse_date",
    "get_diary_windows",
    "call_with_retry",
]
