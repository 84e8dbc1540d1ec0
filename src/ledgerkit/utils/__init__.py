"""Utility functions for ledgerkit."""

from ledgerkit.utils.date_parser import parse_date, get_date_range, month_end
from ledgerkit.utils.amount_parser import parse_amount, parse_non_negative_amount

__all__ = [
    "parse_date",
    "get_date_range",
    "month_end",
    "parse_amount",
    "parse_non_negative_amount",
]
