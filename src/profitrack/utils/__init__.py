"""Utility functions for profitrack."""

from profitrack.utils.date_parser import parse_date, period_key
from profitrack.utils.money import parse_amount, parse_percentage, to_money

__all__ = ["parse_date", "period_key", "parse_amount", "parse_percentage", "to_money"]
