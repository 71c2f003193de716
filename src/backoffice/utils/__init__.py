"""Utility functions for backoffice."""

from backoffice.utils.date_parser import parse_date
from backoffice.utils.amount_parser import parse_amount, round_money

__all__ = ["parse_date", "parse_amount", "round_money"]
