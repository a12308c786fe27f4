"""Utility functions for fundledger."""

from fundledger.utils.date_parser import parse_date, parse_period, period_bounds
from fundledger.utils.amount_parser import parse_amount
from fundledger.utils.account_resolver import resolve_account

__all__ = ["parse_date", "parse_period", "period_bounds", "parse_amount", "resolve_account"]
