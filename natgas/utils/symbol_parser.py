"""
MCX option symbol parsing.

Supports both contract styles seen on broker position feeds:
1) SYMBOL YY MON STRIKE TYPE  (e.g. NATGAS26FEB300CE)
2) SYMBOL DD MON STRIKE TYPE  (e.g. NATGAS20FEB300CE)
"""

import re
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

logger = logging.getLogger(__name__)

MONTH_MAP = {
    'JAN': 1, 'FEB': 2, 'MAR': 3, 'APR': 4, 'MAY': 5, 'JUN': 6,
    'JUL': 7, 'AUG': 8, 'SEP': 9, 'OCT': 10, 'NOV': 11, 'DEC': 12
}

OPTION_PATTERN = re.compile(r'^([A-Z]+)\s*(\d{2})\s*([A-Z]{3})\s*(\d+(?:\.\d+)?)\s*(CE|PE)$')
FUTURE_PATTERN = re.compile(r'FUT$', re.IGNORECASE)

EXPIRY_HOUR = 15
EXPIRY_MINUTE = 30
MONTHLY_EXPIRY_DAY = 26
EXPIRY_GRACE = timedelta(hours=24)


@dataclass
class ParsedOption:
    underlying_symbol: Optional[str]
    expiry_date: Optional[datetime]
    strike: Optional[float]
    type: Optional[str]  # 'CE' or 'PE'
    is_valid: bool = True

    @classmethod
    def invalid(cls) -> 'ParsedOption':
        return cls(underlying_symbol=None, expiry_date=None, strike=None, type=None, is_valid=False)


def build_expiry_date(year: int, month: int, day: int) -> Optional[datetime]:
    """Contract expiry at 15:30 on the given date, or None for impossible dates."""
    try:
        return datetime(year, month, day, EXPIRY_HOUR, EXPIRY_MINUTE)
    except ValueError:
        return None


def pick_nearest_expiry(candidates: List[datetime], now: datetime) -> Optional[datetime]:
    """
    Earliest candidate that has not expired by more than the grace window,
    otherwise the most recent past candidate.
    """
    if not candidates:
        return None

    live = sorted(c for c in candidates if c >= now - EXPIRY_GRACE)
    if live:
        return live[0]

    return max(candidates)


def resolve_expiry_from_token(token: int, month: int, now: datetime) -> Optional[datetime]:
    """
    Disambiguates the two-digit contract token (day-of-month vs. year).

    - token > 31: cannot be a day, so it is the year (monthly expiry on the 26th).
    - token read as a year falls outside [this year, next year]: it is a day.
    - otherwise ambiguous: nearest live candidate among day-this-year,
      day-next-year and 26th-of-token-year.
    """
    current_year = now.year
    token_year = 2000 + token

    if token > 31:
        return build_expiry_date(token_year, month, MONTHLY_EXPIRY_DAY)

    day_this_year = build_expiry_date(current_year, month, token)
    day_next_year = build_expiry_date(current_year + 1, month, token)

    if token_year < current_year or token_year > current_year + 1:
        candidates = [d for d in (day_this_year, day_next_year) if d is not None]
        return pick_nearest_expiry(candidates, now)

    year_style = build_expiry_date(token_year, month, MONTHLY_EXPIRY_DAY)
    candidates = [d for d in (day_this_year, day_next_year, year_style) if d is not None]
    return pick_nearest_expiry(candidates, now)


def parse_option_symbol(trading_symbol: str, now: Optional[datetime] = None) -> ParsedOption:
    """
    Decodes an exchange option identifier into underlying, expiry, strike and type.
    Malformed symbols return an invalid result instead of raising.
    """
    if not trading_symbol:
        return ParsedOption.invalid()

    match = OPTION_PATTERN.match(trading_symbol.strip().upper())
    if not match:
        return ParsedOption.invalid()

    symbol, token_str, month_str, strike_str, option_type = match.groups()

    month = MONTH_MAP.get(month_str)
    if month is None:
        logger.debug(f"Unknown contract month '{month_str}' in {trading_symbol}")
        return ParsedOption.invalid()

    expiry = resolve_expiry_from_token(int(token_str), month, now or datetime.now())
    if expiry is None:
        return ParsedOption.invalid()

    return ParsedOption(
        underlying_symbol=symbol,
        expiry_date=expiry,
        strike=float(strike_str),
        type=option_type,
        is_valid=True
    )


def is_future_symbol(trading_symbol: str) -> bool:
    return bool(trading_symbol) and bool(FUTURE_PATTERN.search(trading_symbol.strip()))
