from datetime import datetime, time, timedelta
from typing import Optional

from natgas import config

# MCX commodity session open (local exchange time)
MARKET_START = time(config.MARKET_OPEN_HOUR, 0)


def is_trading_day(day: datetime) -> bool:
    return day.weekday() <= 4  # 5=Sat, 6=Sun


def next_market_open(now: Optional[datetime] = None) -> datetime:
    """Next session open strictly after `now`, skipping Saturday and Sunday."""
    now = now or datetime.now()  # Assumes system clock is exchange-local
    candidate = now.replace(hour=MARKET_START.hour, minute=MARKET_START.minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    while not is_trading_day(candidate):
        candidate += timedelta(days=1)
    return candidate


def days_to_next_market_open(now: Optional[datetime] = None) -> float:
    """
    Fractional days until the next open. Used to scale daily theta into the
    decay a position will carry before it can next be adjusted.
    """
    now = now or datetime.now()
    return (next_market_open(now) - now).total_seconds() / (24 * 3600)
