import os
from dotenv import load_dotenv

# Load Environment Variables
load_dotenv()


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r} (expected a number)")


# Black-Scholes defaults
RISK_FREE_RATE = _get_float("RISK_FREE_RATE", 0.07)
DEFAULT_VOLATILITY = _get_float("DEFAULT_VOLATILITY", 0.60)

# Market-implied Greeks (public option analytics)
UPSTOX_BASE_URL = os.getenv("UPSTOX_BASE_URL", "https://service.upstox.com").strip().rstrip("/")
UPSTOX_PUBLIC_API_KEY = os.getenv("UPSTOX_PUBLIC_API_KEY", "").strip()
GREEKS_CACHE_TTL = _get_float("GREEKS_CACHE_TTL", 60.0)
GREEKS_FETCH_TIMEOUT = _get_float("GREEKS_FETCH_TIMEOUT", 10.0)

# Signal engine threshold revision ("v2" canonical, "v1" legacy)
SIGNAL_THRESHOLDS = os.getenv("SIGNAL_THRESHOLDS", "v2").strip().lower()

# Exchange session (MCX opens 09:00 local time)
MARKET_OPEN_HOUR = int(_get_float("MARKET_OPEN_HOUR", 9))
