"""
Market-implied option Greeks from the public Upstox option analytics API.

Lookups are keyed by (underlying, expiry) and held in a short-lived
GreeksCache. Any fetch failure degrades to "no market Greeks" so callers
fall back to Black-Scholes.
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import requests

from natgas import config
from natgas.utils.symbol_parser import parse_option_symbol

logger = logging.getLogger(__name__)

UNDERLIERS_PATH = "/instrument/v1/open/fnOUnderlierSymbolsWithExpiry"
STRATEGY_CHAIN_PATH = "/option-analytics-tool/open/v1/strategy-chains"
STRIKE_TOLERANCE = 1e-6


@dataclass
class MarketGreeks:
    delta: float
    theta: float


GreeksChain = Dict[Tuple[float, str], MarketGreeks]
CacheKey = Tuple[str, date]


def normalize_underlying(underlying: str) -> str:
    return re.sub(r'[^a-z0-9]', '', underlying.lower())


def format_expiry(expiry: date) -> str:
    return expiry.strftime('%d-%m-%Y')


def parse_expiry(value: str) -> Optional[date]:
    """DD-MM-YYYY -> date, None for malformed or impossible dates."""
    try:
        return datetime.strptime(value, '%d-%m-%Y').date()
    except (TypeError, ValueError):
        return None


def rank_expiries(expiries: Iterable[str], target: date) -> List[str]:
    """Listed expiries ordered by distance from the target date."""
    ranked = []
    for expiry in expiries:
        parsed = parse_expiry(expiry)
        if parsed is not None:
            ranked.append((abs((parsed - target).days), expiry))
    ranked.sort(key=lambda item: item[0])
    return [expiry for _, expiry in ranked]


def find_strike_greeks(chain: GreeksChain, strike: float, option_type: str) -> Optional[MarketGreeks]:
    direct = chain.get((strike, option_type))
    if direct is not None:
        return direct
    # 260 vs 260.0 style formatting differences
    for (chain_strike, chain_type), greeks in chain.items():
        if chain_type == option_type and abs(chain_strike - strike) < STRIKE_TOLERANCE:
            return greeks
    return None


class GreeksCache:
    """
    Time-bounded map of (normalized underlying, expiry date) -> GreeksChain.
    Misses are not cached.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = config.GREEKS_CACHE_TTL if ttl is None else ttl
        self.clock = clock
        self._entries: Dict[CacheKey, Tuple[float, GreeksChain]] = {}

    @staticmethod
    def key(underlying: str, expiry: date) -> CacheKey:
        if isinstance(expiry, datetime):
            expiry = expiry.date()
        return normalize_underlying(underlying), expiry

    def get(self, underlying: str, expiry: date) -> Optional[GreeksChain]:
        entry = self._entries.get(self.key(underlying, expiry))
        if entry is None:
            return None
        fetched_at, chain = entry
        if self.clock() - fetched_at >= self.ttl:
            return None
        return chain

    def set(self, underlying: str, expiry: date, chain: GreeksChain):
        self._entries[self.key(underlying, expiry)] = (self.clock(), chain)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class UpstoxGreeksClient:
    """Blocking client for the public (x-api-key) Upstox option analytics endpoints."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or config.UPSTOX_BASE_URL).rstrip('/')
        self.api_key = api_key or config.UPSTOX_PUBLIC_API_KEY
        self.timeout = config.GREEKS_FETCH_TIMEOUT if timeout is None else timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: Dict[str, str]) -> Optional[dict]:
        """JSON body, or None on a non-2xx status. Network errors propagate."""
        response = self.session.get(
            f"{self.base_url}{path}",
            params=params,
            headers={'Accept': 'application/json', 'x-api-key': self.api_key},
            timeout=self.timeout
        )
        if not response.ok:
            logger.debug(f"GET {path} returned {response.status_code}")
            return None
        return response.json()

    def fetch_underliers(self, name: str) -> List[dict]:
        payload = self._get(UNDERLIERS_PATH, {'name': name})
        if not payload:
            return []
        return (payload.get('data') or {}).get('symbolExpiryDataList') or []

    def fetch_strategy_chain(self, asset_key: str, expiry: str) -> Optional[GreeksChain]:
        payload = self._get(STRATEGY_CHAIN_PATH, {
            'assetKey': asset_key,
            'strategyChainType': 'PC_CHAIN',
            'expiry': expiry
        })
        if not payload or not payload.get('success'):
            return None

        strike_map = ((payload.get('data') or {}).get('strategyChainData') or {}).get('strikeMap')
        if not strike_map:
            return None

        chain: GreeksChain = {}
        for strike_key, strike_data in strike_map.items():
            try:
                strike = float(strike_key)
            except ValueError:
                continue
            for option_type, side in (('CE', 'callOptionData'), ('PE', 'putOptionData')):
                analytics = ((strike_data or {}).get(side) or {}).get('analytics') or {}
                delta, theta = analytics.get('delta'), analytics.get('theta')
                if isinstance(delta, (int, float)) and isinstance(theta, (int, float)):
                    chain[(strike, option_type)] = MarketGreeks(delta=float(delta), theta=float(theta))
        return chain

    def fetch_chain(self, underlying: str, expiry: date) -> Optional[GreeksChain]:
        """
        Greeks chain for the listed expiry closest to `expiry`.
        Exact-name underliers are tried before partial matches.
        Without an API key nothing is requested and None is returned.
        """
        if not self.api_key:
            logger.debug("UPSTOX_PUBLIC_API_KEY not set, skipping market greeks")
            return None
        if isinstance(expiry, datetime):
            expiry = expiry.date()
        normalized = normalize_underlying(underlying)
        candidates = self.fetch_underliers(normalized)
        if not candidates:
            return None

        exact = [c for c in candidates if normalize_underlying(c.get('underlierName', '')) == normalized]
        others = [c for c in candidates if normalize_underlying(c.get('underlierName', '')) != normalized]

        for candidate in exact + others:
            for listed_expiry in rank_expiries(candidate.get('expiries') or [], expiry):
                chain = self.fetch_strategy_chain(candidate.get('underlierIk', ''), listed_expiry)
                if chain:
                    logger.info(f"Market greeks loaded for {candidate.get('underlierName')} {listed_expiry} "
                                f"({len(chain)} legs)")
                    return chain
        return None


class GreeksProvider:
    """
    Cache-backed market Greeks lookups for a batch of trading symbols.
    """

    def __init__(self, client: Optional[UpstoxGreeksClient] = None, cache: Optional[GreeksCache] = None):
        self.client = client or UpstoxGreeksClient()
        self.cache = cache if cache is not None else GreeksCache()

    def get_chain(self, underlying: str, expiry: date) -> Optional[GreeksChain]:
        cached = self.cache.get(underlying, expiry)
        if cached is not None:
            return cached

        try:
            chain = self.client.fetch_chain(underlying, expiry)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Market greeks fetch failed for {underlying} {format_expiry(expiry)}: {e}")
            return None

        if chain:
            self.cache.set(underlying, expiry, chain)
        return chain

    async def fetch_greeks_for_positions(self, trading_symbols: Iterable[str],
                                         now: Optional[datetime] = None) -> Dict[str, MarketGreeks]:
        """
        Market (delta, theta) per option symbol. Unique (underlying, expiry)
        pairs are fetched concurrently; symbols without market data are omitted.
        """
        parsed = {}
        for symbol in trading_symbols:
            option = parse_option_symbol(symbol, now)
            if option.is_valid:
                parsed[symbol] = option

        lookups: Dict[CacheKey, Tuple[str, date]] = {}
        for option in parsed.values():
            key = GreeksCache.key(option.underlying_symbol, option.expiry_date)
            lookups.setdefault(key, (option.underlying_symbol, option.expiry_date.date()))

        if not lookups:
            return {}

        loop = asyncio.get_running_loop()
        keys = list(lookups)
        results = await asyncio.gather(
            *[loop.run_in_executor(None, self.get_chain, *lookups[key]) for key in keys],
            return_exceptions=True
        )

        chains: Dict[CacheKey, GreeksChain] = {}
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                logger.warning(f"Market greeks lookup {key} failed: {result}")
            elif result:
                chains[key] = result

        greeks: Dict[str, MarketGreeks] = {}
        for symbol, option in parsed.items():
            chain = chains.get(GreeksCache.key(option.underlying_symbol, option.expiry_date))
            if not chain:
                continue
            match = find_strike_greeks(chain, option.strike, option.type)
            if match is not None:
                greeks[symbol] = match

        logger.info(f"Market greeks resolved for {len(greeks)}/{len(parsed)} option positions")
        return greeks
