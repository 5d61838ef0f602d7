"""
Candle Resampler for the Signal Engine

Normalises collaborator candle input into OHLCV frames and derives the
3-hour series from hourly candles.

Key Features:
- Accepts Candle objects, dicts (`time` or `date` key) or DataFrames
- 1H -> 3H aggregation aligned to the newest candle
- Live price injection into the forming candle
"""

import logging
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd

from natgas.signals.models import Candle

logger = logging.getLogger(__name__)

COLUMNS = ['time', 'open', 'high', 'low', 'close', 'volume']

CandleInput = Union[pd.DataFrame, Iterable[Candle], Iterable[dict], None]


def candles_to_frame(candles: CandleInput) -> pd.DataFrame:
    """
    Build an ascending, de-duplicated OHLCV frame.

    Args:
        candles: DataFrame with [time|date, open, high, low, close, volume],
            or an iterable of Candle / dict records

    Returns:
        DataFrame with columns COLUMNS and a RangeIndex
    """
    if candles is None:
        return pd.DataFrame(columns=COLUMNS)

    if isinstance(candles, pd.DataFrame):
        df = candles.copy()
    else:
        records = [c.to_dict() if isinstance(c, Candle) else dict(c) for c in candles]
        df = pd.DataFrame(records)

    if df.empty:
        return pd.DataFrame(columns=COLUMNS)

    if 'time' not in df.columns and 'date' in df.columns:
        df = df.rename(columns={'date': 'time'})
    if 'volume' not in df.columns:
        df['volume'] = 0.0

    df['time'] = pd.to_datetime(df['time'])
    for col in ['open', 'high', 'low', 'close', 'volume']:
        df[col] = pd.to_numeric(df[col], errors='coerce')
    df['volume'] = df['volume'].fillna(0.0)

    df = df.dropna(subset=['open', 'high', 'low', 'close'])
    df = df.sort_values('time', kind='mergesort').drop_duplicates(subset='time', keep='last')
    return df[COLUMNS].reset_index(drop=True)


def aggregate_to_3h(df_1h: pd.DataFrame) -> pd.DataFrame:
    """
    Aggregate hourly candles into 3-hour candles.

    Chunks are aligned so the newest hourly candle closes the last chunk;
    the incomplete leading chunk (len % 3 candles) is dropped.
    """
    df = candles_to_frame(df_1h)
    start = len(df) % 3
    df = df.iloc[start:].reset_index(drop=True)
    if df.empty:
        return pd.DataFrame(columns=COLUMNS)

    group = np.arange(len(df)) // 3
    resampled = df.groupby(group).agg({
        'time': 'first',
        'open': 'first',
        'high': 'max',
        'low': 'min',
        'close': 'last',
        'volume': 'sum'
    })
    logger.debug(f"Aggregated {len(df)} hourly candles into {len(resampled)} 3H candles")
    return resampled[COLUMNS].reset_index(drop=True)


def inject_latest_price(df: pd.DataFrame, live_price: Optional[float]) -> pd.DataFrame:
    """
    Overwrite the latest close with a live quote, widening high/low to contain it.
    Non-positive or missing quotes leave the frame untouched.
    """
    if df.empty or live_price is None or not np.isfinite(live_price) or live_price <= 0:
        return df

    out = df.copy()
    idx = out.index[-1]
    out.loc[idx, 'close'] = live_price
    out.loc[idx, 'high'] = max(out.loc[idx, 'high'], live_price)
    out.loc[idx, 'low'] = min(out.loc[idx, 'low'], live_price)
    return out
