"""
Technical Indicators

Pure functions over pandas Series. Every function returns a Series (or a
DataFrame of Series) aligned to the input index; positions without enough
history are NaN. Nothing here raises on short input.
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Tuple

FIBONACCI_RATIOS = [
    ('0.0%', 0.0),
    ('23.6%', 0.236),
    ('38.2%', 0.382),
    ('50.0%', 0.5),
    ('61.8%', 0.618),
    ('78.6%', 0.786),
    ('100.0%', 1.0),
]


def _as_series(values) -> pd.Series:
    if isinstance(values, pd.Series):
        return values.astype(float)
    return pd.Series(values, dtype=float)


def _true_range(high: pd.Series, low: pd.Series, close: pd.Series) -> pd.Series:
    """True range; the first bar has no previous close so it is high - low."""
    prev_close = close.shift(1)
    tr = pd.concat([
        high - low,
        (high - prev_close).abs(),
        (low - prev_close).abs()
    ], axis=1).max(axis=1)
    tr.iloc[0] = high.iloc[0] - low.iloc[0]
    return tr


def last_value(series: pd.Series) -> Optional[float]:
    """Latest value of a series, or None when empty / not yet available."""
    if series is None or len(series) == 0:
        return None
    value = series.iloc[-1]
    if pd.isna(value):
        return None
    return float(value)


def sma(values, period: int) -> pd.Series:
    series = _as_series(values)
    return series.rolling(window=period).mean()


def ema(values, period: int) -> pd.Series:
    """
    Exponential moving average seeded by the SMA of the first `period` values.
    """
    series = _as_series(values)
    out = np.full(len(series), np.nan)
    if period <= 0 or len(series) < period:
        return pd.Series(out, index=series.index)

    data = series.to_numpy()
    k = 2.0 / (period + 1)
    out[period - 1] = data[:period].mean()
    for i in range(period, len(data)):
        out[i] = (data[i] - out[i - 1]) * k + out[i - 1]
    return pd.Series(out, index=series.index)


def rsi(close, period: int = 14) -> pd.Series:
    """
    Relative Strength Index with Wilder's smoothing.

    The first value (at index `period`) is seeded from the plain average gain
    and loss of the first `period` price deltas. An average loss of zero pins
    RSI at 100.
    """
    series = _as_series(close)
    out = np.full(len(series), np.nan)
    if len(series) < period + 1:
        return pd.Series(out, index=series.index)

    deltas = np.diff(series.to_numpy())
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    out[period] = 100.0 if avg_loss == 0 else 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)

    for i in range(period + 1, len(series)):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        out[i] = 100.0 if avg_loss == 0 else 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)

    return pd.Series(out, index=series.index)


def macd(close, fast_period: int = 12, slow_period: int = 26, signal_period: int = 9) -> pd.DataFrame:
    """
    MACD line, signal line and histogram.

    The signal EMA runs over the valid MACD values only and is then realigned
    to the input index.
    """
    series = _as_series(close)
    macd_line = ema(series, fast_period) - ema(series, slow_period)

    valid = macd_line.dropna()
    signal_line = pd.Series(np.nan, index=series.index)
    if len(valid) > 0:
        signal_line.loc[valid.index] = ema(valid, signal_period).to_numpy()

    return pd.DataFrame({
        'macd': macd_line,
        'signal': signal_line,
        'histogram': macd_line - signal_line
    })


def bollinger_bands(close, period: int = 20, multiplier: float = 2.0) -> pd.DataFrame:
    series = _as_series(close)
    middle = series.rolling(window=period).mean()
    # Population standard deviation
    std = series.rolling(window=period).std(ddof=0)
    return pd.DataFrame({
        'upper': middle + multiplier * std,
        'middle': middle,
        'lower': middle - multiplier * std
    })


def stochastic(high, low, close, k_period: int = 14, d_period: int = 3) -> pd.DataFrame:
    """%K over the rolling high/low window (50 on a flat window), %D = SMA(%K)."""
    high, low, close = _as_series(high), _as_series(low), _as_series(close)

    window_high = high.rolling(window=k_period).max()
    window_low = low.rolling(window=k_period).min()
    price_range = window_high - window_low

    k = ((close - window_low) / price_range.where(price_range != 0)) * 100
    k = k.where(price_range != 0, 50.0)
    k = k.where(window_high.notna()).clip(lower=0, upper=100)
    d = k.rolling(window=d_period).mean()

    return pd.DataFrame({'k': k, 'd': d})


def atr(high, low, close, period: int = 14) -> pd.Series:
    """Average True Range: SMA of the first `period` true ranges, then Wilder."""
    high, low, close = _as_series(high), _as_series(low), _as_series(close)
    out = np.full(len(close), np.nan)
    if len(close) < max(period, 2):
        return pd.Series(out, index=close.index)

    tr = _true_range(high, low, close).to_numpy()
    out[period - 1] = tr[:period].mean()
    for i in range(period, len(tr)):
        out[i] = (out[i - 1] * (period - 1) + tr[i]) / period
    return pd.Series(out, index=close.index)


def adx(high, low, close, period: int = 14) -> pd.DataFrame:
    """
    Average Directional Index with +DI / -DI.

    +DM / -DM and true range are Wilder-smoothed from a plain sum over the
    first `period` bars. ADX starts as the SMA of the first `period` DX values
    (at index 2 * period - 1) and is Wilder-smoothed afterwards.
    """
    high, low, close = _as_series(high), _as_series(low), _as_series(close)
    length = len(close)
    adx_out = np.full(length, np.nan)
    plus_di = np.full(length, np.nan)
    minus_di = np.full(length, np.nan)

    if length < period + 1:
        return pd.DataFrame({'adx': adx_out, 'plus_di': plus_di, 'minus_di': minus_di}, index=close.index)

    h, l = high.to_numpy(), low.to_numpy()
    tr = _true_range(high, low, close).to_numpy(copy=True)
    tr[0] = 0.0

    up_move = np.diff(h, prepend=h[0])
    down_move = np.concatenate(([0.0], l[:-1] - l[1:]))
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
    plus_dm[0] = minus_dm[0] = 0.0

    def directional_index(smoothed_dm, smoothed_tr):
        return 0.0 if smoothed_tr == 0 else (smoothed_dm / smoothed_tr) * 100

    def dx(p_di, m_di):
        total = p_di + m_di
        return 0.0 if total == 0 else abs(p_di - m_di) / total * 100

    smooth_tr = tr[1:period + 1].sum()
    smooth_plus = plus_dm[1:period + 1].sum()
    smooth_minus = minus_dm[1:period + 1].sum()

    plus_di[period] = directional_index(smooth_plus, smooth_tr)
    minus_di[period] = directional_index(smooth_minus, smooth_tr)
    dx_values = [dx(plus_di[period], minus_di[period])]

    for i in range(period + 1, length):
        smooth_tr = smooth_tr - smooth_tr / period + tr[i]
        smooth_plus = smooth_plus - smooth_plus / period + plus_dm[i]
        smooth_minus = smooth_minus - smooth_minus / period + minus_dm[i]
        plus_di[i] = directional_index(smooth_plus, smooth_tr)
        minus_di[i] = directional_index(smooth_minus, smooth_tr)
        dx_values.append(dx(plus_di[i], minus_di[i]))

    if len(dx_values) >= period:
        adx_out[2 * period - 1] = sum(dx_values[:period]) / period
        for i in range(2 * period, length):
            adx_out[i] = (adx_out[i - 1] * (period - 1) + dx_values[i - period]) / period

    return pd.DataFrame({'adx': adx_out, 'plus_di': plus_di, 'minus_di': minus_di}, index=close.index)


def vwap(high, low, close, volume) -> pd.Series:
    """Cumulative VWAP on typical price. Missing or zero volume counts as 1."""
    high, low, close = _as_series(high), _as_series(low), _as_series(close)
    vol = _as_series(volume).fillna(0)
    vol = vol.where(vol != 0, 1.0)

    typical_price = (high + low + close) / 3
    return (typical_price * vol).cumsum() / vol.cumsum()


def pivot_points(high: float, low: float, close: float) -> Dict[str, float]:
    """Standard floor pivots from one completed candle."""
    pp = (high + low + close) / 3
    return {
        'pivot': pp,
        'r1': 2 * pp - low,
        'r2': pp + (high - low),
        'r3': high + 2 * (pp - low),
        's1': 2 * pp - high,
        's2': pp - (high - low),
        's3': low - 2 * (high - pp)
    }


def fibonacci_retracement(high: float, low: float) -> List[Tuple[str, float]]:
    diff = high - low
    return [(label, high - diff * ratio) for label, ratio in FIBONACCI_RATIOS]
