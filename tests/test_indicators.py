import numpy as np
import pandas as pd

from natgas.utils import indicators as ta


def test_short_series_is_all_nan():
    close = [1.0, 2.0, 3.0]
    assert ta.sma(close, 5).isna().all()
    assert ta.ema(close, 5).isna().all()
    assert ta.rsi(close, 14).isna().all()
    assert ta.atr(close, close, close, 14).isna().all()
    assert ta.adx(close, close, close, 14)['adx'].isna().all()


def test_ema_is_seeded_by_sma():
    out = ta.ema([1, 2, 3, 4, 5], 3)
    assert np.isnan(out.iloc[1])
    assert out.iloc[2] == 2.0
    assert out.iloc[3] == 3.0
    assert out.iloc[4] == 4.0


def test_rsi_on_rising_series_is_pinned_at_100():
    close = list(range(100, 130))
    out = ta.rsi(close, 14).dropna()
    assert len(out) == 30 - 14
    assert (out <= 100).all()
    assert out.iloc[-1] == 100.0


def test_rsi_stays_in_range():
    rng = np.random.default_rng(1)
    close = 300 + np.cumsum(rng.normal(0, 2, 200))
    out = ta.rsi(close).dropna()
    assert ((out >= 0) & (out <= 100)).all()


def test_bollinger_bands_are_ordered():
    rng = np.random.default_rng(2)
    close = 300 + np.cumsum(rng.normal(0, 2, 80))
    bb = ta.bollinger_bands(close).dropna()
    assert (bb['upper'] >= bb['middle']).all()
    assert (bb['middle'] >= bb['lower']).all()


def test_stochastic_bounds_and_flat_window():
    rng = np.random.default_rng(3)
    close = pd.Series(300 + np.cumsum(rng.normal(0, 2, 60)))
    stoch = ta.stochastic(close + 1, close - 1, close)
    k = stoch['k'].dropna()
    assert ((k >= 0) & (k <= 100)).all()

    flat = pd.Series([10.0] * 20)
    assert ta.stochastic(flat, flat, flat)['k'].iloc[-1] == 50.0


def test_atr_with_constant_range():
    close = pd.Series([100.0] * 30)
    out = ta.atr(close + 1, close - 1, close, 14)
    assert np.isnan(out.iloc[12])
    assert out.iloc[13] == 2.0
    assert out.iloc[-1] == 2.0


def test_adx_and_di_on_uptrend():
    close = pd.Series(np.arange(100.0, 160.0))
    out = ta.adx(close + 1, close - 1, close, 14)
    assert out['plus_di'].iloc[-1] > out['minus_di'].iloc[-1]
    assert 0 <= out['adx'].iloc[-1] <= 100


def test_vwap_treats_zero_volume_as_one():
    high = [11.0, 13.0]
    low = [9.0, 11.0]
    close = [10.0, 12.0]
    out = ta.vwap(high, low, close, [0, 0])
    assert out.iloc[-1] == 11.0


def test_pivot_points():
    levels = ta.pivot_points(110.0, 90.0, 100.0)
    assert levels['pivot'] == 100.0
    assert levels['r1'] == 110.0
    assert levels['s1'] == 90.0
    assert levels['r2'] == 120.0
    assert levels['s2'] == 80.0
    assert levels['s3'] < levels['s2'] < levels['s1'] < levels['pivot'] < levels['r1'] < levels['r2'] < levels['r3']


def test_fibonacci_retracement_spans_high_to_low():
    levels = ta.fibonacci_retracement(200.0, 100.0)
    assert levels[0] == ('0.0%', 200.0)
    assert levels[-1] == ('100.0%', 100.0)
    assert dict(levels)['50.0%'] == 150.0


def test_last_value():
    assert ta.last_value(pd.Series([1.0, np.nan])) is None
    assert ta.last_value(pd.Series([], dtype=float)) is None
    assert ta.last_value(pd.Series([1.0, 2.5])) == 2.5
