from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from natgas.signals import engine
from natgas.signals.engine import (
    SignalEngine, compute_overall_signal, determine_market_condition, generate_futures_setup
)
from natgas.signals.models import Candle, IndicatorValues, TimeframeSignal
from natgas.signals.resampler import aggregate_to_3h, candles_to_frame, inject_latest_price
from natgas.signals.rules import get_thresholds
from natgas.signals.timeframe import analyze_timeframe


def make_tf(name, bias='HOLD', score=0, change_percent=0.0, indicators=None, price=100.0, change=0.0):
    return TimeframeSignal(
        timeframe=name, bias=bias, bias_score=score,
        indicators=indicators or IndicatorValues(), signals=[],
        last_price=price, reference_close=price - change, price_change=change,
        price_change_percent=change_percent, interval_price_change=0.0,
        interval_price_change_percent=0.0, candle_count=60
    )


PIVOTS = dict(pivot_point=99.0, pivot_r1=101.0, pivot_r2=103.0, pivot_r3=105.0,
              pivot_s1=98.0, pivot_s2=96.0, pivot_s3=94.0)


def random_walk(periods, freq, start=300.0, vol=2.0, seed=11):
    rng = np.random.default_rng(seed)
    closes = start + np.cumsum(rng.normal(0, vol, periods))
    opens = np.concatenate(([start], closes[:-1]))
    return pd.DataFrame({
        'time': pd.date_range('2024-01-01', periods=periods, freq=freq),
        'open': opens,
        'high': np.maximum(opens, closes) + rng.uniform(0, vol, periods),
        'low': np.minimum(opens, closes) - rng.uniform(0, vol, periods),
        'close': closes,
        'volume': rng.integers(1000, 5000, periods)
    })


def test_full_agreement_gives_high_confidence():
    timeframes = [make_tf(tf, 'BUY', 80) for tf in ('1H', '3H', '1D', '1W', '1M')]
    overall = compute_overall_signal(timeframes)
    assert overall.signal == 'BUY'
    assert overall.score == 80
    assert overall.confidence == 'HIGH'


def test_no_timeframes_is_hold():
    overall = compute_overall_signal([])
    assert (overall.signal, overall.score, overall.confidence) == ('HOLD', 0, 'LOW')


def test_dominant_daily_move_overrides_neutral_scores():
    timeframes = [make_tf('1H'), make_tf('1D', change_percent=3.0), make_tf('1W')]

    overall = compute_overall_signal(timeframes)
    assert overall.score == 36
    assert overall.signal == 'BUY'
    assert overall.confidence == 'MEDIUM'
    assert overall.dominant_move_percent == 3.0

    legacy = compute_overall_signal(timeframes, thresholds=get_thresholds('v1'))
    assert legacy.signal == 'BUY'
    assert legacy.confidence == 'LOW'


def test_live_change_beats_smaller_daily_change():
    timeframes = [make_tf('1D', change_percent=0.5)]
    overall = compute_overall_signal(timeframes, live_change_percent=-2.6)
    assert overall.dominant_move_percent == -2.6
    assert overall.signal == 'SELL'


def test_score_is_clamped():
    ind = IndicatorValues(ema20=95.0, ema50=90.0, vwap=90.0, plus_di=40.0, minus_di=10.0)
    timeframes = [make_tf('1D', 'BUY', 100, change_percent=5.0, indicators=ind),
                  make_tf('1H', 'BUY', 100, change_percent=2.0)]
    overall = compute_overall_signal(timeframes)
    assert overall.score == 100


def test_market_condition():
    assert determine_market_condition(make_tf('1D', indicators=IndicatorValues(atr=4.0))) == 'VOLATILE'
    assert determine_market_condition(make_tf('1D', indicators=IndicatorValues(atr=1.0)), 4.0) == 'VOLATILE'
    trending = IndicatorValues(atr=1.0, adx=30.0, plus_di=30.0, minus_di=10.0)
    assert determine_market_condition(make_tf('1D', indicators=trending)) == 'TRENDING'
    assert determine_market_condition(make_tf('1D', indicators=IndicatorValues(atr=1.0)), -2.0) == 'TRENDING'
    assert determine_market_condition(make_tf('1D', indicators=IndicatorValues(atr=2.2))) == 'VOLATILE'
    assert determine_market_condition(make_tf('1D', indicators=IndicatorValues(atr=1.0))) == 'RANGING'


def test_long_setup_uses_pivot_stop_and_atr_floors():
    tf = make_tf('1D', indicators=IndicatorValues(atr=2.0, **PIVOTS))
    setup = generate_futures_setup(tf, 'BUY')
    assert setup.direction == 'BUY'
    assert not setup.is_lean
    assert setup.stop_loss == 97.8
    assert setup.target1 == 102.0
    assert setup.target2 == 104.0
    assert setup.risk_reward_ratio == 0.91


def test_short_setup_is_ordered():
    tf = make_tf('1D', indicators=IndicatorValues(atr=2.0, **PIVOTS))
    setup = generate_futures_setup(tf, 'SELL')
    assert setup.stop_loss > setup.entry > setup.target1 > setup.target2
    assert setup.stop_loss == 102.8
    assert setup.target1 == 98.0


def test_hold_leans_on_directional_index():
    tf = make_tf('1D', indicators=IndicatorValues(plus_di=25.0, minus_di=15.0))
    setup = generate_futures_setup(tf, 'HOLD')
    assert setup.direction == 'BUY'
    assert setup.is_lean
    assert setup.rationale.startswith('Neutral overall, leaning BUY')
    # 2% ATR fallback
    assert setup.atr_value == 2.0


def test_hold_without_any_lean_has_no_setup():
    assert generate_futures_setup(make_tf('1D'), 'HOLD') is None


def test_aggregate_to_3h_drops_incomplete_leading_chunk():
    df = pd.DataFrame({
        'time': pd.date_range('2024-01-01', periods=7, freq='h'),
        'open': [1, 2, 3, 4, 5, 6, 7],
        'high': [2, 3, 4, 5, 6, 7, 8],
        'low': [0, 1, 2, 3, 4, 5, 6],
        'close': [1.5, 2.5, 3.5, 4.5, 5.5, 6.5, 7.5],
        'volume': [10, 10, 10, 10, 10, 10, 10],
    })
    out = aggregate_to_3h(df)
    assert len(out) == 2
    assert out['open'].tolist() == [2, 5]
    assert out['high'].tolist() == [5, 8]
    assert out['low'].tolist() == [1, 4]
    assert out['close'].tolist() == [4.5, 7.5]
    assert out['volume'].tolist() == [30, 30]


def test_candles_accept_dicts_with_date_key():
    df = candles_to_frame([
        {'date': '2024-01-02', 'open': 2, 'high': 3, 'low': 1, 'close': 2.5},
        {'date': '2024-01-01', 'open': 1, 'high': 2, 'low': 0.5, 'close': 1.5},
        {'date': '2024-01-02', 'open': 2, 'high': 3.5, 'low': 1, 'close': 3.0},
    ])
    assert len(df) == 2
    assert df['close'].tolist() == [1.5, 3.0]
    assert df['volume'].tolist() == [0.0, 0.0]


def test_candles_accept_candle_objects():
    df = candles_to_frame([
        Candle(datetime(2024, 1, 1, 10), 1.0, 2.0, 0.5, 1.5, volume=10),
        Candle(datetime(2024, 1, 1, 9), 1.0, 1.2, 0.9, 1.1),
    ])
    assert df['time'].tolist() == [pd.Timestamp(2024, 1, 1, 9), pd.Timestamp(2024, 1, 1, 10)]
    assert df['close'].tolist() == [1.1, 1.5]
    assert df['volume'].tolist() == [0.0, 10.0]


def test_inject_latest_price_widens_range():
    df = candles_to_frame([{'time': '2024-01-01', 'open': 10, 'high': 11, 'low': 9, 'close': 10}])
    out = inject_latest_price(df, 12.0)
    assert out['close'].iloc[-1] == 12.0
    assert out['high'].iloc[-1] == 12.0
    assert df['close'].iloc[-1] == 10.0
    assert inject_latest_price(df, -1).equals(df)


def test_timeframe_with_too_few_candles_is_neutral():
    tf = analyze_timeframe('1W', [
        {'time': '2024-01-01', 'open': 10, 'high': 11, 'low': 9, 'close': 10},
        {'time': '2024-01-08', 'open': 10, 'high': 12, 'low': 9.5, 'close': 11},
    ])
    assert tf.bias == 'HOLD'
    assert tf.bias_score == 0
    assert tf.indicators.is_empty()
    assert tf.price_change_percent == 10.0


def test_engine_analyze_end_to_end():
    candles = {
        '1H': random_walk(200, 'h', vol=0.8, seed=1),
        '1D': random_walk(120, 'D', seed=2),
        '1W': random_walk(60, 'W', vol=5.0, seed=3),
        '1M': random_walk(24, 'MS', vol=10.0, seed=4),
    }
    report = SignalEngine().analyze(candles, current_price=300.0)

    assert [tf.timeframe for tf in report.timeframes] == ['1H', '3H', '1D', '1W', '1M']
    assert report.current_price == 300.0
    assert -100 <= report.overall.score <= 100
    assert report.overall.signal in ('BUY', 'SELL', 'HOLD')
    assert report.overall.confidence in ('LOW', 'MEDIUM', 'HIGH')
    assert report.market_condition in ('TRENDING', 'RANGING', 'VOLATILE')
    assert report.live_change_percent is not None
    assert report.options_recommendations
    assert report.option_chain is None
    assert report.timeframe('3H').candle_count == 66
    assert report.to_dict()['timestamp']

    for tf in report.timeframes:
        assert tf.last_price == 300.0
        assert not tf.indicators.is_empty()
        for value in tf.indicators.to_dict().values():
            assert value is None or value == round(value, 4)
        for signal in tf.signals:
            assert signal.value == round(signal.value, 4)


def test_engine_without_candles_raises():
    with pytest.raises(ValueError):
        SignalEngine().analyze({})


def test_engine_rejects_unknown_threshold_revision():
    with pytest.raises(ValueError):
        SignalEngine(threshold_revision='v0')


def test_summary_mentions_bias_and_condition():
    overall = compute_overall_signal([make_tf('1D', 'BUY', 60)])
    text = engine.generate_summary(overall, 'TRENDING', [make_tf('1D', 'BUY', 60)], 1.234)
    assert 'BULLISH' in text
    assert 'trending' in text
    assert '+1.23%' in text
    assert 'Bullish on: 1D' in text
