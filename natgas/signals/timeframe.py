import logging
from typing import Optional

import pandas as pd

from natgas.signals.models import IndicatorValues, TimeframeSignal
from natgas.signals.resampler import CandleInput, candles_to_frame
from natgas.signals.rules import ThresholdSet, compute_bias_score, evaluate_rules, get_thresholds, score_to_bias
from natgas.utils import indicators as ta

logger = logging.getLogger(__name__)

MIN_CANDLES = 3
PRICE_DECIMALS = 4


def compute_indicator_values(df: pd.DataFrame) -> IndicatorValues:
    """
    Indicator snapshot at the last row of an OHLCV frame.
    Pivots come from the previous (completed) candle.
    """
    if len(df) < MIN_CANDLES:
        return IndicatorValues()

    close, high, low = df['close'], df['high'], df['low']

    macd_df = ta.macd(close)
    bb = ta.bollinger_bands(close)
    stoch = ta.stochastic(high, low, close)
    adx_df = ta.adx(high, low, close)

    prev = df.iloc[-2]
    pivots = ta.pivot_points(float(prev['high']), float(prev['low']), float(prev['close']))

    return IndicatorValues(
        rsi=ta.last_value(ta.rsi(close, 14)),
        macd_line=ta.last_value(macd_df['macd']),
        macd_signal=ta.last_value(macd_df['signal']),
        macd_histogram=ta.last_value(macd_df['histogram']),
        ema20=ta.last_value(ta.ema(close, 20)),
        ema50=ta.last_value(ta.ema(close, 50)),
        stoch_k=ta.last_value(stoch['k']),
        stoch_d=ta.last_value(stoch['d']),
        bollinger_upper=ta.last_value(bb['upper']),
        bollinger_middle=ta.last_value(bb['middle']),
        bollinger_lower=ta.last_value(bb['lower']),
        adx=ta.last_value(adx_df['adx']),
        plus_di=ta.last_value(adx_df['plus_di']),
        minus_di=ta.last_value(adx_df['minus_di']),
        atr=ta.last_value(ta.atr(high, low, close, 14)),
        vwap=ta.last_value(ta.vwap(high, low, close, df['volume'])),
        pivot_point=pivots['pivot'],
        pivot_r1=pivots['r1'],
        pivot_r2=pivots['r2'],
        pivot_r3=pivots['r3'],
        pivot_s1=pivots['s1'],
        pivot_s2=pivots['s2'],
        pivot_s3=pivots['s3'],
    ).rounded(PRICE_DECIMALS)


def analyze_timeframe(timeframe: str, candles: CandleInput,
                      period_open: Optional[float] = None,
                      current_close: Optional[float] = None,
                      thresholds: Optional[ThresholdSet] = None) -> TimeframeSignal:
    """
    Indicator snapshot, rule signals and bias for one timeframe.

    Args:
        timeframe: '1H', '3H', '1D', '1W' or '1M'
        candles: ascending candle series
        period_open: open of the forming period (defaults to the last candle's open)
        current_close: live price (defaults to the last close)
    """
    df = candles_to_frame(candles)
    thresholds = thresholds or get_thresholds()

    if df.empty:
        price = current_close or 0.0
        return TimeframeSignal(
            timeframe=timeframe, bias='HOLD', bias_score=0, indicators=IndicatorValues(),
            signals=[], last_price=price, reference_close=price, price_change=0.0,
            price_change_percent=0.0, interval_price_change=0.0,
            interval_price_change_percent=0.0, candle_count=0
        )

    last = df.iloc[-1]
    last_price = float(current_close) if current_close else float(last['close'])
    reference_close = float(df.iloc[-2]['close']) if len(df) > 1 else float(last['close'])
    period_open = float(period_open) if period_open else float(last['open'])

    price_change = last_price - reference_close
    price_change_percent = price_change / reference_close * 100 if reference_close else 0.0
    interval_change = last_price - period_open
    interval_change_percent = interval_change / period_open * 100 if period_open else 0.0

    indicators = compute_indicator_values(df)
    signals = evaluate_rules(indicators, last_price)
    bias_score = compute_bias_score(signals)
    bias = score_to_bias(bias_score, thresholds)

    logger.debug(f"[{timeframe}] {len(df)} candles, {len(signals)} signals, bias {bias} ({bias_score})")

    return TimeframeSignal(
        timeframe=timeframe,
        bias=bias,
        bias_score=bias_score,
        indicators=indicators,
        signals=signals,
        last_price=round(last_price, 4),
        reference_close=round(reference_close, 4),
        price_change=round(price_change, 4),
        price_change_percent=round(price_change_percent, 2),
        interval_price_change=round(interval_change, 4),
        interval_price_change_percent=round(interval_change_percent, 2),
        candle_count=len(df)
    )
