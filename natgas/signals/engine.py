"""
Multi-Timeframe Signal Engine for Natural Gas

Combines seven weighted indicator rules across five timeframes (1H, 3H, 1D,
1W, 1M) into an overall bias, confidence and market condition, then derives
futures setups and options strategy recommendations.

Key Features:
- Daily-timeframe overrides for strong moves, EMA structure, VWAP, DI spread
- Versioned bias/confidence thresholds (see rules.THRESHOLD_REVISIONS)
- Pivot-anchored futures setups with ATR stops and floors
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from natgas.data.option_chain import OptionChainAnalysis, OptionStrike, analyze_chain
from natgas.signals import rules
from natgas.signals.models import TIMEFRAMES, FuturesSetup, OverallSignal, SignalReport, TimeframeSignal
from natgas.signals.resampler import CandleInput, aggregate_to_3h, candles_to_frame, inject_latest_price
from natgas.signals.rules import ThresholdSet, clamp_score, get_thresholds, score_to_bias
from natgas.signals.timeframe import analyze_timeframe
from strategy_engine.strategy_manager import StrategySelector

logger = logging.getLogger(__name__)

PRIMARY_TIMEFRAME = '1D'
INTRADAY_TIMEFRAMES = ('1H', '3H')

# Market condition gates (percent of price)
VOLATILE_MOVE_PERCENT = 3.5
VOLATILE_ATR_PERCENT = 2.8
TRENDING_ADX = 22
TRENDING_DI_SPREAD = 5
TRENDING_MOVE_PERCENT = 1.6
ELEVATED_ATR_PERCENT = 2.0

# Futures setup
SETUP_ATR_FALLBACK_PERCENT = 0.02
STOP_ATR = 1.4
STOP_MIN_ATR = 0.5
STOP_BUFFER_ATR = 0.1
TARGET1_MIN_ATR = 1.0
TARGET2_MIN_ATR = 2.0


def _find(timeframes: Sequence[TimeframeSignal], name: str) -> Optional[TimeframeSignal]:
    for tf in timeframes:
        if tf.timeframe == name:
            return tf
    return None


def _direction(value: float) -> int:
    return 1 if value > 0 else -1 if value < 0 else 0


def dominant_move_percent(daily: Optional[TimeframeSignal], live_change_percent: Optional[float]) -> float:
    """Larger-magnitude of the live intraday change and the daily candle change."""
    candidates = [v for v in (live_change_percent, daily.price_change_percent if daily else None)
                  if v is not None and np.isfinite(v)]
    if not candidates:
        return 0.0
    return float(max(candidates, key=abs))


def daily_overrides(daily: TimeframeSignal, timeframes: Sequence[TimeframeSignal], dominant: float) -> int:
    """Directional score shifts driven by the daily timeframe."""
    ind = daily.indicators
    price = daily.last_price
    shift = 0

    if abs(dominant) >= rules.DOMINANT_MOVE_PERCENT:
        shift += _direction(dominant) * rules.DOMINANT_MOVE_SHIFT

    if ind.ema20 is not None and ind.ema50 is not None:
        if price > ind.ema20 > ind.ema50:
            shift += rules.STRUCTURE_SHIFT
        elif price < ind.ema20 < ind.ema50:
            shift -= rules.STRUCTURE_SHIFT

    if ind.vwap:
        deviation = (price - ind.vwap) / ind.vwap * 100
        if abs(deviation) > rules.VWAP_DEVIATION_PERCENT:
            shift += _direction(deviation) * rules.VWAP_SHIFT

    if ind.plus_di is not None and ind.minus_di is not None:
        spread = ind.plus_di - ind.minus_di
        if abs(spread) >= rules.DI_SPREAD_MIN:
            shift += _direction(spread) * rules.DI_SHIFT

    intraday = [tf.price_change_percent for tf in timeframes if tf.timeframe in INTRADAY_TIMEFRAMES]
    if intraday:
        momentum = sum(intraday) / len(intraday)
        if abs(momentum) > rules.INTRADAY_MOMENTUM_PERCENT:
            shift += _direction(momentum) * rules.INTRADAY_MOMENTUM_SHIFT

    return shift


def compute_overall_signal(timeframes: Sequence[TimeframeSignal],
                           live_change_percent: Optional[float] = None,
                           thresholds: Optional[ThresholdSet] = None) -> OverallSignal:
    """
    Combine timeframe bias scores into one signal.

    Weighted average of timeframe scores, shifted by the daily overrides,
    clamped to [-100, 100]. Confidence blends timeframe agreement with the
    size of the dominant move.
    """
    thresholds = thresholds or get_thresholds()
    if not timeframes:
        return OverallSignal(signal='HOLD', score=0, confidence='LOW', dominant_move_percent=0.0)

    weighted_sum = 0.0
    total_weight = 0.0
    for tf in timeframes:
        w = rules.TIMEFRAME_WEIGHTS.get(tf.timeframe, 0.1)
        weighted_sum += tf.bias_score * w
        total_weight += w
    raw = weighted_sum / total_weight if total_weight else 0.0

    daily = _find(timeframes, PRIMARY_TIMEFRAME)
    dominant = dominant_move_percent(daily, live_change_percent)
    if daily is not None:
        raw += daily_overrides(daily, timeframes, dominant)

    score = clamp_score(raw)
    signal = score_to_bias(score, thresholds)

    agreeing = sum(1 for tf in timeframes if tf.bias == signal)
    ratio = agreeing / len(timeframes)
    confidence = _confidence(ratio, score, dominant, thresholds)

    logger.info(f"Overall signal: {signal} (score {score}, {confidence}, agreement {ratio:.2f}, "
                f"dominant move {dominant:.2f}%)")
    return OverallSignal(signal=signal, score=score, confidence=confidence,
                         dominant_move_percent=round(dominant, 2))


def _confidence(ratio: float, score: int, dominant: float, t: ThresholdSet) -> str:
    magnitude = abs(score)
    move = abs(dominant)

    if ratio >= t.high_agreement and magnitude >= t.high_score:
        return 'HIGH'
    if t.high_move is not None and move >= t.high_move and magnitude >= t.high_move_score:
        return 'HIGH'
    if ratio >= t.medium_agreement and magnitude >= t.medium_score:
        return 'MEDIUM'
    if t.medium_move is not None and move >= t.medium_move and magnitude >= t.medium_move_score:
        return 'MEDIUM'
    return 'LOW'


def determine_market_condition(daily: TimeframeSignal, dominant_move: float = 0.0) -> str:
    """
    TRENDING, RANGING or VOLATILE from the daily timeframe.

    - VOLATILE: dominant move >= 3.5% or ATR >= 2.8% of price
    - TRENDING: (ADX >= 22 and |DI spread| >= 5) or dominant move >= 1.6%
    - VOLATILE: ATR >= 2.0% of price
    - otherwise RANGING
    """
    ind = daily.indicators
    move = abs(dominant_move)
    atr_percent = ind.atr / daily.last_price * 100 if ind.atr and daily.last_price else 0.0
    di_spread = abs(ind.plus_di - ind.minus_di) if ind.plus_di is not None and ind.minus_di is not None else 0.0

    if move >= VOLATILE_MOVE_PERCENT or atr_percent >= VOLATILE_ATR_PERCENT:
        return 'VOLATILE'
    if (ind.adx is not None and ind.adx >= TRENDING_ADX and di_spread >= TRENDING_DI_SPREAD) \
            or move >= TRENDING_MOVE_PERCENT:
        return 'TRENDING'
    if atr_percent >= ELEVATED_ATR_PERCENT:
        return 'VOLATILE'
    return 'RANGING'


def resolve_lean(tf: TimeframeSignal) -> Optional[str]:
    """Direction to use while the overall signal is HOLD, or None."""
    ind = tf.indicators
    if ind.plus_di is not None and ind.minus_di is not None and ind.plus_di != ind.minus_di:
        return 'BUY' if ind.plus_di > ind.minus_di else 'SELL'
    if ind.ema20 is not None and ind.ema50 is not None and ind.ema20 != ind.ema50:
        return 'BUY' if ind.ema20 > ind.ema50 else 'SELL'
    if tf.price_change != 0:
        return 'BUY' if tf.price_change > 0 else 'SELL'
    return None


def _protective_stop(entry: float, atr: float, direction: str, levels: List[Optional[float]]) -> float:
    """
    1.4 ATR stop, pulled in behind the nearest adverse pivot level that sits
    between the ATR stop and 0.5 ATR from entry.
    """
    sign = 1 if direction == 'BUY' else -1
    atr_stop = entry - sign * STOP_ATR * atr
    inner = entry - sign * STOP_MIN_ATR * atr

    if direction == 'BUY':
        eligible = [lvl for lvl in levels if lvl is not None and atr_stop < lvl < inner]
        if not eligible:
            return atr_stop
        return max(atr_stop, max(eligible) - STOP_BUFFER_ATR * atr)

    eligible = [lvl for lvl in levels if lvl is not None and inner < lvl < atr_stop]
    if not eligible:
        return atr_stop
    return min(atr_stop, min(eligible) + STOP_BUFFER_ATR * atr)


def _build_rationale(tf: TimeframeSignal, direction: str, is_lean: bool) -> str:
    parts = [f"{s.name}: {s.description}" for s in tf.signals if s.signal == direction][:3]
    text = ' | '.join(parts) if parts else f"{direction} signal from multi-indicator confluence"
    if is_lean:
        text = f"Neutral overall, leaning {direction} on {tf.timeframe}. {text}"
    return text


def generate_futures_setup(tf: TimeframeSignal, overall_signal: str) -> Optional[FuturesSetup]:
    """Entry, stop, two targets and R:R for one timeframe; None without a direction."""
    is_lean = overall_signal == 'HOLD'
    direction = resolve_lean(tf) if is_lean else overall_signal
    if direction is None or tf.last_price <= 0:
        return None

    ind = tf.indicators
    entry = tf.last_price
    atr = ind.atr if ind.atr else entry * SETUP_ATR_FALLBACK_PERCENT

    if direction == 'BUY':
        stop = _protective_stop(entry, atr, direction,
                                [ind.pivot_point, ind.pivot_s1, ind.pivot_s2, ind.pivot_s3])
        target1 = max(ind.pivot_r1 if ind.pivot_r1 is not None else entry, entry + TARGET1_MIN_ATR * atr)
        target2 = max(ind.pivot_r2 if ind.pivot_r2 is not None else entry, entry + TARGET2_MIN_ATR * atr)
        if target2 <= target1:
            target2 = target1 + atr
        risk = entry - stop
        reward = target1 - entry
    else:
        stop = _protective_stop(entry, atr, direction,
                                [ind.pivot_point, ind.pivot_r1, ind.pivot_r2, ind.pivot_r3])
        target1 = min(ind.pivot_s1 if ind.pivot_s1 is not None else entry, entry - TARGET1_MIN_ATR * atr)
        target2 = min(ind.pivot_s2 if ind.pivot_s2 is not None else entry, entry - TARGET2_MIN_ATR * atr)
        if target2 >= target1:
            target2 = target1 - atr
        risk = stop - entry
        reward = entry - target1

    rr = reward / risk if risk > 0 else 0.0

    return FuturesSetup(
        timeframe=tf.timeframe,
        direction=direction,
        entry=round(entry, 4),
        stop_loss=round(stop, 4),
        target1=round(target1, 4),
        target2=round(target2, 4),
        risk_reward_ratio=round(rr, 2),
        atr_value=round(atr, 4),
        rationale=_build_rationale(tf, direction, is_lean),
        is_lean=is_lean
    )


def generate_summary(overall: OverallSignal, market_condition: str,
                     timeframes: Sequence[TimeframeSignal],
                     live_change_percent: Optional[float] = None) -> str:
    """Narrative summary of the run."""
    direction = {'BUY': 'BULLISH', 'SELL': 'BEARISH'}.get(overall.signal, 'NEUTRAL')
    bullish = ', '.join(tf.timeframe for tf in timeframes if tf.bias == 'BUY')
    bearish = ', '.join(tf.timeframe for tf in timeframes if tf.bias == 'SELL')

    text = (f"Overall {direction} bias (score: {overall.score}) with {overall.confidence} confidence. "
            f"Market is {market_condition.lower()}.")
    if live_change_percent is not None:
        text += f" Live change {live_change_percent:+.2f}%."
    if bullish:
        text += f" Bullish on: {bullish}."
    if bearish:
        text += f" Bearish on: {bearish}."
    return text


class SignalEngine:
    """
    Facade running the full analysis for one snapshot.

    Example:
        engine = SignalEngine()
        report = engine.analyze({'1H': h1, '1D': d1, '1W': w1, '1M': m1}, current_price=312.4)
    """

    def __init__(self, threshold_revision: Optional[str] = None,
                 selector: Optional[StrategySelector] = None):
        self.thresholds = get_thresholds(threshold_revision)
        self.selector = selector or StrategySelector()

    def analyze(self, candles: Dict[str, CandleInput],
                current_price: Optional[float] = None,
                previous_close: Optional[float] = None,
                option_chain: Union[OptionChainAnalysis, List[OptionStrike], None] = None,
                dte: Optional[int] = None) -> SignalReport:
        """
        Args:
            candles: timeframe -> candles; '3H' is derived from '1H' when absent
            current_price: live quote injected into every timeframe's last candle
            previous_close: prior session close for the live change (defaults to the prior daily close)
            option_chain: chain analytics or raw strikes
            dte: explicit days to expiry for strategy selection

        Raises:
            ValueError: when no timeframe has any candles
        """
        frames: Dict[str, pd.DataFrame] = {tf: candles_to_frame(candles.get(tf)) for tf in TIMEFRAMES}
        if frames['3H'].empty and not frames['1H'].empty:
            frames['3H'] = aggregate_to_3h(frames['1H'])

        available = [tf for tf in TIMEFRAMES if not frames[tf].empty]
        if not available:
            raise ValueError("Insufficient candle data to generate signal")

        if current_price is None:
            current_price = float(frames[available[0]]['close'].iloc[-1])
        frames = {tf: inject_latest_price(df, current_price) for tf, df in frames.items()}

        daily_df = frames[PRIMARY_TIMEFRAME]
        if previous_close is None and len(daily_df) > 1:
            previous_close = float(daily_df['close'].iloc[-2])

        timeframes = [
            analyze_timeframe(tf, frames[tf],
                              period_open=float(frames[tf]['open'].iloc[-1]),
                              current_close=current_price,
                              thresholds=self.thresholds)
            for tf in available
        ]

        live_change = None
        live_change_percent = None
        if previous_close:
            live_change = round(current_price - previous_close, 4)
            live_change_percent = round((current_price - previous_close) / previous_close * 100, 2)

        overall = compute_overall_signal(timeframes, live_change_percent, self.thresholds)
        daily = _find(timeframes, PRIMARY_TIMEFRAME) or timeframes[0]
        market_condition = determine_market_condition(daily, overall.dominant_move_percent)

        setups = [s for s in (generate_futures_setup(tf, overall.signal) for tf in timeframes) if s]
        primary = next((s for s in setups if s.timeframe == PRIMARY_TIMEFRAME), setups[0] if setups else None)

        if isinstance(option_chain, list):
            option_chain = analyze_chain(option_chain, current_price)

        recommendations = self.selector.recommend(
            current_price, daily.indicators, overall.signal, market_condition, option_chain, dte
        )

        summary = generate_summary(overall, market_condition, timeframes, live_change_percent)
        logger.info(summary)

        return SignalReport(
            timestamp=datetime.now(),
            current_price=round(current_price, 4),
            overall=overall,
            timeframes=timeframes,
            market_condition=market_condition,
            futures_setup=primary,
            futures_setups=setups,
            options_recommendations=recommendations,
            option_chain=option_chain,
            summary=summary,
            live_change=live_change,
            live_change_percent=live_change_percent
        )


# Example usage
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    rng = np.random.default_rng(7)

    def random_walk(periods: int, freq: str, start: float = 300.0, vol: float = 3.0) -> pd.DataFrame:
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

    engine = SignalEngine()
    report = engine.analyze({
        '1H': random_walk(400, 'h', vol=1.0),
        '1D': random_walk(250, 'D'),
        '1W': random_walk(150, 'W', vol=8.0),
        '1M': random_walk(60, 'MS', vol=20.0),
    })

    print(report.summary)
    if report.futures_setup:
        print(report.futures_setup)
    for rec in report.options_recommendations:
        print(f"{rec.strategy_name}: {rec.strikes} | max profit {rec.max_profit} | max loss {rec.max_loss}")
