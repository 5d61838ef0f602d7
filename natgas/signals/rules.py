"""
Signal Rule Tables

Every threshold the signal engine uses lives here:
- INDICATOR_RULES: ordered (predicate, signal, note) rows per indicator, first match wins
- TIMEFRAME_WEIGHTS: contribution of each timeframe to the overall score
- THRESHOLD_REVISIONS: versioned bias/confidence bands ("v2" canonical, "v1" legacy)

Tables are validated at import; a malformed table is a programming error.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from natgas import config
from natgas.signals.models import IndicatorSignal, IndicatorValues

logger = logging.getLogger(__name__)

BUY = 'BUY'
SELL = 'SELL'
HOLD = 'HOLD'

VOTES = {BUY: 1, SELL: -1, HOLD: 0}

Predicate = Callable[[IndicatorValues, float], bool]


def band_position(ind: IndicatorValues, price: float) -> float:
    """Price location inside the Bollinger band: 0 at lower, 1 at upper."""
    width = ind.bollinger_upper - ind.bollinger_lower
    return (price - ind.bollinger_lower) / width if width > 0 else 0.5


@dataclass(frozen=True)
class IndicatorRule:
    name: str
    weight: float
    requires: Tuple[str, ...]
    value: Callable[[IndicatorValues, float], float]
    label: Callable[[IndicatorValues, float], str]
    conditions: Tuple[Tuple[Predicate, str, str], ...]
    default: Tuple[str, str] = (HOLD, '')

    def evaluate(self, ind: IndicatorValues, price: float) -> Optional[IndicatorSignal]:
        """None when any required indicator is still warming up."""
        if any(getattr(ind, attr) is None for attr in self.requires):
            return None

        signal, note = self.default
        for predicate, rule_signal, rule_note in self.conditions:
            if predicate(ind, price):
                signal, note = rule_signal, rule_note
                break

        description = self.label(ind, price)
        if note:
            description = f"{description}: {note}"
        return IndicatorSignal(name=self.name, value=round(float(self.value(ind, price)), 4),
                               signal=signal, description=description)


INDICATOR_RULES: List[IndicatorRule] = [
    IndicatorRule(
        name='RSI(14)',
        weight=0.15,
        requires=('rsi',),
        value=lambda i, p: i.rsi,
        label=lambda i, p: f"RSI at {i.rsi:.1f}",
        conditions=(
            (lambda i, p: i.rsi < 30, BUY, 'Oversold, potential reversal up'),
            (lambda i, p: i.rsi > 70, SELL, 'Overbought, potential reversal down'),
            (lambda i, p: i.rsi < 45, BUY, 'Recovering from oversold zone'),
            (lambda i, p: i.rsi > 55, SELL, 'Approaching overbought zone'),
        ),
        default=(HOLD, 'Neutral zone'),
    ),
    IndicatorRule(
        name='MACD',
        weight=0.20,
        requires=('macd_line', 'macd_signal'),
        value=lambda i, p: i.macd_line,
        label=lambda i, p: f"MACD {i.macd_line:.4f}",
        conditions=(
            (lambda i, p: i.macd_line > i.macd_signal and (i.macd_histogram or 0) > 0,
             BUY, 'Bullish crossover, histogram rising'),
            (lambda i, p: i.macd_line < i.macd_signal and (i.macd_histogram or 0) < 0,
             SELL, 'Bearish crossover, histogram falling'),
        ),
        default=(HOLD, 'Near signal line, indecisive'),
    ),
    IndicatorRule(
        name='EMA(20/50)',
        weight=0.20,
        requires=('ema20', 'ema50'),
        value=lambda i, p: i.ema20,
        label=lambda i, p: f"EMA20 {i.ema20:.3f}, EMA50 {i.ema50:.3f}",
        conditions=(
            (lambda i, p: i.ema20 > i.ema50, BUY, 'Golden cross (bullish)'),
            (lambda i, p: i.ema20 < i.ema50, SELL, 'Death cross (bearish)'),
        ),
    ),
    IndicatorRule(
        name='Stochastic',
        weight=0.10,
        requires=('stoch_k', 'stoch_d'),
        value=lambda i, p: i.stoch_k,
        label=lambda i, p: f"%K {i.stoch_k:.1f}, %D {i.stoch_d:.1f}",
        conditions=(
            (lambda i, p: i.stoch_k < 20 and i.stoch_k > i.stoch_d, BUY, 'Oversold crossover up'),
            (lambda i, p: i.stoch_k > 80 and i.stoch_k < i.stoch_d, SELL, 'Overbought crossover down'),
            (lambda i, p: i.stoch_k < 30, BUY, 'Near oversold'),
            (lambda i, p: i.stoch_k > 70, SELL, 'Near overbought'),
        ),
    ),
    IndicatorRule(
        name='Bollinger',
        weight=0.10,
        requires=('bollinger_upper', 'bollinger_middle', 'bollinger_lower'),
        value=lambda i, p: band_position(i, p) * 100,
        label=lambda i, p: f"Price at {band_position(i, p) * 100:.0f}% of band",
        conditions=(
            (lambda i, p: band_position(i, p) < 0.15, BUY, 'Near lower band, oversold'),
            (lambda i, p: band_position(i, p) > 0.85, SELL, 'Near upper band, overbought'),
            (lambda i, p: band_position(i, p) < 0.35, BUY, 'Lower half, potential bounce'),
            (lambda i, p: band_position(i, p) > 0.65, SELL, 'Upper half, potential pullback'),
        ),
    ),
    IndicatorRule(
        name='VWAP',
        weight=0.10,
        requires=('vwap',),
        value=lambda i, p: i.vwap,
        label=lambda i, p: f"VWAP {i.vwap:.3f}",
        conditions=(
            (lambda i, p: p > i.vwap * 1.002, BUY, 'Price above VWAP (bullish)'),
            (lambda i, p: p < i.vwap * 0.998, SELL, 'Price below VWAP (bearish)'),
        ),
        default=(HOLD, 'Price at VWAP'),
    ),
    IndicatorRule(
        name='Pivot Points',
        weight=0.15,
        requires=('pivot_point', 'pivot_r1', 'pivot_s1'),
        value=lambda i, p: i.pivot_point,
        label=lambda i, p: f"Pivot {i.pivot_point:.3f}",
        conditions=(
            (lambda i, p: p > i.pivot_r1, BUY, 'Above R1, strong bullish'),
            (lambda i, p: p < i.pivot_s1, SELL, 'Below S1, strong bearish'),
            (lambda i, p: p > i.pivot_point, BUY, 'Above pivot, mild bullish'),
        ),
        default=(SELL, 'Below pivot, mild bearish'),
    ),
]

TIMEFRAME_WEIGHTS: Dict[str, float] = {
    '1M': 0.05,
    '1W': 0.15,
    '1D': 0.35,
    '3H': 0.25,
    '1H': 0.20,
}


@dataclass(frozen=True)
class ThresholdSet:
    """
    Bias band and confidence gates for one engine revision.
    Move-based gates are None where the revision has no such clause.
    """
    bias: int
    high_agreement: float
    high_score: int
    medium_agreement: float
    medium_score: int
    high_move: Optional[float] = None
    high_move_score: Optional[int] = None
    medium_move: Optional[float] = None
    medium_move_score: Optional[int] = None


THRESHOLD_REVISIONS: Dict[str, ThresholdSet] = {
    'v2': ThresholdSet(
        bias=18,
        high_agreement=0.65, high_score=42,
        medium_agreement=0.45, medium_score=20,
        high_move=4.0, high_move_score=30,
        medium_move=2.5, medium_move_score=18,
    ),
    'v1': ThresholdSet(
        bias=25,
        high_agreement=0.7, high_score=40,
        medium_agreement=0.5, medium_score=20,
    ),
}

# Daily-timeframe score overrides
DOMINANT_MOVE_PERCENT = 2.5
DOMINANT_MOVE_SHIFT = 36
STRUCTURE_SHIFT = 15
VWAP_DEVIATION_PERCENT = 0.3
VWAP_SHIFT = 6
DI_SPREAD_MIN = 8
DI_SHIFT = 10
INTRADAY_MOMENTUM_PERCENT = 1.0
INTRADAY_MOMENTUM_SHIFT = 10


def validate_rule_table(rules: Sequence[IndicatorRule]) -> None:
    names = [r.name for r in rules]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate indicator names in rule table: {names}")
    for rule in rules:
        if rule.weight <= 0:
            raise ValueError(f"Indicator weight must be positive: {rule.name}={rule.weight}")
        for _, signal, _ in rule.conditions:
            if signal not in VOTES:
                raise ValueError(f"Unknown signal '{signal}' in rule {rule.name}")
        if rule.default[0] not in VOTES:
            raise ValueError(f"Unknown default signal '{rule.default[0]}' in rule {rule.name}")


def validate_timeframe_weights(weights: Dict[str, float]) -> None:
    if not weights:
        raise ValueError("Timeframe weight table is empty")
    for tf, w in weights.items():
        if w <= 0:
            raise ValueError(f"Timeframe weight must be positive: {tf}={w}")


def get_thresholds(revision: Optional[str] = None) -> ThresholdSet:
    """Active threshold set; defaults to the SIGNAL_THRESHOLDS setting."""
    key = (revision or config.SIGNAL_THRESHOLDS).strip().lower()
    if key not in THRESHOLD_REVISIONS:
        raise ValueError(f"Unknown signal threshold revision '{key}' (expected one of {sorted(THRESHOLD_REVISIONS)})")
    return THRESHOLD_REVISIONS[key]


def evaluate_rules(ind: IndicatorValues, price: float,
                   rules: Sequence[IndicatorRule] = INDICATOR_RULES) -> List[IndicatorSignal]:
    signals = []
    for rule in rules:
        sig = rule.evaluate(ind, price)
        if sig is not None:
            logger.debug(f"{rule.name} -> {sig.signal} ({sig.description})")
            signals.append(sig)
    return signals


def compute_bias_score(signals: Sequence[IndicatorSignal],
                       rules: Sequence[IndicatorRule] = INDICATOR_RULES) -> int:
    """round(100 * weighted vote / total weight), always within [-100, 100]."""
    weights = {r.name: r.weight for r in rules}
    weighted_sum = 0.0
    total_weight = 0.0
    for s in signals:
        w = weights.get(s.name, 0.1)
        weighted_sum += VOTES[s.signal] * w
        total_weight += w
    if total_weight == 0:
        return 0
    return clamp_score(round(weighted_sum / total_weight * 100))


def clamp_score(score: float) -> int:
    return int(max(-100, min(100, round(score))))


def score_to_bias(score: float, thresholds: Optional[ThresholdSet] = None) -> str:
    thresholds = thresholds or get_thresholds()
    if score >= thresholds.bias:
        return BUY
    if score <= -thresholds.bias:
        return SELL
    return HOLD


validate_rule_table(INDICATOR_RULES)
validate_timeframe_weights(TIMEFRAME_WEIGHTS)
get_thresholds()
