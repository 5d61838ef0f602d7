from dataclasses import dataclass, field, asdict, fields
from datetime import datetime
from typing import Dict, List, Optional

from natgas.data.option_chain import OptionChainAnalysis
from strategy_engine.models import StrategyRecommendation

TIMEFRAMES = ('1H', '3H', '1D', '1W', '1M')


@dataclass
class Candle:
    """One closed OHLCV bar. Series are ordered ascending by time."""
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    def to_dict(self) -> Dict:
        data = asdict(self)
        if isinstance(self.time, datetime):
            data['time'] = self.time.isoformat()
        return data


@dataclass
class IndicatorValues:
    """
    Snapshot of every indicator at a timeframe's latest candle.
    A field stays None until its minimum history exists.
    """
    rsi: Optional[float] = None
    macd_line: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    ema20: Optional[float] = None
    ema50: Optional[float] = None
    stoch_k: Optional[float] = None
    stoch_d: Optional[float] = None
    bollinger_upper: Optional[float] = None
    bollinger_middle: Optional[float] = None
    bollinger_lower: Optional[float] = None
    adx: Optional[float] = None
    plus_di: Optional[float] = None
    minus_di: Optional[float] = None
    atr: Optional[float] = None
    vwap: Optional[float] = None
    pivot_point: Optional[float] = None
    pivot_r1: Optional[float] = None
    pivot_r2: Optional[float] = None
    pivot_r3: Optional[float] = None
    pivot_s1: Optional[float] = None
    pivot_s2: Optional[float] = None
    pivot_s3: Optional[float] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def rounded(self, decimals: int = 4) -> 'IndicatorValues':
        return IndicatorValues(**{
            f.name: None if getattr(self, f.name) is None else round(getattr(self, f.name), decimals)
            for f in fields(self)
        })

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class IndicatorSignal:
    name: str
    value: float
    signal: str  # BUY, SELL or HOLD
    description: str

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class TimeframeSignal:
    """Bias for one timeframe plus the evidence behind it."""
    timeframe: str
    bias: str
    bias_score: int
    indicators: IndicatorValues
    signals: List[IndicatorSignal]
    last_price: float
    reference_close: float
    price_change: float
    price_change_percent: float
    interval_price_change: float
    interval_price_change_percent: float
    candle_count: int

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class OverallSignal:
    signal: str
    score: int
    confidence: str  # LOW, MEDIUM or HIGH
    dominant_move_percent: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class FuturesSetup:
    timeframe: str
    direction: str  # BUY or SELL
    entry: float
    stop_loss: float
    target1: float
    target2: float
    risk_reward_ratio: float
    atr_value: float
    rationale: str
    is_lean: bool = False  # direction inferred while the overall signal is HOLD

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class SignalReport:
    """Full engine response for one analysis run."""
    timestamp: datetime
    current_price: float
    overall: OverallSignal
    timeframes: List[TimeframeSignal]
    market_condition: str
    futures_setup: Optional[FuturesSetup]
    futures_setups: List[FuturesSetup] = field(default_factory=list)
    options_recommendations: List[StrategyRecommendation] = field(default_factory=list)
    option_chain: Optional[OptionChainAnalysis] = None
    summary: str = ""
    live_change: Optional[float] = None
    live_change_percent: Optional[float] = None

    def timeframe(self, name: str) -> Optional[TimeframeSignal]:
        for tf in self.timeframes:
            if tf.timeframe == name:
                return tf
        return None

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data
