from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from natgas.signals.models import SignalReport
from natgas.utils.pricing import Greeks

TREND_BY_SIGNAL = {'BUY': 'BULLISH', 'SELL': 'BEARISH'}
VOLATILITY_BY_CONDITION = {'VOLATILE': 'HIGH', 'RANGING': 'LOW'}


@dataclass
class Position:
    """
    Open broker position. quantity is signed (negative = short) and may be
    reported in units or in lots depending on the broker.
    """
    trading_symbol: str
    quantity: int
    average_price: float
    last_price: float
    pnl: float = 0.0
    multiplier: float = 1.0

    @classmethod
    def from_broker(cls, data: Dict) -> 'Position':
        """Create from a Kite-style position record."""
        return cls(
            trading_symbol=str(data.get('tradingsymbol') or data.get('trading_symbol') or ''),
            quantity=int(data.get('quantity') or 0),
            average_price=float(data.get('average_price') or 0),
            last_price=float(data.get('last_price') or 0),
            pnl=float(data.get('pnl') or 0),
            multiplier=float(data.get('multiplier') or 1)
        )


@dataclass
class MarketCondition:
    """
    Market seed for position analysis.
    implied_volatility is in percent (e.g. 45.0); None uses the model default.
    """
    trend: str = 'NEUTRAL'  # BULLISH, BEARISH, NEUTRAL
    volatility: str = 'MEDIUM'  # LOW, MEDIUM, HIGH
    rsi: Optional[float] = None
    atr: Optional[float] = None
    underlying_price: Optional[float] = None
    implied_volatility: Optional[float] = None

    @classmethod
    def from_report(cls, report: SignalReport, implied_volatility: Optional[float] = None) -> 'MarketCondition':
        daily = report.timeframe('1D') or (report.timeframes[0] if report.timeframes else None)
        if implied_volatility is None and report.option_chain is not None and not report.option_chain.is_synthetic:
            implied_volatility = report.option_chain.atm_iv
        return cls(
            trend=TREND_BY_SIGNAL.get(report.overall.signal, 'NEUTRAL'),
            volatility=VOLATILITY_BY_CONDITION.get(report.market_condition, 'MEDIUM'),
            rsi=daily.indicators.rsi if daily else None,
            atr=daily.indicators.atr if daily else None,
            underlying_price=report.current_price,
            implied_volatility=implied_volatility
        )


@dataclass
class AdjustmentRecommendation:
    action: str  # HOLD, ADD, REDUCE, EXIT, HEDGE, ROLL
    reason: str
    urgency: str  # LOW, MEDIUM, HIGH
    suggested_quantity: Optional[int] = None
    target_price: Optional[float] = None


@dataclass
class PositionAnalysis:
    symbol: str
    quantity: int
    quantity_units: int
    number_of_lots: int
    lot_size: int
    instrument_type: str  # OPTION, FUTURE, OTHER
    avg_price: float
    ltp: float
    pnl: float
    pnl_percent: float
    risk_level: str  # LOW, MEDIUM, HIGH, CRITICAL
    greeks: Optional[Greeks] = None
    is_itm: Optional[bool] = None
    greeks_source: str = 'NONE'  # MARKET, MODEL, NONE
    recommendations: List[AdjustmentRecommendation] = field(default_factory=list)

    @property
    def is_short(self) -> bool:
        return self.quantity < 0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class PortfolioAnalysis:
    net_delta: float
    net_theta: float
    day_decay: float
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class AnalyzedPortfolio:
    positions: List[PositionAnalysis]
    portfolio: PortfolioAnalysis

    def to_dict(self) -> Dict:
        return asdict(self)
