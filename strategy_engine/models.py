from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional


@dataclass
class OptionLeg:
    action: str  # 'BUY' or 'SELL'
    option_type: str  # 'CE' or 'PE'
    strike: float


@dataclass
class StrategyRecommendation:
    """
    Standardized options strategy recommendation.
    max_profit / max_loss are rupees per lot; None means unlimited.
    """
    action: str
    option_type: str
    strike_price: float
    expected_move: float
    rationale: str
    risk_level: str
    strategy_name: str
    strikes: str
    legs: List[OptionLeg] = field(default_factory=list)
    max_profit: Optional[float] = None
    max_loss: Optional[float] = None
    breakevens: List[float] = field(default_factory=list)
    iv_context: str = ""
    dte: Optional[int] = None
    confidence: str = "MEDIUM"
    undefined_risk: bool = False

    @property
    def is_debit(self) -> bool:
        """Net premium buyer."""
        return self.action == 'BUY'

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class StrategyContext:
    """
    Snapshot of the market the builders price against.
    """
    price: float
    atr: float
    call_resistance: float
    put_support: float
    max_pain: float
    iv_context: str
    pcr_context: str
    dte: int
