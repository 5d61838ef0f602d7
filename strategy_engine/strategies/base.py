import math
from abc import ABC, abstractmethod
from typing import Optional

from strategy_engine.models import StrategyContext, StrategyRecommendation

LOT_SIZE = 125  # MCX NATURALGAS, MMBtu per lot
STRIKE_STEP = 5
WING_WIDTH = STRIKE_STEP * 3


def snap_strike(price: float) -> float:
    """Round to the exchange strike grid, halves up."""
    return float(math.floor(price / STRIKE_STEP + 0.5) * STRIKE_STEP)


def per_lot(points: Optional[float]) -> Optional[float]:
    """Premium points -> rupees per lot, floored at zero. None stays unlimited."""
    if points is None:
        return None
    return round(max(0.0, points) * LOT_SIZE, 2)


class BaseOptionsStrategy(ABC):
    """
    The Contract: Abstract Base Class for all options strategy builders.
    Ensures 'Plug-and-Play' registration with the StrategySelector.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the strategy (e.g., 'Iron Condor')"""
        pass

    @abstractmethod
    def build(self, ctx: StrategyContext) -> StrategyRecommendation:
        """
        Price the strategy against the current market snapshot.

        Args:
            ctx: price, ATR, chain walls, IV/PCR labels and DTE

        Returns:
            StrategyRecommendation with strikes, per-lot P&L bounds and breakevens.
        """
        pass

    @staticmethod
    def upper_anchor(ctx: StrategyContext, atr_multiple: float) -> float:
        """Call-side wall when it sits above price, else price + n ATR."""
        level = ctx.call_resistance if ctx.call_resistance > ctx.price else ctx.price + atr_multiple * ctx.atr
        return snap_strike(level)

    @staticmethod
    def lower_anchor(ctx: StrategyContext, atr_multiple: float) -> float:
        """Put-side wall when it sits below price, else price - n ATR."""
        level = ctx.put_support if 0 < ctx.put_support < ctx.price else ctx.price - atr_multiple * ctx.atr
        return snap_strike(level)
