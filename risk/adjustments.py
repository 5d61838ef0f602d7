"""
Risk tiering and adjustment rules for a single position.

Both are ordered tables evaluated top to bottom; the first matching row wins.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from risk.models import AdjustmentRecommendation

CRITICAL_LOSS_PERCENT = -15.0
HIGH_LOSS_PERCENT = -10.0
MEDIUM_LOSS_PERCENT = -5.0
LARGE_POSITION_QTY = 1000

MAX_PROFIT_PERCENT = 90.0
STOP_LOSS_PERCENT = -15.0
HEDGE_DELTA = 0.6
BOOK_PROFIT_PERCENT = 50.0


@dataclass
class PositionState:
    """Inputs the rule tables read."""
    quantity: int
    pnl_percent: float
    is_itm: bool
    delta: Optional[float]
    volatility: str

    @property
    def is_short(self) -> bool:
        return self.quantity < 0


RISK_TIERS: List[Tuple[str, Callable[[PositionState], bool]]] = [
    ('CRITICAL', lambda s: s.pnl_percent < CRITICAL_LOSS_PERCENT
        or (s.volatility == 'HIGH' and abs(s.quantity) > LARGE_POSITION_QTY)),
    ('HIGH', lambda s: s.pnl_percent < HIGH_LOSS_PERCENT or (s.is_short and s.is_itm)),
    ('MEDIUM', lambda s: s.pnl_percent < MEDIUM_LOSS_PERCENT),
]


@dataclass(frozen=True)
class AdjustmentRule:
    action: str
    urgency: str
    applies: Callable[[PositionState], bool]
    reason: Callable[[PositionState], str]
    quantity: Optional[Callable[[PositionState], int]] = None


def _full_size(s: PositionState) -> int:
    return abs(s.quantity)


def _half_size(s: PositionState) -> int:
    return max(1, abs(s.quantity) // 2)


ADJUSTMENT_RULES: List[AdjustmentRule] = [
    AdjustmentRule(
        action='ROLL', urgency='HIGH',
        applies=lambda s: s.is_short and s.is_itm,
        reason=lambda s: ("ALERT: Option is In-The-Money (ITM). Gamma risk is high. "
                          "Consider rolling out and away to OTM to protect capital."),
        quantity=_full_size,
    ),
    AdjustmentRule(
        action='EXIT', urgency='HIGH',
        applies=lambda s: s.is_short and s.pnl_percent > MAX_PROFIT_PERCENT,
        reason=lambda s: (f"ALERT: Max Profit approached ({s.pnl_percent:.1f}%). Theta decay is minimal now. "
                          f"Close position to free up margin."),
        quantity=_full_size,
    ),
    AdjustmentRule(
        action='EXIT', urgency='HIGH',
        applies=lambda s: s.pnl_percent < STOP_LOSS_PERCENT,
        reason=lambda s: f"Critical loss of {s.pnl_percent:.2f}%. Exit to prevent further damage.",
        quantity=_full_size,
    ),
    AdjustmentRule(
        action='HEDGE', urgency='MEDIUM',
        applies=lambda s: s.is_short and s.delta is not None and abs(s.delta) > HEDGE_DELTA,
        reason=lambda s: f"High Delta ({s.delta:.2f}). Position is acting like a Future. Consider hedging.",
    ),
    AdjustmentRule(
        action='REDUCE', urgency='LOW',
        applies=lambda s: s.pnl_percent > BOOK_PROFIT_PERCENT,
        reason=lambda s: f"Strong profit ({s.pnl_percent:.0f}%). Consider booking partial profits.",
        quantity=_half_size,
    ),
]


def determine_risk_level(state: PositionState) -> str:
    for level, applies in RISK_TIERS:
        if applies(state):
            return level
    return 'LOW'


def recommend_adjustment(state: PositionState) -> AdjustmentRecommendation:
    for rule in ADJUSTMENT_RULES:
        if rule.applies(state):
            return AdjustmentRecommendation(
                action=rule.action,
                reason=rule.reason(state),
                urgency=rule.urgency,
                suggested_quantity=rule.quantity(state) if rule.quantity else None
            )
    return AdjustmentRecommendation(
        action='HOLD',
        reason=f"Position is stable. Monitor P&L ({state.pnl_percent:.2f}%).",
        urgency='LOW'
    )
