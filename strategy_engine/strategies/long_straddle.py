from strategy_engine.models import OptionLeg, StrategyContext, StrategyRecommendation
from strategy_engine.strategies.base import BaseOptionsStrategy, per_lot, snap_strike

DEBIT_ATR = 0.7
PREFERRED_MIN_DTE = 15


class LongStraddle(BaseOptionsStrategy):
    """ATM call + put bought ahead of an expected move in a cheap-IV regime."""

    @property
    def name(self) -> str:
        return "Long Straddle"

    def build(self, ctx: StrategyContext) -> StrategyRecommendation:
        strike = snap_strike(ctx.price)
        debit = ctx.atr * DEBIT_ATR
        # Less time for the move to arrive
        confidence = 'MEDIUM' if ctx.dte >= PREFERRED_MIN_DTE else 'LOW'

        return StrategyRecommendation(
            action='BUY',
            option_type='CE',
            strike_price=strike,
            expected_move=round(ctx.atr, 2),
            rationale=(f"{self.name}: Buy {strike:g}CE + Buy {strike:g}PE. Low IV environment, cheap "
                       f"premium before expected move. {ctx.iv_context}. "
                       f"DTE: {ctx.dte}d (>{PREFERRED_MIN_DTE} preferred)."),
            risk_level='MEDIUM',
            strategy_name=self.name,
            strikes=f"{strike:g}CE + {strike:g}PE (ATM)",
            legs=[
                OptionLeg('BUY', 'CE', strike),
                OptionLeg('BUY', 'PE', strike),
            ],
            max_profit=None,
            max_loss=per_lot(debit),
            breakevens=[round(strike - debit, 4), round(strike + debit, 4)],
            iv_context=ctx.iv_context,
            dte=ctx.dte,
            confidence=confidence
        )
