from strategy_engine.models import OptionLeg, StrategyContext, StrategyRecommendation
from strategy_engine.strategies.base import BaseOptionsStrategy, per_lot

PREMIUM_ATR = 0.55
SHORT_ATR = 1.8


class ShortStrangle(BaseOptionsStrategy):
    """Naked premium sale at the OI walls. Undefined risk."""

    @property
    def name(self) -> str:
        return "Short Strangle"

    def build(self, ctx: StrategyContext) -> StrategyRecommendation:
        call_strike = self.upper_anchor(ctx, SHORT_ATR)
        put_strike = self.lower_anchor(ctx, SHORT_ATR)
        credit = ctx.atr * PREMIUM_ATR

        return StrategyRecommendation(
            action='SELL',
            option_type='CE',
            strike_price=call_strike,
            expected_move=round(ctx.atr * SHORT_ATR, 2),
            rationale=(f"{self.name}: Sell {call_strike:g}CE + Sell {put_strike:g}PE. {ctx.iv_context}. "
                       f"Collect premium in high-IV environment. DTE: {ctx.dte}d. "
                       f"Undefined risk, use stop at 2x premium."),
            risk_level='HIGH',
            strategy_name=self.name,
            strikes=f"{put_strike:g}PE / {call_strike:g}CE",
            legs=[
                OptionLeg('SELL', 'PE', put_strike),
                OptionLeg('SELL', 'CE', call_strike),
            ],
            max_profit=per_lot(credit),
            max_loss=None,
            breakevens=[round(put_strike - credit, 4), round(call_strike + credit, 4)],
            iv_context=ctx.iv_context,
            dte=ctx.dte,
            confidence='MEDIUM',
            undefined_risk=True
        )
