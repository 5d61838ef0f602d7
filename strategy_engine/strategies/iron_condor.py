from strategy_engine.models import OptionLeg, StrategyContext, StrategyRecommendation
from strategy_engine.strategies.base import BaseOptionsStrategy, WING_WIDTH, per_lot, snap_strike

PREMIUM_ATR = 0.4
SHORT_ATR = 1.5


class IronCondor(BaseOptionsStrategy):
    """
    Short strangle at the OI walls with 15-point protective wings.
    Net credit is estimated as 0.4 x ATR.
    """

    @property
    def name(self) -> str:
        return "Iron Condor"

    def build(self, ctx: StrategyContext) -> StrategyRecommendation:
        call_sell = self.upper_anchor(ctx, SHORT_ATR)
        call_buy = snap_strike(call_sell + WING_WIDTH)
        put_sell = self.lower_anchor(ctx, SHORT_ATR)
        put_buy = snap_strike(put_sell - WING_WIDTH)
        credit = ctx.atr * PREMIUM_ATR

        return StrategyRecommendation(
            action='SELL',
            option_type='CE',
            strike_price=call_sell,
            expected_move=round(ctx.atr * SHORT_ATR, 2),
            rationale=(f"{self.name}: Sell {call_sell:g}CE / Buy {call_buy:g}CE + Sell {put_sell:g}PE / "
                       f"Buy {put_buy:g}PE. Range-bound with {ctx.iv_context}. "
                       f"Max pain {ctx.max_pain:g}. DTE: {ctx.dte}d."),
            risk_level='MEDIUM',
            strategy_name=self.name,
            strikes=f"{put_buy:g}PE / {put_sell:g}PE / {call_sell:g}CE / {call_buy:g}CE",
            legs=[
                OptionLeg('BUY', 'PE', put_buy),
                OptionLeg('SELL', 'PE', put_sell),
                OptionLeg('SELL', 'CE', call_sell),
                OptionLeg('BUY', 'CE', call_buy),
            ],
            max_profit=per_lot(credit),
            max_loss=per_lot(WING_WIDTH - credit),
            breakevens=[round(put_sell - credit, 4), round(call_sell + credit, 4)],
            iv_context=ctx.iv_context,
            dte=ctx.dte,
            confidence='MEDIUM'
        )
