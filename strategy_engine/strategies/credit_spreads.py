"""
Vertical credit spreads: sell at the OI wall (or 1 ATR out), buy 15 points further.
Credit is estimated as 0.25 x ATR.
"""

from strategy_engine.models import OptionLeg, StrategyContext, StrategyRecommendation
from strategy_engine.strategies.base import BaseOptionsStrategy, WING_WIDTH, per_lot, snap_strike

CREDIT_ATR = 0.25
SHORT_ATR = 1.0


class BullPutSpread(BaseOptionsStrategy):

    @property
    def name(self) -> str:
        return "Bull Put Spread"

    def build(self, ctx: StrategyContext) -> StrategyRecommendation:
        sell_strike = self.lower_anchor(ctx, SHORT_ATR)
        buy_strike = snap_strike(sell_strike - WING_WIDTH)
        credit = ctx.atr * CREDIT_ATR

        return StrategyRecommendation(
            action='SELL',
            option_type='PE',
            strike_price=sell_strike,
            expected_move=round(ctx.atr, 2),
            rationale=(f"{self.name}: Sell {sell_strike:g}PE / Buy {buy_strike:g}PE. Bullish premium "
                       f"collection at OI support. {ctx.iv_context}. DTE: {ctx.dte}d."),
            risk_level='LOW',
            strategy_name=self.name,
            strikes=f"Sell {sell_strike:g}PE / Buy {buy_strike:g}PE",
            legs=[
                OptionLeg('SELL', 'PE', sell_strike),
                OptionLeg('BUY', 'PE', buy_strike),
            ],
            max_profit=per_lot(credit),
            max_loss=per_lot(WING_WIDTH - credit),
            breakevens=[round(sell_strike - credit, 4)],
            iv_context=ctx.iv_context,
            dte=ctx.dte,
            confidence='MEDIUM'
        )


class BearCallSpread(BaseOptionsStrategy):

    @property
    def name(self) -> str:
        return "Bear Call Spread"

    def build(self, ctx: StrategyContext) -> StrategyRecommendation:
        sell_strike = self.upper_anchor(ctx, SHORT_ATR)
        buy_strike = snap_strike(sell_strike + WING_WIDTH)
        credit = ctx.atr * CREDIT_ATR

        return StrategyRecommendation(
            action='SELL',
            option_type='CE',
            strike_price=sell_strike,
            expected_move=round(ctx.atr, 2),
            rationale=(f"{self.name}: Sell {sell_strike:g}CE / Buy {buy_strike:g}CE. Bearish premium "
                       f"collection at OI resistance. {ctx.iv_context}. DTE: {ctx.dte}d."),
            risk_level='LOW',
            strategy_name=self.name,
            strikes=f"Sell {sell_strike:g}CE / Buy {buy_strike:g}CE",
            legs=[
                OptionLeg('SELL', 'CE', sell_strike),
                OptionLeg('BUY', 'CE', buy_strike),
            ],
            max_profit=per_lot(credit),
            max_loss=per_lot(WING_WIDTH - credit),
            breakevens=[round(sell_strike + credit, 4)],
            iv_context=ctx.iv_context,
            dte=ctx.dte,
            confidence='MEDIUM'
        )
