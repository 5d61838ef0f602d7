"""
Vertical debit spreads: buy ATM, sell at the OI wall (or 1.5 ATR out),
at least one strike step away from the long leg.
Debit is estimated as 0.35 x ATR.
"""

from strategy_engine.models import OptionLeg, StrategyContext, StrategyRecommendation
from strategy_engine.strategies.base import STRIKE_STEP, BaseOptionsStrategy, per_lot, snap_strike

DEBIT_ATR = 0.35
SHORT_ATR = 1.5


class BullCallSpread(BaseOptionsStrategy):

    @property
    def name(self) -> str:
        return "Bull Call Spread"

    def build(self, ctx: StrategyContext) -> StrategyRecommendation:
        buy_strike = snap_strike(ctx.price)
        sell_strike = max(self.upper_anchor(ctx, SHORT_ATR), buy_strike + STRIKE_STEP)
        width = sell_strike - buy_strike
        debit = ctx.atr * DEBIT_ATR

        return StrategyRecommendation(
            action='BUY',
            option_type='CE',
            strike_price=buy_strike,
            expected_move=round(ctx.atr * SHORT_ATR, 2),
            rationale=(f"{self.name}: Buy {buy_strike:g}CE / Sell {sell_strike:g}CE. Bullish bias with "
                       f"defined risk. {ctx.iv_context}. {ctx.pcr_context}. DTE: {ctx.dte}d."),
            risk_level='MEDIUM',
            strategy_name=self.name,
            strikes=f"Buy {buy_strike:g}CE / Sell {sell_strike:g}CE",
            legs=[
                OptionLeg('BUY', 'CE', buy_strike),
                OptionLeg('SELL', 'CE', sell_strike),
            ],
            max_profit=per_lot(width - debit),
            max_loss=per_lot(debit),
            breakevens=[round(buy_strike + debit, 4)],
            iv_context=ctx.iv_context,
            dte=ctx.dte,
            confidence='HIGH'
        )


class BearPutSpread(BaseOptionsStrategy):

    @property
    def name(self) -> str:
        return "Bear Put Spread"

    def build(self, ctx: StrategyContext) -> StrategyRecommendation:
        buy_strike = snap_strike(ctx.price)
        sell_strike = min(self.lower_anchor(ctx, SHORT_ATR), buy_strike - STRIKE_STEP)
        width = buy_strike - sell_strike
        debit = ctx.atr * DEBIT_ATR

        return StrategyRecommendation(
            action='BUY',
            option_type='PE',
            strike_price=buy_strike,
            expected_move=round(ctx.atr * SHORT_ATR, 2),
            rationale=(f"{self.name}: Buy {buy_strike:g}PE / Sell {sell_strike:g}PE. Bearish bias with "
                       f"defined risk. {ctx.iv_context}. {ctx.pcr_context}. DTE: {ctx.dte}d."),
            risk_level='MEDIUM',
            strategy_name=self.name,
            strikes=f"Buy {buy_strike:g}PE / Sell {sell_strike:g}PE",
            legs=[
                OptionLeg('BUY', 'PE', buy_strike),
                OptionLeg('SELL', 'PE', sell_strike),
            ],
            max_profit=per_lot(width - debit),
            max_loss=per_lot(debit),
            breakevens=[round(buy_strike - debit, 4)],
            iv_context=ctx.iv_context,
            dte=ctx.dte,
            confidence='HIGH'
        )
