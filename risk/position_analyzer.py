import logging
from datetime import datetime
from typing import Optional

from natgas.data.greeks_provider import MarketGreeks
from natgas.utils.pricing import Greeks, calculate_greeks, is_in_the_money, years_to_expiry
from natgas.utils.symbol_parser import ParsedOption, is_future_symbol, parse_option_symbol
from risk.adjustments import PositionState, determine_risk_level, recommend_adjustment
from risk.lot_sizing import infer_lot_size, infer_position_scale
from risk.models import MarketCondition, Position, PositionAnalysis

logger = logging.getLogger(__name__)


class PositionAnalyzer:
    """
    Scores a single open position: instrument type, Greeks, moneyness,
    P&L %, risk tier and one adjustment recommendation.
    """

    def __init__(self, now: Optional[datetime] = None):
        self.now = now

    @staticmethod
    def pnl_percent(position: Position) -> float:
        """Return on entry premium, signed for the position direction."""
        if position.average_price <= 0:
            return 0.0
        if position.quantity > 0:
            return (position.last_price - position.average_price) / position.average_price * 100
        return (position.average_price - position.last_price) / position.average_price * 100

    def _model_greeks(self, option: ParsedOption, market: MarketCondition) -> Optional[Greeks]:
        if not market.underlying_price:
            return None
        sigma = market.implied_volatility / 100 if market.implied_volatility else None
        return calculate_greeks(
            option.type,
            market.underlying_price,
            option.strike,
            years_to_expiry(option.expiry_date, self.now),
            sigma=sigma
        )

    def option_greeks(self, option: ParsedOption, market: MarketCondition,
                      market_greeks: Optional[MarketGreeks] = None):
        """
        Market delta/theta merged with model gamma/vega/rho, or the full
        model when no market quote exists.

        Returns:
            (Greeks or None, source) where source is MARKET, MODEL or NONE
        """
        model = self._model_greeks(option, market)

        if market_greeks is not None:
            merged = Greeks(
                delta=market_greeks.delta,
                theta=market_greeks.theta,
                gamma=model.gamma if model else 0.0,
                vega=model.vega if model else 0.0,
                rho=model.rho if model else 0.0
            )
            return merged.rounded(), 'MARKET'

        if model is not None:
            return model.rounded(), 'MODEL'

        logger.debug(f"No underlying price for {option.underlying_symbol} {option.strike}{option.type}; greeks skipped")
        return None, 'NONE'

    def analyze_position(self, position: Position, market: MarketCondition,
                         market_greeks: Optional[MarketGreeks] = None) -> PositionAnalysis:
        lot_size = infer_lot_size(position)
        number_of_lots, quantity_units = infer_position_scale(position.quantity, lot_size)
        pnl_percent = self.pnl_percent(position)

        option = parse_option_symbol(position.trading_symbol, self.now)
        greeks = None
        greeks_source = 'NONE'
        is_itm = False

        if option.is_valid:
            instrument_type = 'OPTION'
            greeks, greeks_source = self.option_greeks(option, market, market_greeks)
            if market.underlying_price:
                is_itm = is_in_the_money(option.type, market.underlying_price, option.strike)
        elif is_future_symbol(position.trading_symbol):
            instrument_type = 'FUTURE'
            greeks = Greeks(delta=1.0 if number_of_lots >= 0 else -1.0, theta=0.0, gamma=0.0, vega=0.0, rho=0.0)
            greeks_source = 'MODEL'
        else:
            instrument_type = 'OTHER'

        state = PositionState(
            quantity=position.quantity,
            pnl_percent=pnl_percent,
            is_itm=is_itm,
            delta=greeks.delta if greeks else None,
            volatility=market.volatility
        )
        risk_level = determine_risk_level(state)
        recommendation = recommend_adjustment(state)

        if risk_level in ('HIGH', 'CRITICAL'):
            logger.warning(f"{position.trading_symbol}: risk {risk_level}, "
                           f"P&L {pnl_percent:.2f}% -> {recommendation.action}")

        return PositionAnalysis(
            symbol=position.trading_symbol,
            quantity=position.quantity,
            quantity_units=quantity_units,
            number_of_lots=number_of_lots,
            lot_size=lot_size,
            instrument_type=instrument_type,
            avg_price=position.average_price,
            ltp=position.last_price,
            pnl=round(position.pnl, 2),
            pnl_percent=round(pnl_percent, 2),
            risk_level=risk_level,
            greeks=greeks,
            is_itm=is_itm,
            greeks_source=greeks_source,
            recommendations=[recommendation]
        )
