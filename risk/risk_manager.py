import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

from natgas.data.greeks_provider import GreeksProvider, MarketGreeks
from natgas.utils.market_schedule import days_to_next_market_open
from .models import AnalyzedPortfolio, MarketCondition, PortfolioAnalysis, Position, PositionAnalysis
from .position_analyzer import PositionAnalyzer

logger = logging.getLogger(__name__)

NET_DELTA_THRESHOLD = 500


class RiskManager:
    """
    The Gatekeeper.
    Orchestrates position risk analysis:
    1. Market Greeks: one concurrent lookup per (underlying, expiry), cached.
    2. Per-position scoring: Greeks, P&L, risk tier, adjustment.
    3. Portfolio aggregation: net delta, net theta, decay until next open.
    """

    def __init__(self, greeks_provider: Optional[GreeksProvider] = None, use_market_greeks: bool = True):
        self.greeks_provider = greeks_provider if greeks_provider is not None else GreeksProvider()
        self.use_market_greeks = use_market_greeks

        logger.info(f"RiskManager Initialized. Market greeks: {use_market_greeks}")

    async def analyze_positions(self, positions: Iterable[Union[Position, Dict]],
                                market: MarketCondition,
                                now: Optional[datetime] = None) -> AnalyzedPortfolio:
        """
        Analyze open positions and aggregate portfolio exposure.

        Args:
            positions: Position objects or Kite-style broker dicts
            market: market seed; underlying_price enables model Greeks and ITM checks
            now: analysis time (defaults to the system clock)
        """
        active = [p if isinstance(p, Position) else Position.from_broker(p) for p in positions]
        active = [p for p in active if p.quantity != 0]

        market_greeks: Dict[str, MarketGreeks] = {}
        if self.use_market_greeks and active:
            market_greeks = await self.greeks_provider.fetch_greeks_for_positions(
                [p.trading_symbol for p in active], now
            )

        analyzer = PositionAnalyzer(now)
        analyses = [
            analyzer.analyze_position(p, market, market_greeks.get(p.trading_symbol))
            for p in active
        ]

        portfolio = self.aggregate_portfolio(analyses, now)
        logger.info(f"Analyzed {len(analyses)} positions. Net Delta: {portfolio.net_delta}, "
                    f"Day Decay: {portfolio.day_decay}")
        return AnalyzedPortfolio(positions=analyses, portfolio=portfolio)

    @staticmethod
    def aggregate_portfolio(analyses: List[PositionAnalysis], now: Optional[datetime] = None) -> PortfolioAnalysis:
        """
        Net delta = futures lots x lot size + option delta x lots x lot size.
        Net theta = option theta x lots. Day decay = net theta x days to next open.
        """
        net_delta = 0.0
        net_theta = 0.0

        for pos in analyses:
            if pos.instrument_type == 'FUTURE':
                net_delta += pos.number_of_lots * pos.lot_size
            elif pos.instrument_type == 'OPTION' and pos.greeks is not None:
                net_delta += pos.greeks.delta * pos.number_of_lots * pos.lot_size
                net_theta += pos.greeks.theta * pos.number_of_lots

        day_decay = net_theta * days_to_next_market_open(now)

        return PortfolioAnalysis(
            net_delta=round(net_delta, 2),
            net_theta=round(net_theta, 4),
            day_decay=round(day_decay, 2),
            recommendations=RiskManager.portfolio_notes(net_delta, day_decay)
        )

    @staticmethod
    def portfolio_notes(net_delta: float, day_decay: float) -> List[str]:
        notes = []
        if abs(net_delta) > NET_DELTA_THRESHOLD:
            if net_delta > 0:
                notes.append(f"High Positive Delta (+{net_delta:.0f}). Portfolio is Long biased. "
                             f"Consider selling Calls or buying Puts to neutralize.")
            else:
                notes.append(f"High Negative Delta ({net_delta:.0f}). Portfolio is Short biased. "
                             f"Consider selling Puts or buying Calls to neutralize.")
        else:
            notes.append(f"Portfolio Delta is balanced ({net_delta:.0f}). Good for neutral strategy.")

        if day_decay > 0:
            notes.append(f"Positive decay (+Rs {day_decay:,.0f} until next open).")
        elif day_decay < 0:
            notes.append(f"Negative decay (Rs {day_decay:,.0f} until next open).")
        return notes
