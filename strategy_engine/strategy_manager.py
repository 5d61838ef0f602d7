import logging
from typing import Dict, List, Optional

from natgas.data.option_chain import OptionChainAnalysis, synthetic_chain
from natgas.signals.models import IndicatorValues
from .models import StrategyContext, StrategyRecommendation
from .regime import IVRegime, PCRBias, RegimeManager
from .strategies.base import BaseOptionsStrategy
from .strategies.credit_spreads import BearCallSpread, BullPutSpread
from .strategies.debit_spreads import BearPutSpread, BullCallSpread
from .strategies.iron_condor import IronCondor
from .strategies.long_straddle import LongStraddle
from .strategies.short_strangle import ShortStrangle

logger = logging.getLogger(__name__)

ATR_FALLBACK_PERCENT = 0.025

IRON_CONDOR = "Iron Condor"
SHORT_STRANGLE = "Short Strangle"
BULL_CALL = "Bull Call Spread"
BEAR_PUT = "Bear Put Spread"
BULL_PUT = "Bull Put Spread"
BEAR_CALL = "Bear Call Spread"
LONG_STRADDLE = "Long Straddle"


class StrategySelector:
    """
    The Orchestrator.
    Maps {IV regime, PCR skew, DTE, directional bias, market condition}
    to options strategies and routes them to the registered builders.
    """

    def __init__(self):
        self.strategies: Dict[str, BaseOptionsStrategy] = {}
        for strategy in (IronCondor(), ShortStrangle(), BullCallSpread(), BearPutSpread(),
                         BullPutSpread(), BearCallSpread(), LongStraddle()):
            self.register_strategy(strategy)

    def register_strategy(self, strategy: BaseOptionsStrategy):
        """Adds (or replaces) a builder by name."""
        self.strategies[strategy.name] = strategy
        logger.debug(f"Strategy Registered: {strategy.name}")

    @staticmethod
    def effective_bias(overall_signal: str, pcr_bias: PCRBias) -> str:
        """Overall bias, or the PCR contrarian read when the engine is neutral."""
        if overall_signal != 'HOLD':
            return overall_signal
        if pcr_bias == PCRBias.BULLISH:
            return 'BUY'
        if pcr_bias == PCRBias.BEARISH:
            return 'SELL'
        return 'HOLD'

    @staticmethod
    def select(iv_regime: IVRegime, overall_signal: str, bias: str,
               market_condition: str, near_expiry: bool) -> List[str]:
        """
        Decision matrix. Returns strategy names in priority order.
        No debit strategy is selected near expiry.
        """
        names: List[str] = []

        if iv_regime == IVRegime.HIGH:
            # Favor selling premium
            if market_condition == 'RANGING' or overall_signal == 'HOLD':
                names.append(SHORT_STRANGLE if near_expiry else IRON_CONDOR)
            if bias == 'BUY':
                names.append(BULL_PUT)
            elif bias == 'SELL':
                names.append(BEAR_CALL)

        elif iv_regime == IVRegime.LOW:
            # Favor buying cheap premium, but never into expiry
            if not near_expiry:
                if bias == 'BUY':
                    names.append(BULL_CALL)
                elif bias == 'SELL':
                    names.append(BEAR_PUT)
                else:
                    names.append(LONG_STRADDLE)
            else:
                if bias == 'BUY':
                    names.append(BULL_PUT)
                elif bias == 'SELL':
                    names.append(BEAR_CALL)
                else:
                    names.append(IRON_CONDOR)

        else:
            if bias == 'BUY':
                if not near_expiry:
                    names.append(BULL_CALL)
                names.append(BULL_PUT)
            elif bias == 'SELL':
                if not near_expiry:
                    names.append(BEAR_PUT)
                names.append(BEAR_CALL)
            else:
                names.append(IRON_CONDOR)

        if not names:
            names.append(IRON_CONDOR)
        return names

    def recommend(self, price: float, indicators: IndicatorValues, overall_signal: str,
                  market_condition: str, chain: Optional[OptionChainAnalysis] = None,
                  dte: Optional[int] = None) -> List[StrategyRecommendation]:
        """
        Select and price options strategies for the current snapshot.

        Args:
            price: current underlying price
            indicators: daily indicator snapshot (ATR is used for strikes and premiums)
            overall_signal: 'BUY', 'SELL' or 'HOLD' from the signal engine
            market_condition: 'TRENDING', 'RANGING' or 'VOLATILE'
            chain: option-chain analytics; a synthetic chain is used when absent
            dte: explicit days to expiry, if known

        Returns:
            List of StrategyRecommendation, never empty.
        """
        atr = indicators.atr if indicators.atr else price * ATR_FALLBACK_PERCENT

        if chain is None:
            logger.warning("No option chain data, using synthetic chain")
            chain = synthetic_chain(price, atr)

        days = RegimeManager.estimate_dte(chain, dte)
        near_expiry = RegimeManager.is_near_expiry(days)
        iv_regime = RegimeManager.classify_iv(chain.atm_iv)
        pcr_bias = RegimeManager.classify_pcr(chain.pcr)
        bias = self.effective_bias(overall_signal, pcr_bias)

        ctx = StrategyContext(
            price=price,
            atr=atr,
            call_resistance=chain.call_resistance,
            put_support=chain.put_support,
            max_pain=chain.max_pain,
            iv_context=RegimeManager.describe_iv(chain.atm_iv, iv_regime),
            pcr_context=RegimeManager.describe_pcr(chain.pcr),
            dte=days
        )

        names = self.select(iv_regime, overall_signal, bias, market_condition, near_expiry)
        logger.info(f"Strategy selection: IV {iv_regime.value}, bias {bias}, {market_condition}, "
                    f"DTE {days} -> {', '.join(names)}")

        return [self.strategies[name].build(ctx) for name in names]
