import logging
from enum import Enum
from typing import Optional

from natgas.data.option_chain import OptionChainAnalysis

# Setup logger
logger = logging.getLogger(__name__)

BASELINE_IV = 42.0  # typical MCX NG ATM IV %
NEAR_EXPIRY_DTE = 7
DEFAULT_DTE = 15


class IVRegime(Enum):
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"


class PCRBias(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class RegimeManager:
    """
    Classifies the options regime from chain aggregates (ATM IV, PCR, DTE).
    """

    @staticmethod
    def classify_iv(atm_iv: float) -> IVRegime:
        """
        Classifies ATM IV against the 42% baseline.

        Logic:
        - >= 1.2x baseline: HIGH (favor selling premium)
        - <= 0.8x baseline: LOW (favor buying premium)
        - otherwise: NORMAL
        """
        ratio = atm_iv / BASELINE_IV
        if ratio >= 1.2:
            regime = IVRegime.HIGH
        elif ratio <= 0.8:
            regime = IVRegime.LOW
        else:
            regime = IVRegime.NORMAL

        logger.info(f"IV Regime Detected: [{regime.value}] (ATM IV: {atm_iv})")
        return regime

    @staticmethod
    def describe_iv(atm_iv: float, regime: IVRegime) -> str:
        ratio = atm_iv / BASELINE_IV
        if regime == IVRegime.HIGH:
            return f"High IV ({ratio:.1f}x avg), favor selling"
        if regime == IVRegime.LOW:
            return f"Low IV ({ratio:.1f}x avg), favor buying"
        return f"Normal IV ({ratio:.1f}x avg)"

    @staticmethod
    def classify_pcr(pcr: float) -> PCRBias:
        """
        Contrarian read of the Put-Call Ratio.
        PCR >= 1.2: put-heavy floor (bullish). PCR <= 0.8: call-heavy ceiling (bearish).
        """
        if pcr >= 1.2:
            return PCRBias.BULLISH
        if pcr <= 0.8:
            return PCRBias.BEARISH
        return PCRBias.NEUTRAL

    @staticmethod
    def describe_pcr(pcr: float) -> str:
        bias = RegimeManager.classify_pcr(pcr)
        if bias == PCRBias.BULLISH:
            return f"PCR {pcr:.2f}, contrarian bullish (put-heavy)"
        if bias == PCRBias.BEARISH:
            return f"PCR {pcr:.2f}, contrarian bearish (call-heavy)"
        return f"PCR {pcr:.2f}, neutral"

    @staticmethod
    def estimate_dte(chain: Optional[OptionChainAnalysis], explicit_dte: Optional[int] = None) -> int:
        """
        Days to expiry. Explicit expiry metadata wins; otherwise ATM IV is the
        proxy (IV expands into expiry). No chain at all assumes mid-cycle.
        """
        if explicit_dte is not None:
            return max(0, int(explicit_dte))
        if chain is None or chain.is_synthetic:
            return DEFAULT_DTE
        if chain.atm_iv > 60:
            return 5
        if chain.atm_iv > 40:
            return 10
        return 20

    @staticmethod
    def is_near_expiry(dte: int) -> bool:
        return dte < NEAR_EXPIRY_DTE
