"""
Option-chain snapshot models and open-interest analytics.

`analyze_chain` turns raw strikes into PCR, max pain and OI walls.
`synthetic_chain` stands in when no chain data is available so the
strategy builders always have support/resistance to anchor on.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

ATM_IV_FALLBACK = 45.0
BASELINE_IV = 42.0
BASELINE_PCR = 1.0
SYNTHETIC_ATR_MULTIPLE = 2.0


@dataclass
class OptionQuote:
    ltp: float = 0.0
    oi: float = 0.0
    volume: float = 0.0
    iv: float = 0.0


@dataclass
class OptionStrike:
    strike_price: float
    ce: OptionQuote = field(default_factory=OptionQuote)
    pe: OptionQuote = field(default_factory=OptionQuote)

    @classmethod
    def from_dict(cls, data: Dict) -> 'OptionStrike':
        def quote(raw: Optional[Dict]) -> OptionQuote:
            raw = raw or {}
            return OptionQuote(
                ltp=float(raw.get('ltp') or 0),
                oi=float(raw.get('oi') or 0),
                volume=float(raw.get('volume', raw.get('vol')) or 0),
                iv=float(raw.get('iv') or 0)
            )
        strike = data.get('strike_price', data.get('strikePrice'))
        return cls(strike_price=float(strike), ce=quote(data.get('ce')), pe=quote(data.get('pe')))


@dataclass
class OptionChainAnalysis:
    pcr: float
    max_pain: float
    call_resistance: float
    put_support: float
    atm_iv: float
    chain: List[OptionStrike] = field(default_factory=list)
    is_synthetic: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


def chain_to_frame(chain: List[OptionStrike]) -> pd.DataFrame:
    """One row per strike, sorted ascending."""
    rows = [{
        'strike': s.strike_price,
        'ce_oi': s.ce.oi,
        'pe_oi': s.pe.oi,
        'ce_iv': s.ce.iv,
        'pe_iv': s.pe.iv,
    } for s in chain]
    df = pd.DataFrame(rows, columns=['strike', 'ce_oi', 'pe_oi', 'ce_iv', 'pe_iv'])
    return df.sort_values('strike').reset_index(drop=True)


def max_pain_strike(df: pd.DataFrame) -> float:
    """
    Strike minimising total writer payout:
    sum over strikes s of max(0, k - s) * CE OI(s) + max(0, s - k) * PE OI(s).
    """
    strikes = df['strike'].to_numpy()
    ce_oi = df['ce_oi'].to_numpy()
    pe_oi = df['pe_oi'].to_numpy()

    # rows: candidate expiry price k, cols: strike s
    diff = strikes[:, None] - strikes[None, :]
    pain = (np.maximum(diff, 0) * ce_oi).sum(axis=1) + (np.maximum(-diff, 0) * pe_oi).sum(axis=1)
    return float(strikes[int(np.argmin(pain))])


def atm_implied_volatility(df: pd.DataFrame, spot: Optional[float]) -> float:
    """Average CE/PE IV at the strike nearest spot; fixed fallback when unquoted."""
    if spot is None or df.empty:
        return ATM_IV_FALLBACK
    row = df.iloc[int((df['strike'] - spot).abs().to_numpy().argmin())]
    quoted = [iv for iv in (row['ce_iv'], row['pe_iv']) if iv > 0]
    if not quoted:
        return ATM_IV_FALLBACK
    return round(float(np.mean(quoted)), 2)


def analyze_chain(chain: List[OptionStrike], spot: Optional[float] = None) -> Optional[OptionChainAnalysis]:
    """
    OI analytics for a raw chain. Returns None for an empty chain.

    - PCR: total PE OI / total CE OI (0 when there is no call OI)
    - Call resistance / put support: strikes with the highest CE / PE OI
    """
    if not chain:
        return None

    df = chain_to_frame(chain)
    total_ce_oi = float(df['ce_oi'].sum())
    total_pe_oi = float(df['pe_oi'].sum())

    pcr = round(total_pe_oi / total_ce_oi, 2) if total_ce_oi > 0 else 0.0
    call_resistance = float(df.loc[df['ce_oi'].idxmax(), 'strike']) if df['ce_oi'].max() > 0 else 0.0
    put_support = float(df.loc[df['pe_oi'].idxmax(), 'strike']) if df['pe_oi'].max() > 0 else 0.0

    analysis = OptionChainAnalysis(
        pcr=pcr,
        max_pain=max_pain_strike(df),
        call_resistance=call_resistance,
        put_support=put_support,
        atm_iv=atm_implied_volatility(df, spot),
        chain=sorted(chain, key=lambda s: s.strike_price),
        is_synthetic=False
    )
    logger.debug(f"Chain analysed: {len(chain)} strikes, PCR {analysis.pcr}, max pain {analysis.max_pain}")
    return analysis


def synthetic_chain(price: float, atr: float) -> OptionChainAnalysis:
    """Baseline chain: OI walls at +/- 2 ATR, max pain at price, neutral PCR."""
    return OptionChainAnalysis(
        pcr=BASELINE_PCR,
        max_pain=price,
        call_resistance=price + SYNTHETIC_ATR_MULTIPLE * atr,
        put_support=price - SYNTHETIC_ATR_MULTIPLE * atr,
        atm_iv=BASELINE_IV,
        chain=[],
        is_synthetic=True
    )
