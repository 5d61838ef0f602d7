import numpy as np
from scipy.stats import norm
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional
import logging

from natgas import config

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25
MIN_PREMIUM = 0.05  # Min tick


@dataclass
class Greeks:
    """
    Black-Scholes sensitivities for one option leg.
    theta is daily decay, vega is per 1% IV move.
    """
    delta: float
    theta: float
    gamma: float
    vega: float
    rho: float

    def to_dict(self) -> dict:
        return asdict(self)

    def rounded(self, digits: int = 4) -> 'Greeks':
        return Greeks(
            delta=round(self.delta, digits),
            theta=round(self.theta, digits),
            gamma=round(self.gamma, digits),
            vega=round(self.vega, digits),
            rho=round(self.rho, digits)
        )


def is_in_the_money(option_type: str, spot: float, strike: float) -> bool:
    return spot > strike if option_type == "CE" else spot < strike


def calculate_greeks(option_type: str, S: float, K: float, T: float,
                     r: Optional[float] = None, sigma: Optional[float] = None) -> Greeks:
    """
    option_type: "CE" or "PE"
    S: Underlying Price
    K: Strike Price
    T: Time to Expiry (in years)
    r: Risk-free rate (decimal, e.g., 0.07)
    sigma: Implied Volatility (decimal, e.g., 0.60)
    """
    r = config.RISK_FREE_RATE if r is None else r
    sigma = config.DEFAULT_VOLATILITY if sigma is None else sigma

    if T > 0 and (S <= 0 or K <= 0 or sigma <= 0):
        logger.warning(f"Greeks requested with invalid inputs (S={S}, K={K}, sigma={sigma}); using expiry values")
        T = 0.0

    if T <= 0:
        # Expired or expiring today: delta is 1 / -1 if ITM, 0 if OTM
        itm = is_in_the_money(option_type, S, K)
        delta = (1.0 if option_type == "CE" else -1.0) if itm else 0.0
        return Greeks(delta=delta, theta=0.0, gamma=0.0, vega=0.0, rho=0.0)

    sqrt_t = np.sqrt(T)
    d1 = (np.log(S / K) + (r + 0.5 * sigma ** 2) * T) / (sigma * sqrt_t)
    d2 = d1 - sigma * sqrt_t

    nd1 = norm.cdf(d1)
    nd2 = norm.cdf(d2)
    pdf_d1 = norm.pdf(d1)
    discount = np.exp(-r * T)

    if option_type == "CE":
        delta = nd1
        theta_year = -(S * pdf_d1 * sigma) / (2 * sqrt_t) - r * K * discount * nd2
        rho = K * T * discount * nd2
    else:
        delta = nd1 - 1
        theta_year = -(S * pdf_d1 * sigma) / (2 * sqrt_t) + r * K * discount * (1 - nd2)
        rho = -K * T * discount * (1 - nd2)

    gamma = pdf_d1 / (S * sigma * sqrt_t)
    vega = S * sqrt_t * pdf_d1 / 100  # Per 1% IV change

    return Greeks(
        delta=float(delta),
        theta=float(theta_year / 365),  # Daily decay
        gamma=float(gamma),
        vega=float(vega),
        rho=float(rho)
    )


def black_scholes_price(option_type: str, S: float, K: float, T: float,
                        r: Optional[float] = None, sigma: Optional[float] = None) -> float:
    """
    Theoretical option price. Intrinsic value at or after expiry.
    """
    r = config.RISK_FREE_RATE if r is None else r
    sigma = config.DEFAULT_VOLATILITY if sigma is None else sigma

    if T <= 0 or S <= 0 or K <= 0 or sigma <= 0:
        return max(0.0, S - K) if option_type == "CE" else max(0.0, K - S)

    d1 = (np.log(S / K) + (r + 0.5 * sigma ** 2) * T) / (sigma * np.sqrt(T))
    d2 = d1 - sigma * np.sqrt(T)

    if option_type == "CE":
        price = S * norm.cdf(d1) - K * np.exp(-r * T) * norm.cdf(d2)
    else:
        price = K * np.exp(-r * T) * norm.cdf(-d2) - S * norm.cdf(-d1)

    return max(MIN_PREMIUM, float(price))


def years_to_expiry(expiry: datetime, now: Optional[datetime] = None) -> float:
    """Fractional years until expiry; 0 when expired or expiring now."""
    now = now or datetime.now()
    diff_days = (expiry - now).total_seconds() / (24 * 3600)
    if diff_days <= 0:
        return 0.0
    return diff_days / DAYS_PER_YEAR
