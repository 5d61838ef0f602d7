from datetime import datetime, timedelta

import pytest

from natgas.utils.pricing import MIN_PREMIUM, black_scholes_price, calculate_greeks, years_to_expiry


def test_expired_option_greeks():
    itm_call = calculate_greeks("CE", 320, 300, 0)
    assert itm_call.delta == 1.0
    assert (itm_call.theta, itm_call.gamma, itm_call.vega, itm_call.rho) == (0.0, 0.0, 0.0, 0.0)

    itm_put = calculate_greeks("PE", 280, 300, -0.01)
    assert itm_put.delta == -1.0

    otm_put = calculate_greeks("PE", 320, 300, 0)
    assert otm_put.delta == 0.0


def test_invalid_inputs_fall_back_to_expiry_values():
    greeks = calculate_greeks("CE", 300, 300, 0.1, sigma=0)
    assert greeks.delta == 0.0
    assert greeks.gamma == 0.0


def test_call_put_delta_parity():
    call = calculate_greeks("CE", 300, 300, 30 / 365, r=0.07, sigma=0.5)
    put = calculate_greeks("PE", 300, 300, 30 / 365, r=0.07, sigma=0.5)
    assert call.delta - put.delta == pytest.approx(1.0)
    assert 0 < call.delta < 1
    assert -1 < put.delta < 0
    assert call.gamma == pytest.approx(put.gamma)
    assert call.theta < 0
    assert call.vega > 0


def test_black_scholes_price():
    assert black_scholes_price("CE", 320, 300, 0) == 20
    assert black_scholes_price("PE", 320, 300, 0) == 0
    assert black_scholes_price("CE", 100, 500, 1 / 365, sigma=0.2) == MIN_PREMIUM

    call = black_scholes_price("CE", 300, 300, 30 / 365, r=0.0, sigma=0.5)
    put = black_scholes_price("PE", 300, 300, 30 / 365, r=0.0, sigma=0.5)
    assert call == pytest.approx(put)


def test_years_to_expiry():
    now = datetime(2026, 10, 18, 12, 0)
    assert years_to_expiry(now - timedelta(hours=1), now) == 0.0
    assert years_to_expiry(now + timedelta(days=365.25), now) == pytest.approx(1.0)
