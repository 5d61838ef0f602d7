import pytest

from natgas.data.option_chain import OptionChainAnalysis
from natgas.signals.models import IndicatorValues
from strategy_engine.regime import IVRegime, PCRBias, RegimeManager
from strategy_engine.strategies.base import per_lot, snap_strike
from strategy_engine.strategy_manager import StrategySelector

DEBIT_STRATEGIES = {"Bull Call Spread", "Bear Put Spread", "Long Straddle"}


def make_chain(atm_iv=42.0, pcr=1.0, call_resistance=320.0, put_support=280.0):
    return OptionChainAnalysis(pcr=pcr, max_pain=300.0, call_resistance=call_resistance,
                               put_support=put_support, atm_iv=atm_iv)


def test_no_debit_strategy_near_expiry():
    for regime in IVRegime:
        for signal in ('BUY', 'SELL', 'HOLD'):
            for condition in ('TRENDING', 'RANGING', 'VOLATILE'):
                names = StrategySelector.select(regime, signal, signal, condition, near_expiry=True)
                assert names
                assert not DEBIT_STRATEGIES & set(names)


def test_decision_matrix():
    select = StrategySelector.select
    assert select(IVRegime.HIGH, 'HOLD', 'HOLD', 'RANGING', True) == ["Short Strangle"]
    assert select(IVRegime.HIGH, 'BUY', 'BUY', 'RANGING', False) == ["Iron Condor", "Bull Put Spread"]
    assert select(IVRegime.HIGH, 'SELL', 'SELL', 'TRENDING', False) == ["Bear Call Spread"]
    assert select(IVRegime.LOW, 'HOLD', 'HOLD', 'RANGING', False) == ["Long Straddle"]
    assert select(IVRegime.LOW, 'BUY', 'BUY', 'TRENDING', False) == ["Bull Call Spread"]
    assert select(IVRegime.NORMAL, 'SELL', 'SELL', 'TRENDING', False) == ["Bear Put Spread", "Bear Call Spread"]
    assert select(IVRegime.NORMAL, 'HOLD', 'HOLD', 'RANGING', True) == ["Iron Condor"]


def test_effective_bias_uses_pcr_when_neutral():
    assert StrategySelector.effective_bias('HOLD', PCRBias.BULLISH) == 'BUY'
    assert StrategySelector.effective_bias('HOLD', PCRBias.BEARISH) == 'SELL'
    assert StrategySelector.effective_bias('SELL', PCRBias.BULLISH) == 'SELL'


def test_synthetic_chain_fallback_builds_iron_condor():
    recs = StrategySelector().recommend(300.0, IndicatorValues(atr=6.0), 'HOLD', 'RANGING')
    assert len(recs) == 1
    condor = recs[0]
    assert condor.strategy_name == "Iron Condor"
    assert condor.dte == 15
    assert [(leg.action, leg.option_type, leg.strike) for leg in condor.legs] == [
        ('BUY', 'PE', 275.0), ('SELL', 'PE', 290.0), ('SELL', 'CE', 310.0), ('BUY', 'CE', 325.0)
    ]
    assert condor.max_profit == 300.0
    assert condor.max_loss == 1575.0
    assert condor.breakevens == [287.6, 312.4]
    assert not condor.is_debit


def test_low_iv_neutral_builds_long_straddle():
    recs = StrategySelector().recommend(301.0, IndicatorValues(atr=6.0), 'HOLD', 'RANGING',
                                        chain=make_chain(atm_iv=30.0), dte=20)
    straddle = recs[0]
    assert straddle.strategy_name == "Long Straddle"
    assert straddle.strike_price == 300.0
    assert straddle.max_profit is None
    assert straddle.confidence == 'MEDIUM'
    assert straddle.is_debit


def test_debit_spread_short_leg_clears_long_strike():
    chain = make_chain(atm_iv=30.0, call_resistance=302.0)
    bull = StrategySelector().recommend(301.0, IndicatorValues(atr=6.0), 'BUY', 'TRENDING',
                                        chain=chain, dte=20)[0]
    assert bull.strategy_name == "Bull Call Spread"
    assert [leg.strike for leg in bull.legs] == [300.0, 305.0]
    assert bull.max_profit == 362.5
    assert bull.max_loss == 262.5

    chain = make_chain(atm_iv=30.0, put_support=298.0)
    bear = StrategySelector().recommend(299.0, IndicatorValues(atr=6.0), 'SELL', 'TRENDING',
                                        chain=chain, dte=20)[0]
    assert bear.strategy_name == "Bear Put Spread"
    assert [leg.strike for leg in bear.legs] == [300.0, 295.0]
    assert bear.max_profit == 362.5


def test_low_iv_near_expiry_sells_premium():
    recs = StrategySelector().recommend(300.0, IndicatorValues(atr=6.0), 'BUY', 'TRENDING',
                                        chain=make_chain(atm_iv=30.0), dte=3)
    assert [r.strategy_name for r in recs] == ["Bull Put Spread"]
    assert not any(r.is_debit for r in recs)


def test_short_strangle_has_undefined_risk():
    recs = StrategySelector().recommend(300.0, IndicatorValues(atr=6.0), 'HOLD', 'RANGING',
                                        chain=make_chain(atm_iv=60.0), dte=4)
    strangle = recs[0]
    assert strangle.strategy_name == "Short Strangle"
    assert strangle.undefined_risk
    assert strangle.max_loss is None


def test_missing_atr_uses_price_fallback():
    recs = StrategySelector().recommend(300.0, IndicatorValues(), 'HOLD', 'RANGING')
    # 2.5% of price, synthetic walls at +/- 2 ATR
    assert recs[0].expected_move == pytest.approx(7.5 * 1.5, abs=0.01)


def test_regime_helpers():
    assert RegimeManager.classify_iv(60.0) == IVRegime.HIGH
    assert RegimeManager.classify_iv(30.0) == IVRegime.LOW
    assert RegimeManager.classify_iv(42.0) == IVRegime.NORMAL
    assert RegimeManager.classify_pcr(1.3) == PCRBias.BULLISH

    assert RegimeManager.estimate_dte(make_chain(), explicit_dte=3) == 3
    assert RegimeManager.estimate_dte(None) == 15
    assert RegimeManager.estimate_dte(make_chain(atm_iv=65.0)) == 5
    assert RegimeManager.estimate_dte(make_chain(atm_iv=45.0)) == 10
    assert RegimeManager.estimate_dte(make_chain(atm_iv=30.0)) == 20
    assert RegimeManager.is_near_expiry(6)
    assert not RegimeManager.is_near_expiry(7)


def test_strike_grid_and_per_lot():
    assert snap_strike(312.4) == 310.0
    assert snap_strike(313.0) == 315.0
    assert snap_strike(302.5) == 305.0
    assert snap_strike(307.5) == 310.0
    assert per_lot(-3.0) == 0.0
    assert per_lot(None) is None
    assert per_lot(2.0) == 250.0
