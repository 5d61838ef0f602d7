import pytest

from natgas.data.option_chain import (
    ATM_IV_FALLBACK, OptionQuote, OptionStrike, analyze_chain, synthetic_chain
)


def make_chain():
    return [
        OptionStrike(310.0, ce=OptionQuote(oi=2000, iv=38), pe=OptionQuote(oi=100, iv=41)),
        OptionStrike(290.0, ce=OptionQuote(oi=100, iv=45), pe=OptionQuote(oi=1500, iv=47)),
        OptionStrike(300.0, ce=OptionQuote(oi=500, iv=40), pe=OptionQuote(oi=800, iv=44)),
    ]


def test_analyze_chain():
    analysis = analyze_chain(make_chain(), spot=302.0)
    assert analysis.pcr == 0.92
    assert analysis.call_resistance == 310.0
    assert analysis.put_support == 290.0
    assert analysis.max_pain == 300.0
    assert analysis.atm_iv == 42.0
    assert not analysis.is_synthetic
    assert [s.strike_price for s in analysis.chain] == [290.0, 300.0, 310.0]


def test_empty_chain():
    assert analyze_chain([]) is None


def test_unquoted_atm_iv_uses_fallback():
    chain = [OptionStrike(300.0, ce=OptionQuote(oi=10), pe=OptionQuote(oi=10))]
    assert analyze_chain(chain, spot=300.0).atm_iv == ATM_IV_FALLBACK
    assert analyze_chain(chain).atm_iv == ATM_IV_FALLBACK


def test_no_call_oi_gives_zero_pcr():
    chain = [OptionStrike(300.0, pe=OptionQuote(oi=10))]
    analysis = analyze_chain(chain, spot=300.0)
    assert analysis.pcr == 0.0
    assert analysis.call_resistance == 0.0


def test_strike_from_dict():
    strike = OptionStrike.from_dict({
        'strikePrice': '300',
        'ce': {'ltp': 5.5, 'oi': 10, 'vol': 3, 'iv': 40},
        'pe': None,
    })
    assert strike.strike_price == 300.0
    assert strike.ce.volume == 3
    assert strike.pe == OptionQuote()


def test_synthetic_chain():
    chain = synthetic_chain(300.0, 6.0)
    assert chain.is_synthetic
    assert chain.call_resistance == pytest.approx(312.0)
    assert chain.put_support == pytest.approx(288.0)
    assert chain.max_pain == 300.0
    assert chain.pcr == 1.0
