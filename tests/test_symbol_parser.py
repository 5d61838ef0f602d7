from datetime import datetime

from natgas.utils.symbol_parser import is_future_symbol, parse_option_symbol, pick_nearest_expiry

NOW = datetime(2026, 10, 18, 10, 0)


def test_day_style_token():
    parsed = parse_option_symbol("NATGAS24DEC350CE", NOW)
    assert parsed.is_valid
    assert parsed.underlying_symbol == "NATGAS"
    assert parsed.strike == 350.0
    assert parsed.type == "CE"
    assert parsed.expiry_date == datetime(2026, 12, 24, 15, 30)


def test_year_style_token_above_31():
    parsed = parse_option_symbol("NATURALGAS40MAR300PE", NOW)
    assert parsed.is_valid
    assert parsed.expiry_date == datetime(2040, 3, 26, 15, 30)


def test_ambiguous_token_picks_nearest_live_expiry():
    # 27 could be a day (27 Jan) or the year 2027 (26 Jan 2027)
    parsed = parse_option_symbol("NATGAS27JAN300CE", NOW)
    assert parsed.expiry_date == datetime(2027, 1, 26, 15, 30)

    parsed = parse_option_symbol("NATGAS26DEC300PE", NOW)
    assert parsed.expiry_date == datetime(2026, 12, 26, 15, 30)


def test_expiry_within_grace_window_is_still_current():
    now = datetime(2026, 12, 25, 10, 0)
    parsed = parse_option_symbol("NATGAS24DEC350CE", now)
    assert parsed.expiry_date == datetime(2026, 12, 24, 15, 30)


def test_lowercase_and_spacing():
    parsed = parse_option_symbol(" natgasmini 26 nov 310.5 pe ", NOW)
    assert parsed.is_valid
    assert parsed.underlying_symbol == "NATGASMINI"
    assert parsed.strike == 310.5
    assert parsed.type == "PE"


def test_invalid_symbols():
    assert not parse_option_symbol("FOO123", NOW).is_valid
    assert not parse_option_symbol("", NOW).is_valid
    assert not parse_option_symbol("NATGAS26XYZ300CE", NOW).is_valid
    # 31 Feb never exists
    assert not parse_option_symbol("NATGAS31FEB300CE", NOW).is_valid

    invalid = parse_option_symbol("NATGAS26NOVFUT", NOW)
    assert invalid.strike is None and invalid.expiry_date is None


def test_pick_nearest_expiry_falls_back_to_latest_past():
    past = [datetime(2025, 1, 26, 15, 30), datetime(2026, 1, 26, 15, 30)]
    assert pick_nearest_expiry(past, NOW) == datetime(2026, 1, 26, 15, 30)
    assert pick_nearest_expiry([], NOW) is None


def test_is_future_symbol():
    assert is_future_symbol("NATURALGAS26NOVFUT")
    assert is_future_symbol("natgas26novfut")
    assert not is_future_symbol("NATGAS24DEC350CE")
    assert not is_future_symbol("")
