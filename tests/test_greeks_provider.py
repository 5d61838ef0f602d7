import asyncio
from datetime import date, datetime

import requests

from natgas.data.greeks_provider import (
    UNDERLIERS_PATH, GreeksCache, GreeksProvider, MarketGreeks, UpstoxGreeksClient,
    find_strike_greeks, parse_expiry, rank_expiries
)

NOW = datetime(2026, 10, 18, 10, 0)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class FakeClient:
    def __init__(self, chain=None, error=None):
        self.chain = chain
        self.error = error
        self.calls = []

    def fetch_chain(self, underlying, expiry):
        self.calls.append((underlying, expiry))
        if self.error:
            raise self.error
        return self.chain


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.ok = status_code < 400

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append((url, params, headers))
        for path, response in self.routes.items():
            if url.endswith(path):
                return response(params) if callable(response) else response
        return FakeResponse({}, status_code=404)


CHAIN = {(300.0, 'CE'): MarketGreeks(delta=0.4, theta=-1.2)}


def test_cache_expires_after_ttl():
    clock = FakeClock()
    cache = GreeksCache(ttl=60, clock=clock)
    cache.set('NATGAS', date(2026, 11, 26), CHAIN)

    clock.now = 59.0
    assert cache.get('natgas', datetime(2026, 11, 26, 15, 30)) is CHAIN
    clock.now = 60.0
    assert cache.get('NATGAS', date(2026, 11, 26)) is None
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0


def test_expiry_helpers():
    assert parse_expiry('26-11-2026') == date(2026, 11, 26)
    assert parse_expiry('31-02-2026') is None
    assert parse_expiry('2026-11-26') is None
    assert rank_expiries(['24-12-2026', 'bad', '25-11-2026'], date(2026, 11, 26)) == ['25-11-2026', '24-12-2026']


def test_find_strike_greeks_tolerates_float_formatting():
    assert find_strike_greeks(CHAIN, 300, 'CE') is CHAIN[(300.0, 'CE')]
    assert find_strike_greeks(CHAIN, 300.0000001, 'CE') is CHAIN[(300.0, 'CE')]
    assert find_strike_greeks(CHAIN, 300.0, 'PE') is None


def test_positions_share_one_lookup_per_expiry():
    client = FakeClient(chain=CHAIN)
    provider = GreeksProvider(client=client, cache=GreeksCache(ttl=60, clock=FakeClock()))
    symbols = ['NATGAS26NOV300CE', 'NATGAS26NOV310PE', 'NATGAS26NOVFUT']

    greeks = asyncio.run(provider.fetch_greeks_for_positions(symbols, NOW))
    assert greeks == {'NATGAS26NOV300CE': MarketGreeks(delta=0.4, theta=-1.2)}
    assert client.calls == [('NATGAS', date(2026, 11, 26))]

    asyncio.run(provider.fetch_greeks_for_positions(symbols, NOW))
    assert len(client.calls) == 1


def test_fetch_failure_degrades_to_no_greeks():
    client = FakeClient(error=requests.ConnectionError("unreachable"))
    provider = GreeksProvider(client=client, cache=GreeksCache(ttl=60, clock=FakeClock()))

    greeks = asyncio.run(provider.fetch_greeks_for_positions(['NATGAS26NOV300CE'], NOW))
    assert greeks == {}
    assert len(provider.cache) == 0


def test_no_option_symbols_skips_network():
    client = FakeClient(chain=CHAIN)
    provider = GreeksProvider(client=client, cache=GreeksCache(ttl=60))
    assert asyncio.run(provider.fetch_greeks_for_positions(['NATGAS26NOVFUT', 'FOO123'], NOW)) == {}
    assert client.calls == []


def test_client_prefers_exact_underlier_and_nearest_expiry():
    underliers = FakeResponse({'data': {'symbolExpiryDataList': [
        {'underlierName': 'NATGASMINI', 'underlierIk': 'MCX|NGM', 'expiries': ['26-11-2026']},
        {'underlierName': 'NATGAS', 'underlierIk': 'MCX|NG', 'expiries': ['24-12-2026', '25-11-2026']},
    ]}})

    def strategy_chain(params):
        if params['assetKey'] != 'MCX|NG' or params['expiry'] != '25-11-2026':
            return FakeResponse({'success': False})
        return FakeResponse({'success': True, 'data': {'strategyChainData': {'strikeMap': {
            '300': {
                'callOptionData': {'analytics': {'delta': 0.5, 'theta': -1.0}},
                'putOptionData': {'analytics': {'delta': -0.5, 'theta': None}},
            },
            'bad': {'callOptionData': {'analytics': {'delta': 0.1, 'theta': -0.1}}},
        }}}})

    session = FakeSession({
        UNDERLIERS_PATH: underliers,
        '/strategy-chains': strategy_chain,
    })
    client = UpstoxGreeksClient(base_url='https://example.test/', api_key='key', timeout=5, session=session)

    chain = client.fetch_chain('NatGas', datetime(2026, 11, 26, 15, 30))
    assert chain == {(300.0, 'CE'): MarketGreeks(delta=0.5, theta=-1.0)}

    url, params, headers = session.requests[0]
    assert url == 'https://example.test' + UNDERLIERS_PATH
    assert params == {'name': 'natgas'}
    assert headers['x-api-key'] == 'key'
    assert session.requests[1][1]['expiry'] == '25-11-2026'


def test_client_returns_none_on_http_error():
    session = FakeSession({})
    client = UpstoxGreeksClient(base_url='https://example.test', api_key='key', session=session)
    assert client.fetch_chain('NATGAS', date(2026, 11, 26)) is None


def test_missing_api_key_skips_network():
    session = FakeSession({UNDERLIERS_PATH: FakeResponse({'data': {'symbolExpiryDataList': []}})})
    client = UpstoxGreeksClient(base_url='https://example.test', api_key='key', session=session)
    client.api_key = ''
    provider = GreeksProvider(client=client, cache=GreeksCache(ttl=60, clock=FakeClock()))

    assert client.fetch_chain('NATGAS', date(2026, 11, 26)) is None
    assert asyncio.run(provider.fetch_greeks_for_positions(['NATGAS26NOV300CE'], NOW)) == {}
    assert session.requests == []
