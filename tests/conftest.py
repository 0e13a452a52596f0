"""
Shared pytest fixtures for the market-data tests.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from midnight_markets.errors import UpstreamError
from midnight_markets.models import Asset
from midnight_markets.sources import clear_sources

COINGECKO = "https://cg.test/api/v3"
DEXSCREENER = "https://dex.test"
NEWS_URL = "https://news.test/data/v2/news/?lang=EN"


# ============================================================================
# Fakes
# ============================================================================

class FakeHttp:
    """Stands in for ``HttpClient``; routes are keyed by URL without query string.

    A route value may be a payload, an exception instance to raise, or a
    callable taking the request params and returning either.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self.closed = False

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self.calls.append((url, params))
        if url not in self.routes:
            raise UpstreamError("HTTP 404", url=url, status=404)
        value = self.routes[url]
        if callable(value) and not isinstance(value, Exception):
            value = value(params)
        if isinstance(value, Exception):
            raise value
        return value

    async def close(self) -> None:
        self.closed = True

    def calls_to(self, url: str) -> List[Optional[Dict[str, Any]]]:
        return [params for called, params in self.calls if called == url]


class VirtualTime:
    """Fake ``asyncio.sleep`` driven by ``advance()`` in whole milliseconds."""

    def __init__(self):
        self.now_ms = 0
        self._sleepers: List[Tuple[int, asyncio.Future]] = []

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.now_ms + round(delay * 1000), future))
        await future

    async def advance(self, ms: int) -> None:
        await settle()
        self.now_ms += ms
        pending = []
        for due, future in self._sleepers:
            if future.done():
                continue
            if due <= self.now_ms:
                future.set_result(None)
            else:
                pending.append((due, future))
        self._sleepers = pending
        await settle()


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


async def settle(rounds: int = 20) -> None:
    """Let every ready task run until it blocks again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_asset(asset_id: str, **fields) -> Asset:
    data = {"id": asset_id, "symbol": asset_id.upper(), "name": asset_id.title()}
    data.update(fields)
    return Asset(**data)


# ============================================================================
# Upstream payload fixtures
# ============================================================================

@pytest.fixture
def coin_markets_payload():
    """CoinGecko /coins/markets response (trimmed to the fields we read)."""
    return [
        {
            "id": "bitcoin",
            "symbol": "btc",
            "name": "Bitcoin",
            "image": "https://img.test/btc.png",
            "current_price": 64000.5,
            "market_cap": 1_260_000_000_000,
            "market_cap_rank": 1,
            "total_volume": 31_000_000_000,
            "price_change_percentage_24h": 2.4,
            "sparkline_in_7d": {"price": [63000.0, 63500.0, 64000.5]},
        },
        {
            "id": "ethereum",
            "symbol": "eth",
            "name": "Ethereum",
            "image": "https://img.test/eth.png",
            "current_price": 3100.0,
            "market_cap": 372_000_000_000,
            "market_cap_rank": 2,
            "total_volume": 15_000_000_000,
            "price_change_percentage_24h": -1.2,
            "sparkline_in_7d": {"price": [3000.0, 3050.0, 3100.0]},
        },
        {
            "id": "newcoin",
            "symbol": "new",
            "name": "Newcoin",
            "image": None,
            "current_price": None,
            "market_cap": None,
            "market_cap_rank": None,
            "total_volume": None,
            "price_change_percentage_24h": None,
            "sparkline_in_7d": None,
        },
    ]


@pytest.fixture
def token_profiles_payload():
    return [
        {"url": "https://dexscreener.com/solana/aaa", "chainId": "solana", "tokenAddress": "AAA"},
        {"url": "https://dexscreener.com/ethereum/bbb", "chainId": "ethereum", "tokenAddress": "BBB"},
        {"url": "https://dexscreener.com/base/ccc", "chainId": "base", "tokenAddress": "CCC"},
    ]


def _pair(chain, address, symbol, liquidity, price="1.0", fdv=1000, volume=100, change=0.0):
    return {
        "chainId": chain,
        "pairAddress": f"{address}-{liquidity}",
        "baseToken": {"address": address, "name": symbol.title(), "symbol": symbol},
        "quoteToken": {"address": "QUOTE", "name": "Wrapped", "symbol": "WRAP"},
        "priceUsd": price,
        "priceChange": {"h24": change},
        "volume": {"h24": volume},
        "liquidity": {"usd": liquidity},
        "fdv": fdv,
    }


@pytest.fixture
def pairs_payload():
    """Three tokens; AAA trades in two pools, the deeper one listed second."""
    return {
        "schemaVersion": "1.0.0",
        "pairs": [
            _pair("solana", "AAA", "AAA", 1000, price="1.00", fdv=500_000),
            _pair("ethereum", "BBB", "BBB", 3000, price="0.25", fdv=900_000, change=12.5),
            _pair("solana", "AAA", "AAA", 5000, price="1.10", fdv=550_000, volume=7000),
            _pair("base", "CCC", "CCC", "2500.5", price="0.0004", fdv=None),
        ],
    }


@pytest.fixture
def search_payload():
    return {
        "schemaVersion": "1.0.0",
        "pairs": [
            _pair("solana", "PEPE1", "PEPE", 800, price="0.000012"),
            _pair("ethereum", "PEPE2", "PEPE", 90_000, price="0.000011"),
        ],
    }


@pytest.fixture
def news_payload():
    long_body = "x" * 300
    articles = [
        {
            "id": str(i),
            "title": f"Headline {i}",
            "body": long_body if i == 0 else f"Body {i}",
            "url": f"https://news.test/{i}",
            "published_on": 1_700_000_000 + i,
            "source_info": {"name": "CoinDesk"} if i % 2 == 0 else None,
        }
        for i in range(20)
    ]
    return {"Type": 100, "Message": "News list successfully returned", "Data": articles}


# ============================================================================
# Component fixtures
# ============================================================================

@pytest.fixture
def fake_http(coin_markets_payload, token_profiles_payload, pairs_payload, search_payload, news_payload):
    return FakeHttp({
        f"{COINGECKO}/coins/markets": coin_markets_payload,
        f"{DEXSCREENER}/token-profiles/latest/v1": token_profiles_payload,
        f"{DEXSCREENER}/latest/dex/tokens/AAA,BBB,CCC": pairs_payload,
        f"{DEXSCREENER}/latest/dex/search": search_payload,
        NEWS_URL: news_payload,
    })


@pytest.fixture
def virtual_time():
    return VirtualTime()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def test_config():
    """Configuration mapping pointing every upstream at the fake routes."""
    return {
        'COINGECKO_BASE_URL': COINGECKO,
        'DEXSCREENER_BASE_URL': DEXSCREENER,
        'NEWS_URL': NEWS_URL,
        'HTTP_TIMEOUT_SECONDS': 1.0,
        'RANKED_PAGE_SIZE': 100,
        'DEX_DISCOVERY_LIMIT': 50,
        'SEARCH_DEBOUNCE_SECONDS': 0.6,
        'NEWS_CACHE_TTL_SECONDS': 300,
        'NEWS_CACHE_KEY': 'midnight_market_news_cache_v2',
        'NEWS_CACHE_BACKEND': 'memory',
        'NEWS_CACHE_FILE': 'unused.json',
        'NEWS_MAX_ITEMS': 15,
        'REDIS_URL': 'redis://localhost:6379/0',
        'ASSISTANT_API_KEY': '',
        'ASSISTANT_CHAT_MODEL': 'chat-model',
        'ASSISTANT_FAST_MODEL': 'fast-model',
        'ASSISTANT_SIMULATED_DELAY_SECONDS': 0.0,
        'ASSISTANT_PULSE_DELAY_SECONDS': 0.0,
        'HOST': '127.0.0.1',
        'PORT': 8001,
    }


@pytest.fixture(autouse=True)
def _isolated_source_registry():
    clear_sources()
    yield
    clear_sources()
