"""
Endpoint tests for the HTTP API, run against fake upstreams.
"""

import locale
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from conftest import COINGECKO, NEWS_URL
from midnight_markets import api
from midnight_markets.api import app
from midnight_markets.cache import MemoryBackend
from midnight_markets.dashboard import Dashboard

MARKETS_URL = f"{COINGECKO}/coins/markets"
CHART_URL = f"{COINGECKO}/coins/bitcoin/market_chart"


@pytest.fixture
def dashboard(fake_http, test_config, fake_clock):
    return Dashboard(test_config, http=fake_http, cache_backend=MemoryBackend(), clock=fake_clock)


@pytest.fixture
def client(dashboard):
    app.state.dashboard = dashboard
    with TestClient(app) as test_client:
        yield test_client
    app.state.dashboard = None


def _ids(body):
    return [asset["id"] for asset in body["assets"]]


class TestAssetsEndpoints:

    @pytest.mark.unit
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["assistant_mode"] == "simulated"

    @pytest.mark.unit
    def test_startup_loads_ranked_assets(self, client):
        body = client.get("/api/assets").json()

        assert _ids(body) == ["bitcoin", "ethereum", "newcoin"]
        assert body["state"]["mode"] == "bluechips"
        assert body["error"] is None
        assert body["loading"] is False
        assert body["assets"][0]["valuation_kind"] == "market_cap"

    @pytest.mark.unit
    def test_switch_to_memecoins(self, client):
        body = client.post("/api/query", json={"mode": "memecoins"}).json()

        # Visible order is the default sort: FDV, largest first
        assert _ids(body) == ["BBB", "AAA", "CCC"]
        assert body["state"]["chain"] == "all"
        assert body["assets"][0]["valuation_kind"] == "fdv"

    @pytest.mark.unit
    def test_bluechip_search_filters_locally(self, client, fake_http):
        body = client.post("/api/query", json={"search_text": "eth"}).json()

        assert _ids(body) == ["ethereum"]
        assert len(fake_http.calls_to(MARKETS_URL)) == 1

    @pytest.mark.unit
    def test_memecoin_search_is_not_applied_immediately(self, client):
        client.post("/api/query", json={"mode": "memecoins"})

        body = client.post("/api/query", json={"search_text": "pepe"}).json()

        assert body["state"]["search_text"] == "pepe"
        assert _ids(body) == ["BBB", "AAA", "CCC"]

    @pytest.mark.unit
    def test_invalid_query_value(self, client):
        assert client.post("/api/query", json={"mode": "stocks"}).status_code == 422

    @pytest.mark.unit
    def test_sort_toggle(self, client):
        first = client.post("/api/sort", json={"key": "name"}).json()
        second = client.post("/api/sort", json={"key": "name"}).json()

        assert first["state"]["sort_order"] == "desc"
        assert _ids(first) == ["bitcoin", "ethereum", "newcoin"]
        assert second["state"]["sort_order"] == "asc"
        assert _ids(second) == ["newcoin", "ethereum", "bitcoin"]

    @pytest.mark.unit
    def test_refresh(self, client, fake_http):
        client.post("/api/refresh")

        assert len(fake_http.calls_to(MARKETS_URL)) == 2

    @pytest.mark.unit
    def test_refresh_failure_keeps_assets(self, client, fake_http):
        del fake_http.routes[MARKETS_URL]

        body = client.post("/api/refresh").json()

        assert body["error"]["subsystem"] == "ranked"
        assert body["error"]["message"] == "Liquidity feed dropped."
        assert len(body["assets"]) == 3


class TestHistoryEndpoint:

    @pytest.mark.unit
    def test_history(self, client, fake_http):
        fake_http.routes[CHART_URL] = {"prices": [[1700000000000, 64000.0], [1700003600000, 64100.0]]}

        response = client.get("/api/assets/bitcoin/history", params={"timeframe": "1"})

        assert response.status_code == 200
        assert response.json()[1] == {"timestamp": 1700003600000, "price": 64100.0}
        assert fake_http.calls_to(CHART_URL)[0]["days"] == "1"

    @pytest.mark.unit
    def test_unknown_timeframe(self, client):
        response = client.get("/api/assets/bitcoin/history", params={"timeframe": "2"})

        assert response.status_code == 400

    @pytest.mark.unit
    def test_upstream_failure(self, client):
        assert client.get("/api/assets/bitcoin/history").status_code == 502


class TestNewsEndpoint:

    @pytest.mark.unit
    def test_news_is_cached(self, client, fake_http):
        first = client.get("/api/news").json()
        second = client.get("/api/news").json()

        assert len(first["items"]) == 15
        assert first["from_cache"] is False
        assert second["from_cache"] is True
        assert len(fake_http.calls_to(NEWS_URL)) == 1

    @pytest.mark.unit
    def test_force_refresh(self, client, fake_http):
        client.get("/api/news")

        body = client.get("/api/news", params={"force": "true"}).json()

        assert body["from_cache"] is False
        assert len(fake_http.calls_to(NEWS_URL)) == 2

    @pytest.mark.unit
    def test_news_failure(self, client, fake_http):
        del fake_http.routes[NEWS_URL]

        body = client.get("/api/news").json()

        assert body["items"] == []
        assert body["error"]["subsystem"] == "news"


class TestAssistantEndpoints:

    @pytest.mark.unit
    def test_chat(self, client):
        body = client.post("/api/chat", json={"message": "what is btc doing"}).json()

        assert body["text"].startswith("Bitcoin")
        assert body["mode"] == "simulated"
        assert body["degraded"] is False

    @pytest.mark.unit
    @pytest.mark.parametrize("payload", [{"message": "  "}, {}])
    def test_chat_rejects_empty(self, client, payload):
        assert client.post("/api/chat", json=payload).status_code == 422

    @pytest.mark.unit
    def test_pulse(self, client):
        body = client.get("/api/pulse").json()

        assert body["overall"] == "Bullish"
        assert len(body["items"]) == 5

    @pytest.mark.unit
    def test_suggestions(self, client):
        body = client.get("/api/suggestions").json()

        assert "Bitcoin halving impact?" in body["suggestions"]


@pytest.mark.unit
def test_main_sets_collation_locale_before_serving(monkeypatch):
    monkeypatch.setattr("sys.argv", ["midnight-markets", "--port", "9999"])
    with patch.object(api.locale, "setlocale") as setlocale, \
            patch.object(api, "setup_logging"), \
            patch.object(api, "log_config"), \
            patch("uvicorn.run") as run:
        api.main()

    setlocale.assert_called_once_with(locale.LC_COLLATE, "")
    assert run.call_args.kwargs["port"] == 9999
