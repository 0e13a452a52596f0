"""Ranked-asset feed: the top of the CoinGecko market-cap table."""
from __future__ import annotations

import logging
from typing import List

from ..errors import FetchResult, UpstreamError
from ..models import UNRANKED, Asset, MarketMode, PricePoint, QueryState, Timeframe, ValuationKind
from ..payloads import CoinMarket, PayloadError, parse_coin_markets, parse_market_chart
from .base import AssetSource

logger = logging.getLogger(__name__)

SUBSYSTEM = "ranked"
ERROR_MESSAGE = "Liquidity feed dropped."


def to_asset(coin: CoinMarket) -> Asset:
    return Asset(
        id=coin.id,
        symbol=coin.symbol.upper(),
        name=coin.name,
        current_price=coin.current_price,
        price_change_24h_pct=coin.price_change_percentage_24h,
        market_cap_or_fdv=coin.market_cap,
        valuation_kind=ValuationKind.MARKET_CAP,
        volume_24h=coin.total_volume,
        sparkline=tuple(coin.sparkline_in_7d.price),
        rank=coin.market_cap_rank if coin.market_cap_rank is not None else UNRANKED,
        image=coin.image,
    )


class RankedAssetSource(AssetSource):
    """Full-universe request; search filtering happens client-side afterwards."""

    name = "coingecko"
    mode = MarketMode.BLUECHIPS

    def __init__(self, http, base_url: str = "https://api.coingecko.com/api/v3", page_size: int = 100):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size

    async def fetch(self, query: QueryState) -> FetchResult:
        params = {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": self.page_size,
            "page": 1,
            "sparkline": "true",
            "price_change_percentage": "24h",
        }
        try:
            payload = await self.http.get_json(f"{self.base_url}/coins/markets", params=params)
            coins = parse_coin_markets(payload)
        except (UpstreamError, PayloadError) as exc:
            logger.warning("ranked.fetch_failed: %s", exc)
            return FetchResult.failure(SUBSYSTEM, ERROR_MESSAGE, str(exc))
        assets = [to_asset(coin) for coin in coins]
        logger.info("ranked.fetched assets=%d", len(assets))
        return FetchResult.success(assets)

    async def fetch_history(self, asset_id: str, timeframe: Timeframe = Timeframe.D7) -> List[PricePoint]:
        """Price series for the detail chart. Raises ``UpstreamError`` on failure."""
        payload = await self.http.get_json(
            f"{self.base_url}/coins/{asset_id}/market_chart",
            params={"vs_currency": "usd", "days": timeframe.value},
        )
        try:
            chart = parse_market_chart(payload)
        except PayloadError as exc:
            raise UpstreamError(str(exc)) from exc
        return [PricePoint(timestamp=int(point[0]), price=point[1]) for point in chart.prices if len(point) >= 2]


__all__ = ["RankedAssetSource", "to_asset", "SUBSYSTEM", "ERROR_MESSAGE"]
