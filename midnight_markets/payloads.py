"""
Schemas for the upstream payloads the adapters consume.

Only the fields the dashboard actually uses are declared; everything else is
ignored. Numeric fields are lenient: DEX feeds send numbers as text and any
feed may send null, so a missing or unparseable number becomes 0 instead of
rejecting the record.
"""

from __future__ import annotations

import logging
import math
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """The payload as a whole does not have the expected shape."""


def _lenient_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _lenient_int(value: Any) -> int:
    return int(_lenient_float(value))


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _price_series(value: Any) -> List[float]:
    if not isinstance(value, list):
        return []
    series = []
    for sample in value:
        if sample is None or isinstance(sample, bool):
            continue
        try:
            number = float(sample)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            series.append(number)
    return series


LenientFloat = Annotated[float, BeforeValidator(_lenient_float)]
LenientInt = Annotated[int, BeforeValidator(_lenient_int)]
OptionalInt = Annotated[Optional[int], BeforeValidator(_optional_int)]
PriceSeries = Annotated[List[float], BeforeValidator(_price_series)]


class _Upstream(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---------------------------------------------------------------------------
# Ranked-asset feed (CoinGecko coins/markets)
# ---------------------------------------------------------------------------

class Sparkline7d(_Upstream):
    price: PriceSeries = Field(default_factory=list)


class CoinMarket(_Upstream):
    id: str
    symbol: str
    name: str
    current_price: LenientFloat = 0.0
    price_change_percentage_24h: LenientFloat = 0.0
    market_cap: LenientFloat = 0.0
    total_volume: LenientFloat = 0.0
    sparkline_in_7d: Sparkline7d = Field(default_factory=Sparkline7d)
    image: str = ""
    market_cap_rank: OptionalInt = None

    @field_validator("sparkline_in_7d", mode="before")
    @classmethod
    def _null_sparkline(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("image", mode="before")
    @classmethod
    def _null_image(cls, value: Any) -> Any:
        return value or ""


class MarketChart(_Upstream):
    prices: List[List[float]] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# DEX feeds (DexScreener)
# ---------------------------------------------------------------------------

class TokenProfile(_Upstream):
    token_address: str = Field(alias="tokenAddress")


class DexToken(_Upstream):
    address: str
    symbol: str = ""
    name: str = ""


class DexWindow(_Upstream):
    h24: LenientFloat = 0.0


class DexLiquidity(_Upstream):
    usd: LenientFloat = 0.0


class DexPair(_Upstream):
    chain_id: str = Field(default="", alias="chainId")
    base_token: DexToken = Field(alias="baseToken")
    price_usd: LenientFloat = Field(default=0.0, alias="priceUsd")
    price_change: DexWindow = Field(default_factory=DexWindow, alias="priceChange")
    fdv: LenientFloat = 0.0
    volume: DexWindow = Field(default_factory=DexWindow)
    liquidity: DexLiquidity = Field(default_factory=DexLiquidity)

    @field_validator("price_change", "volume", "liquidity", mode="before")
    @classmethod
    def _null_block(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @property
    def liquidity_usd(self) -> float:
        return self.liquidity.usd

    @property
    def token_address(self) -> str:
        return self.base_token.address


# ---------------------------------------------------------------------------
# News feed (CryptoCompare)
# ---------------------------------------------------------------------------

class SourceInfo(_Upstream):
    name: str = ""


class NewsArticle(_Upstream):
    title: str
    body: str = ""
    url: str
    source_info: Optional[SourceInfo] = None
    published_on: LenientInt = 0

    @field_validator("body", mode="before")
    @classmethod
    def _null_body(cls, value: Any) -> Any:
        return value or ""


# ---------------------------------------------------------------------------
# Parse steps
# ---------------------------------------------------------------------------

def _parse_items(model, items: List[Any], label: str) -> list:
    parsed = []
    for raw in items:
        try:
            parsed.append(model.model_validate(raw))
        except ValidationError as exc:
            logger.debug("payloads.%s_item_skipped: %s", label, exc.errors()[:1])
    skipped = len(items) - len(parsed)
    if skipped:
        logger.info("payloads.%s_items_skipped count=%d", label, skipped)
    return parsed


def parse_coin_markets(payload: Any) -> List[CoinMarket]:
    if not isinstance(payload, list):
        raise PayloadError("ranked feed payload is not a list")
    return _parse_items(CoinMarket, payload, "coin_market")


def parse_market_chart(payload: Any) -> MarketChart:
    try:
        return MarketChart.model_validate(payload)
    except ValidationError as exc:
        raise PayloadError(f"market chart payload invalid: {exc.error_count()} errors") from exc


def parse_token_profiles(payload: Any) -> List[str]:
    """Return the token addresses of a discovery payload, in upstream order."""
    if not isinstance(payload, list):
        return []
    return [profile.token_address for profile in _parse_items(TokenProfile, payload, "token_profile")
            if profile.token_address]


def parse_pairs(payload: Any) -> List[DexPair]:
    if not isinstance(payload, dict):
        raise PayloadError("pair feed payload is not an object")
    raw_pairs = payload.get("pairs") or []
    if not isinstance(raw_pairs, list):
        raise PayloadError("pair feed 'pairs' is not a list")
    return [pair for pair in _parse_items(DexPair, raw_pairs, "dex_pair") if pair.token_address]


def parse_news(payload: Any) -> List[NewsArticle]:
    if not isinstance(payload, dict) or not isinstance(payload.get("Data"), list):
        raise PayloadError("news payload has no Data list")
    return _parse_items(NewsArticle, payload["Data"], "news")


__all__ = [
    "PayloadError",
    "CoinMarket",
    "MarketChart",
    "DexPair",
    "NewsArticle",
    "parse_coin_markets",
    "parse_market_chart",
    "parse_token_profiles",
    "parse_pairs",
    "parse_news",
]
