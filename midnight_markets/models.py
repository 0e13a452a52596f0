"""
Canonical data model for the dashboard.

These Pydantic models are the only shapes that leave the adapters; every
upstream payload is mapped into them before reaching the coordinator, the
pipeline or the HTTP API.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

UNRANKED = 999


class MarketMode(str, Enum):
    BLUECHIPS = "bluechips"
    MEMECOINS = "memecoins"


class Chain(str, Enum):
    ALL = "all"
    SOLANA = "solana"
    ETHEREUM = "ethereum"
    BASE = "base"
    BSC = "bsc"


class SortKey(str, Enum):
    MARKET_CAP = "market_cap"
    PRICE_CHANGE = "price_change"
    VOLUME = "volume"
    NAME = "name"


class SortOrder(str, Enum):
    DESC = "desc"
    ASC = "asc"


class ValuationKind(str, Enum):
    MARKET_CAP = "market_cap"
    FDV = "fdv"


class Timeframe(str, Enum):
    H1 = "1h"
    H24 = "1"
    D7 = "7"
    D30 = "30"
    Y1 = "365"


class Asset(BaseModel):
    """One tradable asset as shown on a dashboard card."""

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    name: str
    current_price: float = 0.0
    price_change_24h_pct: float = 0.0
    # FDV for DEX-sourced assets; see valuation_kind
    market_cap_or_fdv: float = 0.0
    valuation_kind: ValuationKind = ValuationKind.MARKET_CAP
    volume_24h: float = 0.0
    sparkline: Tuple[float, ...] = ()
    rank: int = UNRANKED
    image: str = ""
    chain: Optional[str] = None
    contract_address: Optional[str] = None


class NewsItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    headline: str
    summary: str
    url: str
    source: str
    timestamp: datetime


class QueryState(BaseModel):
    """Process-wide query the coordinator is serving."""

    model_config = ConfigDict(frozen=True)

    mode: MarketMode = MarketMode.BLUECHIPS
    chain: Chain = Chain.ALL
    search_text: str = ""
    sort_key: SortKey = SortKey.MARKET_CAP
    sort_order: SortOrder = SortOrder.DESC

    @property
    def search(self) -> str:
        return self.search_text.strip()


class PricePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: int
    price: float


class AssistantMode(str, Enum):
    LIVE = "live"
    SIMULATED = "simulated"


class Citation(BaseModel):
    title: str = ""
    uri: str


class ChatReply(BaseModel):
    text: str
    sources: List[Citation] = Field(default_factory=list)
    mode: AssistantMode
    degraded: bool = False


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class PulseItem(BaseModel):
    headline: str
    sentiment: Sentiment = Sentiment.NEUTRAL


class PulseReport(BaseModel):
    overall: str
    items: List[PulseItem] = Field(default_factory=list)
    mode: AssistantMode
    degraded: bool = False


__all__ = [
    "UNRANKED",
    "MarketMode",
    "Chain",
    "SortKey",
    "SortOrder",
    "ValuationKind",
    "Timeframe",
    "Asset",
    "NewsItem",
    "QueryState",
    "PricePoint",
    "AssistantMode",
    "Citation",
    "ChatReply",
    "Sentiment",
    "PulseItem",
    "PulseReport",
]
