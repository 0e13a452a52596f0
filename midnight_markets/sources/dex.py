"""DEX pair feed (DexScreener): trending discovery and free-text search.

Discovery resolves trending token addresses first and then looks up their
pairs in one batched call; search hits the pair search endpoint directly.
Either way the pairs go through reconciliation so each contract address
yields exactly one asset, quoted from its most liquid pool.
"""
from __future__ import annotations

import logging
from typing import List

from ..errors import FetchResult, UpstreamError
from ..models import UNRANKED, Asset, MarketMode, QueryState, ValuationKind
from ..payloads import DexPair, PayloadError, parse_pairs, parse_token_profiles
from ..reconcile import reconcile_pairs
from .base import AssetSource

logger = logging.getLogger(__name__)

SUBSYSTEM = "dex"
ERROR_MESSAGE = "Dex Uplink Interrupted"
TOKEN_IMAGE_URL = "https://dd.dexscreener.com/ds-data/tokens/{chain}/{address}.png"


def to_asset(pair: DexPair) -> Asset:
    address = pair.token_address
    return Asset(
        id=address,
        symbol=pair.base_token.symbol,
        name=pair.base_token.name,
        current_price=pair.price_usd,
        price_change_24h_pct=pair.price_change.h24,
        market_cap_or_fdv=pair.fdv,
        valuation_kind=ValuationKind.FDV,
        volume_24h=pair.volume.h24,
        rank=UNRANKED,
        image=TOKEN_IMAGE_URL.format(chain=pair.chain_id, address=address),
        chain=pair.chain_id or None,
        contract_address=address,
    )


class DexPairSource(AssetSource):
    name = "dexscreener"
    mode = MarketMode.MEMECOINS

    def __init__(self, http, base_url: str = "https://api.dexscreener.com", discovery_limit: int = 50):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.discovery_limit = discovery_limit

    async def fetch(self, query: QueryState) -> FetchResult:
        try:
            if query.search:
                pairs = await self._search_pairs(query.search)
            else:
                pairs = await self._discover_pairs()
        except (UpstreamError, PayloadError) as exc:
            logger.warning("dex.fetch_failed search=%r: %s", query.search, exc)
            return FetchResult.failure(SUBSYSTEM, ERROR_MESSAGE, str(exc))

        reconciled = reconcile_pairs(pairs, query.chain)
        logger.info(
            "dex.fetched pairs=%d assets=%d chain=%s search=%r",
            len(pairs), len(reconciled), query.chain.value, query.search,
        )
        return FetchResult.success([to_asset(pair) for pair in reconciled])

    async def _search_pairs(self, text: str) -> List[DexPair]:
        payload = await self.http.get_json(f"{self.base_url}/latest/dex/search", params={"q": text})
        return parse_pairs(payload)

    async def _discover_pairs(self) -> List[DexPair]:
        profiles = await self.http.get_json(f"{self.base_url}/token-profiles/latest/v1")
        addresses = parse_token_profiles(profiles)[: self.discovery_limit]
        if not addresses:
            logger.info("dex.discovery_empty")
            return []
        payload = await self.http.get_json(f"{self.base_url}/latest/dex/tokens/{','.join(addresses)}")
        return parse_pairs(payload)


__all__ = ["DexPairSource", "to_asset", "SUBSYSTEM", "ERROR_MESSAGE"]
