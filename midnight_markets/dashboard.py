"""Wires the adapters, cache, coordinator and assistant from configuration."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .assistant import AssistantController
from .cache import CachePolicy, CacheStore, build_backend, epoch_ms
from .config import CONFIG
from .coordinator import QueryCoordinator
from .http import HttpClient
from .news import NewsFeed
from .sources import DexPairSource, RankedAssetSource, register_source

logger = logging.getLogger(__name__)


class Dashboard:
    """
    One process-wide set of collaborators.

    Every argument is optional; anything omitted is built from ``config``.
    Tests pass a fake HTTP client, a memory cache backend and a fake clock.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        http=None,
        cache_backend=None,
        clock=epoch_ms,
        assistant: Optional[AssistantController] = None,
        coordinator_kwargs: Optional[Dict[str, Any]] = None,
    ):
        self.config = config or CONFIG
        cfg = self.config
        self.http = http or HttpClient(timeout_seconds=cfg['HTTP_TIMEOUT_SECONDS'])

        self.ranked = RankedAssetSource(self.http, cfg['COINGECKO_BASE_URL'], page_size=cfg['RANKED_PAGE_SIZE'])
        self.dex = DexPairSource(self.http, cfg['DEXSCREENER_BASE_URL'], discovery_limit=cfg['DEX_DISCOVERY_LIMIT'])
        register_source(self.ranked)
        register_source(self.dex)

        self.coordinator = QueryCoordinator(
            {self.ranked.mode: self.ranked, self.dex.mode: self.dex},
            debounce_seconds=cfg['SEARCH_DEBOUNCE_SECONDS'],
            **(coordinator_kwargs or {}),
        )

        if cache_backend is None:
            cache_backend = build_backend(
                cfg['NEWS_CACHE_BACKEND'],
                path=cfg['NEWS_CACHE_FILE'],
                redis_url=cfg['REDIS_URL'],
            )
        policy = CachePolicy(key=cfg['NEWS_CACHE_KEY'], ttl_seconds=cfg['NEWS_CACHE_TTL_SECONDS'])
        self.news = NewsFeed(
            self.http,
            CacheStore(cache_backend, policy, clock=clock),
            cfg['NEWS_URL'],
            max_items=cfg['NEWS_MAX_ITEMS'],
        )

        self.assistant = assistant or AssistantController.from_config(cfg)

    async def start(self) -> None:
        logger.info("dashboard.start mode=%s", self.coordinator.state.mode.value)
        await self.coordinator.start()

    async def aclose(self) -> None:
        await self.coordinator.aclose()
        close = getattr(self.http, "close", None)
        if close is not None:
            await close()


__all__ = ["Dashboard"]
