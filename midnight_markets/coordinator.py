"""
Query coordinator: turns query-state changes into asset fetches.

Transition rules
  - mode change: chain resets to ``all``, search clears, the mode's source
    fires immediately
  - memecoin search text: debounced; only a window that elapses without
    another change fires the search
  - memecoin chain change or empty search: discovery fires immediately
  - bluechip search/chain: no fetch, filtering is client-side

Every trigger bumps a generation counter. A fetch applies its result only
while its generation is still current, and the task backing a superseded
fetch or pending debounce is cancelled, so a slow response can never
overwrite a newer one.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Mapping, Optional

from pydantic import BaseModel, Field

from .errors import FetchError, FetchResult
from .logging_config import FETCH_ID_CTX
from .models import Asset, Chain, MarketMode, QueryState, SortKey
from .pipeline import next_sort, process
from .sources.base import AssetSource, get_source

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_SECONDS = 0.6


class CoordinatorSnapshot(BaseModel):
    state: QueryState
    loading: bool
    error: Optional[FetchError] = None
    last_updated: Optional[datetime] = None
    generation: int
    assets: List[Asset] = Field(default_factory=list)


class QueryCoordinator:
    def __init__(
        self,
        sources: Optional[Mapping[MarketMode, AssetSource]] = None,
        *,
        state: Optional[QueryState] = None,
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if sources is None:
            sources = {mode: get_source(mode) for mode in MarketMode if get_source(mode) is not None}
        self.sources = dict(sources)
        self.state = state or QueryState()
        self.debounce_seconds = debounce_seconds
        self._sleep = sleep

        self.assets: List[Asset] = []
        self.error: Optional[FetchError] = None
        self.loading = False
        self.last_updated: Optional[datetime] = None
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    # -- state transitions -------------------------------------------------

    async def start(self) -> None:
        await self._trigger()

    async def refresh(self) -> None:
        """Re-run the fetch for the current state now (poll tick or user action)."""
        await self._trigger()

    async def set_mode(self, mode: MarketMode) -> None:
        mode = MarketMode(mode)
        if mode == self.state.mode:
            return
        self.state = self.state.model_copy(update={"mode": mode, "chain": Chain.ALL, "search_text": ""})
        logger.info("coordinator.mode_changed mode=%s", mode.value)
        await self._trigger()

    async def set_chain(self, chain: Chain) -> None:
        chain = Chain(chain)
        if chain == self.state.chain:
            return
        self.state = self.state.model_copy(update={"chain": chain})
        if self.state.mode == MarketMode.MEMECOINS:
            await self._schedule()

    async def set_search_text(self, text: str) -> None:
        if text == self.state.search_text:
            return
        self.state = self.state.model_copy(update={"search_text": text})
        if self.state.mode == MarketMode.MEMECOINS:
            await self._schedule()

    def toggle_sort(self, key: SortKey) -> QueryState:
        self.state = next_sort(self.state, SortKey(key))
        return self.state

    # -- derived views -----------------------------------------------------

    def visible_assets(self) -> List[Asset]:
        return process(self.assets, self.state)

    def snapshot(self) -> CoordinatorSnapshot:
        return CoordinatorSnapshot(
            state=self.state,
            loading=self.loading,
            error=self.error,
            last_updated=self.last_updated,
            generation=self._generation,
            assets=self.visible_assets(),
        )

    async def aclose(self) -> None:
        task = self._supersede()
        if task is not None:
            await asyncio.wait({task})

    # -- scheduling --------------------------------------------------------

    def _supersede(self) -> Optional[asyncio.Task]:
        """Invalidate the current generation and cancel whatever task serves it."""
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            return task
        return None

    async def _schedule(self) -> None:
        """Memecoin trigger: searches are debounced, discovery fires at once."""
        if not self.state.search:
            await self._trigger()
            return
        self._supersede()
        generation = self._generation
        self._task = asyncio.create_task(self._debounced(generation))

    async def _trigger(self) -> None:
        self._supersede()
        generation = self._generation
        task = asyncio.create_task(self._run(generation, self.state))
        self._task = task
        # Returns when this fetch applied, failed or was superseded
        await asyncio.wait({task})

    async def _debounced(self, generation: int) -> None:
        await self._sleep(self.debounce_seconds)
        if generation != self._generation:
            return
        await self._run(generation, self.state)

    async def _run(self, generation: int, query: QueryState) -> None:
        source = self.sources.get(query.mode)
        token = FETCH_ID_CTX.set(f"{query.mode.value}-{generation}")
        try:
            self.loading = True
            self.error = None
            if source is None:
                result = FetchResult.failure(query.mode.value, f"No source configured for {query.mode.value}")
            else:
                logger.debug("coordinator.fetch_start source=%s search=%r", source.name, query.search)
                try:
                    result = await source.fetch(query)
                except Exception:
                    logger.exception("coordinator.source_crashed source=%s", source.name)
                    result = FetchResult.failure(query.mode.value, "Unexpected feed error")
            self._apply(generation, result)
        finally:
            FETCH_ID_CTX.reset(token)

    def _apply(self, generation: int, result: FetchResult) -> None:
        if generation != self._generation:
            logger.info("coordinator.stale_result_discarded generation=%d current=%d", generation, self._generation)
            return
        self.loading = False
        if result.ok:
            self.assets = result.assets
            self.error = None
            self.last_updated = datetime.now(timezone.utc)
        else:
            self.error = result.error
        logger.info(
            "coordinator.applied generation=%d assets=%d error=%s",
            generation, len(self.assets), result.error.message if result.error else None,
        )


__all__ = ["QueryCoordinator", "CoordinatorSnapshot", "SEARCH_DEBOUNCE_SECONDS"]
