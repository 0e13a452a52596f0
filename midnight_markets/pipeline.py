"""In-memory query over the current asset set: search filter then single-key sort."""
from __future__ import annotations

import locale
from typing import Callable, Dict, Iterable, List

from .models import Asset, MarketMode, QueryState, SortKey, SortOrder


def _name_key(asset: Asset):
    return locale.strxfrm(asset.name.casefold())


# Each key sorts descending when used with reverse=True, except name, which is
# ascending (A..Z) in the default "desc" order.
_SORT_KEYS: Dict[SortKey, Callable[[Asset], object]] = {
    SortKey.MARKET_CAP: lambda asset: asset.market_cap_or_fdv,
    SortKey.PRICE_CHANGE: lambda asset: asset.price_change_24h_pct,
    SortKey.VOLUME: lambda asset: asset.volume_24h,
    SortKey.NAME: _name_key,
}
_DESCENDING_BY_DEFAULT = {SortKey.MARKET_CAP, SortKey.PRICE_CHANGE, SortKey.VOLUME}


def matches(asset: Asset, text: str) -> bool:
    needle = text.lower()
    return needle in asset.name.lower() or needle in asset.symbol.lower()


def filter_assets(assets: Iterable[Asset], state: QueryState) -> List[Asset]:
    # Memecoin search already happened upstream
    if state.mode == MarketMode.BLUECHIPS and state.search:
        return [asset for asset in assets if matches(asset, state.search)]
    return list(assets)


def sort_assets(assets: Iterable[Asset], key: SortKey, order: SortOrder) -> List[Asset]:
    """Stable sort; equal elements keep their input order in both directions."""
    reverse = key in _DESCENDING_BY_DEFAULT
    if order == SortOrder.ASC:
        reverse = not reverse
    return sorted(assets, key=_SORT_KEYS[key], reverse=reverse)


def process(assets: Iterable[Asset], state: QueryState) -> List[Asset]:
    return sort_assets(filter_assets(assets, state), state.sort_key, state.sort_order)


def next_sort(state: QueryState, key: SortKey) -> QueryState:
    """Sort-button click: same key flips the order, a new key starts descending."""
    if state.sort_key == key:
        order = SortOrder.ASC if state.sort_order == SortOrder.DESC else SortOrder.DESC
        return state.model_copy(update={"sort_order": order})
    return state.model_copy(update={"sort_key": key, "sort_order": SortOrder.DESC})


__all__ = ["matches", "filter_assets", "sort_assets", "process", "next_sort"]
