"""Source interface for pluggable asset feeds."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

from ..errors import FetchResult
from ..models import MarketMode, QueryState

_SOURCE_REGISTRY: Dict[MarketMode, "AssetSource"] = {}


class AssetSource(ABC):
    """Contract for the asset feeds a market mode can be served from."""

    name: str = "base"
    mode: MarketMode

    @abstractmethod
    async def fetch(self, query: QueryState) -> FetchResult:
        """Return canonical assets for ``query``; never raises for upstream failures."""


def register_source(source: "AssetSource") -> None:
    """Register the source serving ``source.mode``, replacing any previous one."""

    _SOURCE_REGISTRY[source.mode] = source


def get_source(mode: MarketMode) -> Optional["AssetSource"]:
    return _SOURCE_REGISTRY.get(mode)


def clear_sources() -> None:
    _SOURCE_REGISTRY.clear()


__all__ = ["AssetSource", "register_source", "get_source", "clear_sources"]
