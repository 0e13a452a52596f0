"""Asset feeds, one per market mode."""
from .base import AssetSource, clear_sources, get_source, register_source
from .dex import DexPairSource
from .ranked import RankedAssetSource

__all__ = [
    "AssetSource",
    "DexPairSource",
    "RankedAssetSource",
    "clear_sources",
    "get_source",
    "register_source",
]
