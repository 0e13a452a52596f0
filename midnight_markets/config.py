"""Runtime configuration for the Midnight Markets backend.

Values come from the environment (a local ``.env`` is loaded first) and fall
back to the defaults below.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


def _env(name: str, default: Any, cast: Callable[[str], Any] = str) -> Any:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError):
        logger.warning("config.invalid_value %s=%r; using default %r", name, raw, default)
        return default


def _api_key() -> str:
    # First non-empty wins; the bare API_KEY name is what the web build used.
    for name in ("ASSISTANT_API_KEY", "GEMINI_API_KEY", "API_KEY"):
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


def load_config() -> Dict[str, Any]:
    """Build the configuration mapping from the current environment."""
    return {
        # Upstream endpoints
        'COINGECKO_BASE_URL': _env('COINGECKO_BASE_URL', 'https://api.coingecko.com/api/v3'),
        'DEXSCREENER_BASE_URL': _env('DEXSCREENER_BASE_URL', 'https://api.dexscreener.com'),
        'NEWS_URL': _env('NEWS_URL', 'https://min-api.cryptocompare.com/data/v2/news/?lang=EN'),
        'HTTP_TIMEOUT_SECONDS': _env('HTTP_TIMEOUT_SECONDS', 10.0, float),
        # Asset feeds
        'RANKED_PAGE_SIZE': _env('RANKED_PAGE_SIZE', 100, int),
        'DEX_DISCOVERY_LIMIT': _env('DEX_DISCOVERY_LIMIT', 50, int),
        'SEARCH_DEBOUNCE_SECONDS': _env('SEARCH_DEBOUNCE_SECONDS', 0.6, float),
        # News cache
        'NEWS_CACHE_TTL_SECONDS': _env('NEWS_CACHE_TTL_SECONDS', 300, int),
        'NEWS_CACHE_KEY': _env('NEWS_CACHE_KEY', 'midnight_market_news_cache_v2'),
        'NEWS_CACHE_BACKEND': _env('NEWS_CACHE_BACKEND', 'memory').lower(),
        'NEWS_CACHE_FILE': _env('NEWS_CACHE_FILE', 'news_cache.json'),
        'NEWS_MAX_ITEMS': _env('NEWS_MAX_ITEMS', 15, int),
        'REDIS_URL': _env('REDIS_URL', 'redis://localhost:6379/0'),
        # Assistant
        'ASSISTANT_API_KEY': _api_key(),
        'ASSISTANT_CHAT_MODEL': _env('ASSISTANT_CHAT_MODEL', 'gemini-3-pro-preview'),
        'ASSISTANT_FAST_MODEL': _env('ASSISTANT_FAST_MODEL', 'gemini-3-flash-preview'),
        'ASSISTANT_SIMULATED_DELAY_SECONDS': _env('ASSISTANT_SIMULATED_DELAY_SECONDS', 1.0, float),
        'ASSISTANT_PULSE_DELAY_SECONDS': _env('ASSISTANT_PULSE_DELAY_SECONDS', 1.5, float),
        # Server
        'HOST': _env('HOST', '0.0.0.0'),
        'PORT': _env('PORT', 8001, int),
    }


CONFIG = load_config()

__all__ = ["CONFIG", "load_config"]
