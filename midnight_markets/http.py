"""Thin aiohttp wrapper shared by all upstream adapters.

Every call is bounded by a total timeout. Anything other than a 2xx JSON
response (status error, connection error, timeout, undecodable body) is
raised as ``UpstreamError`` so adapters have a single failure type to handle.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from .errors import UpstreamError

logger = logging.getLogger(__name__)

USER_AGENT = 'MidnightMarkets/1.0'


class HttpClient:
    def __init__(self, timeout_seconds: float = 10.0, session: Optional[aiohttp.ClientSession] = None):
        self.timeout_seconds = timeout_seconds
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={'User-Agent': USER_AGENT, 'Accept': 'application/json'},
            )
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        if self.session and self._owns_session and not self.session.closed:
            await self.session.close()

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        session = await self._ensure_session()
        started = time.monotonic()
        try:
            async with session.get(url, params=params) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamError(f"HTTP {response.status}", url=url, status=response.status)
                data = await response.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise UpstreamError(f"timeout after {self.timeout_seconds}s", url=url) from exc
        except aiohttp.ClientError as exc:
            raise UpstreamError(f"transport error: {exc}", url=url) from exc
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError
            raise UpstreamError(f"invalid JSON: {exc}", url=url) from exc
        logger.debug("http.get url=%s duration_ms=%.1f", url, (time.monotonic() - started) * 1000.0)
        return data


__all__ = ['HttpClient', 'USER_AGENT']
