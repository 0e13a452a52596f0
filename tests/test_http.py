"""
Tests for the aiohttp wrapper's status handling.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from midnight_markets.errors import UpstreamError
from midnight_markets.http import HttpClient

URL = "https://api.test/v1/items"


def _session(status, body=None):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=body)
    session = MagicMock()
    session.closed = False
    session.get.return_value.__aenter__ = AsyncMock(return_value=response)
    session.get.return_value.__aexit__ = AsyncMock(return_value=False)
    return session


class TestHttpClient:

    @pytest.mark.unit
    @pytest.mark.parametrize("status", [200, 201, 203, 299])
    async def test_success_statuses_return_body(self, status):
        client = HttpClient(session=_session(status, {"ok": True}))

        assert await client.get_json(URL, params={"q": "x"}) == {"ok": True}

    @pytest.mark.unit
    @pytest.mark.parametrize("status", [199, 301, 404, 429, 500])
    async def test_other_statuses_raise(self, status):
        client = HttpClient(session=_session(status, {"ok": True}))

        with pytest.raises(UpstreamError) as excinfo:
            await client.get_json(URL)

        assert excinfo.value.status == status

    @pytest.mark.unit
    async def test_borrowed_session_is_not_closed(self):
        session = _session(200)
        session.close = AsyncMock()

        await HttpClient(session=session).close()

        session.close.assert_not_called()
