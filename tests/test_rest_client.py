"""
Tests for the async REST client against a local aiohttp test server.
"""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from config.structs import ProviderConfig
from funding_arbitrage.provider import SpreadsTableProvider
from infrastructure.exceptions import ProviderError, RestResponseError, RestTimeoutError
from infrastructure.networking import RestClient, RestConfig


async def spreads_table(request):
    return web.json_response([
        {"ticker": "XUSDT",
         "binance": {"fundingRate": -0.004, "nextFundingTime": 1718000600000},
         "bybit": {"fundingRate": 0.001, "nextFundingTime": 1718000660000}},
    ])


async def broken(request):
    return web.Response(text="<html>maintenance</html>", content_type="text/html")


async def garbled(request):
    return web.Response(body=b'[{"ticker": "X\xff\xfeUSDT"}]', content_type="application/json")


async def failing(request):
    return web.Response(status=502, text="bad gateway")


async def slow(request):
    await asyncio.sleep(1.0)
    return web.json_response([])


@pytest_asyncio.fixture
async def server():
    app = web.Application()
    app.router.add_get("/spreads", spreads_table)
    app.router.add_get("/broken", broken)
    app.router.add_get("/failing", failing)
    app.router.add_get("/garbled", garbled)
    app.router.add_get("/slow", slow)
    test_server = TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


def base_url(server) -> str:
    return f"http://{server.host}:{server.port}"


class TestRestClient:

    @pytest.mark.asyncio
    async def test_get_json(self, server):
        async with RestClient(base_url(server)) as client:
            payload = await client.get("/spreads")
        assert payload[0]["ticker"] == "XUSDT"

    @pytest.mark.asyncio
    async def test_http_error(self, server):
        async with RestClient(base_url(server), RestConfig(max_retries=0)) as client:
            with pytest.raises(RestResponseError) as exc_info:
                await client.get("/failing")
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_invalid_json(self, server):
        async with RestClient(base_url(server)) as client:
            with pytest.raises(RestResponseError):
                await client.get("/broken")

    @pytest.mark.asyncio
    async def test_invalid_utf8_body(self, server):
        async with RestClient(base_url(server)) as client:
            with pytest.raises(RestResponseError):
                await client.get("/garbled")

    @pytest.mark.asyncio
    async def test_timeout(self, server):
        config = RestConfig(timeout=0.1, connect_timeout=0.1, max_retries=0)
        async with RestClient(base_url(server), config) as client:
            with pytest.raises(RestTimeoutError) as exc_info:
                await client.get("/slow")
        assert exc_info.value.status_code == 408


class TestSpreadsTableProviderOverHttp:

    @pytest.mark.asyncio
    async def test_fetch_snapshots(self, server):
        provider = SpreadsTableProvider(ProviderConfig(url=f"{base_url(server)}/spreads"))
        try:
            snapshots = await provider.fetch_snapshots()
        finally:
            await provider.close()

        assert len(snapshots) == 1
        assert len(snapshots[0].quotes) == 2

    @pytest.mark.asyncio
    async def test_http_failure_becomes_provider_error(self, server):
        provider = SpreadsTableProvider(ProviderConfig(url=f"{base_url(server)}/failing"))
        try:
            with pytest.raises(ProviderError) as exc_info:
                await provider.fetch_snapshots()
        finally:
            await provider.close()
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_undecodable_body_becomes_provider_error(self, server):
        provider = SpreadsTableProvider(ProviderConfig(url=f"{base_url(server)}/garbled"))
        try:
            with pytest.raises(ProviderError):
                await provider.fetch_snapshots()
        finally:
            await provider.close()
