"""Integration tests: JsonRpcClient against a live asyncio HTTP server."""

import asyncio

import httpx
import pytest
import pytest_asyncio

from jsonsmd.client import JsonRpcClient, RemoteError
from jsonsmd.rpc.http import run_http_server, start_http_server
from jsonsmd.rpc.protocol import INVALID_PARAMS, METHOD_NOT_FOUND, PARSE_ERROR, SERVER_ERROR

pytestmark = pytest.mark.network


@pytest.fixture(autouse=True)
def _no_proxy(monkeypatch):
    """Keep loopback traffic away from any proxy configured in the environment."""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)


@pytest_asyncio.fixture
async def server_url(calculator_dispatcher):
    """Serve the calculator dispatcher on a free local port."""
    server = await start_http_server(calculator_dispatcher, port=0)
    host, port = server.sockets[0].getsockname()[:2]
    yield f"http://{host}:{port}/"
    server.close()
    await server.wait_closed()


class TestRoundTrip:
    """Calls through JsonRpcClient against a live server."""

    @pytest.mark.asyncio
    async def test_positional_call(self, server_url):
        """Positional params reach the handler."""
        async with JsonRpcClient(server_url) as client:
            assert await client.call("add", [2, 3]) == 5

    @pytest.mark.asyncio
    async def test_named_call_with_default(self, server_url):
        """Named params with an omitted default."""
        async with JsonRpcClient(server_url) as client:
            assert await client.call("greet", {"name": "Ada"}) == "Hello, Ada!"
            assert await client.call("greet", {"greeting": "Hi", "name": "Bo"}) == "Hi, Bo!"

    @pytest.mark.asyncio
    async def test_version_one(self, server_url):
        """1.0 requests are answered without jsonrpc."""
        async with JsonRpcClient(server_url, version="1.0") as client:
            assert await client.call("add", [1]) == 1
            assert "jsonrpc" not in client.last_response.to_dict()

    @pytest.mark.asyncio
    async def test_faults(self, server_url):
        """Server faults surface as RemoteError."""
        async with JsonRpcClient(server_url) as client:
            with pytest.raises(RemoteError) as missing:
                await client.call("nosuch")
            with pytest.raises(RemoteError) as bad_params:
                await client.call("add", [])
            with pytest.raises(RemoteError) as failed:
                await client.call("fail")

        assert missing.value.code == METHOD_NOT_FOUND
        assert bad_params.value.code == INVALID_PARAMS
        assert failed.value.code == SERVER_ERROR
        assert failed.value.message == "boom"


class TestRawHttp:
    """Raw HTTP exchanges with a live server."""

    @pytest.mark.asyncio
    async def test_notification_returns_204(self, server_url):
        """Notifications get an empty 204."""
        async with httpx.AsyncClient() as http:
            response = await http.post(
                server_url, content='{"jsonrpc":"2.0","method":"add","params":[1,1]}'
            )
        assert response.status_code == 204
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_parse_error(self, server_url):
        """Broken JSON gets a PARSE_ERROR response."""
        async with httpx.AsyncClient() as http:
            response = await http.post(server_url, content="{not json")
        assert response.status_code == 200
        assert response.json()["error"]["code"] == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_get_returns_smd(self, server_url):
        """GET returns the service map."""
        async with httpx.AsyncClient() as http:
            response = await http.get(server_url)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        smd = response.json()
        assert smd["SMDVersion"] == "2.0"
        add = smd["services"]["add"]
        assert [p["name"] for p in add["parameters"]] == ["a", "b"]
        assert add["parameters"][0]["description"] == "First addend."

    @pytest.mark.asyncio
    async def test_put_not_allowed(self, server_url):
        """PUT is refused with 405."""
        async with httpx.AsyncClient() as http:
            response = await http.put(server_url, content="{}")
        assert response.status_code == 405


class TestRunHttpServer:
    """Tests for run_http_server lifecycle."""

    @pytest.mark.asyncio
    async def test_shutdown_event_stops_server(self, calculator_dispatcher):
        """Setting the shutdown event returns from the server loop."""
        started = asyncio.Event()
        shutdown = asyncio.Event()
        task = asyncio.create_task(
            run_http_server(
                calculator_dispatcher,
                port=0,
                started_event=started,
                shutdown_event=shutdown,
            )
        )
        await asyncio.wait_for(started.wait(), timeout=5.0)
        shutdown.set()
        await asyncio.wait_for(task, timeout=5.0)
        assert task.done()
