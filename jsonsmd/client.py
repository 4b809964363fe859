"""Async HTTP client for JSON-RPC servers."""

import logging
from typing import Any

import httpx

from jsonsmd.core.errors import JsonSmdError
from jsonsmd.rpc.protocol import VERSION_1, VERSION_2, ParseError
from jsonsmd.rpc.types import Request, Response

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json-rpc"
USER_AGENT = "jsonsmd-client"


class ClientError(JsonSmdError):
    """Exception for client-side errors (connection, timeout, protocol)."""


class HttpError(ClientError):
    """The server answered with a non-success HTTP status."""

    def __init__(self, status_code: int, reason: str) -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}")


class RemoteError(ClientError):
    """The server answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.data = data
        super().__init__(message)

    def __str__(self) -> str:
        return f"RPC error {self.code}: {self.message}"


class JsonRpcClient:
    """Async HTTP client for JSON-RPC servers.

    Usage:
        async with JsonRpcClient("http://127.0.0.1:8765/") as client:
            total = await client.call("add", [1, 2])

    Attributes:
        last_request: The Request sent by the most recent call.
        last_response: The Response received by the most recent call.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        version: str = VERSION_2,
        headers: dict[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Endpoint URL of the JSON-RPC server.
            timeout: Request timeout in seconds.
            version: Protocol version for outgoing requests ("1.0" or "2.0").
            headers: Extra headers sent with every request. These take
                precedence over the defaults.
            http_client: Existing httpx client to use. It is not closed by
                this client.
        """
        self._url = url
        self._timeout = timeout
        self._version = VERSION_2 if version == VERSION_2 else VERSION_1
        self._headers = dict(headers or {})
        self._client = http_client
        self._owns_client = http_client is None
        self._request_id = 0
        self.last_request: Request | None = None
        self.last_response: Response | None = None
        logger.debug("JsonRpcClient initialized: url=%s, timeout=%s", url, timeout)

    async def __aenter__(self) -> "JsonRpcClient":
        """Enter async context, create the httpx client if none was given."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the httpx client if this client created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _build_headers(self) -> dict[str, str]:
        headers = {k.lower(): v for k, v in self._headers.items()}
        headers.setdefault("content-type", CONTENT_TYPE)
        headers.setdefault("accept", CONTENT_TYPE)

        agent = headers.get("user-agent")
        if agent is None and self._client is not None:
            agent = self._client.headers.get("user-agent")
        # httpx's own default agent does not count as caller-set
        if not agent or agent.startswith("python-httpx/"):
            headers["user-agent"] = USER_AGENT
        return headers

    async def do_request(self, request: Request) -> Response:
        """Send a Request and return the parsed Response.

        JSON-RPC errors are returned on the Response, not raised.

        Raises:
            HttpError: If the server returns a non-success status.
            ClientError: On connection error, timeout, or an unparseable body.
        """
        if self._client is None:
            raise ClientError("Client not initialized. Use 'async with' context manager.")

        self.last_request = request
        self.last_response = None

        logger.debug("RPC call: method=%s, id=%s", request.method, request.id)
        try:
            http_response = await self._client.post(
                self._url,
                content=request.to_json(),
                headers=self._build_headers(),
                timeout=self._timeout,
            )
        except httpx.ConnectError as e:
            logger.warning("Connection failed to %s: %s", self._url, e)
            raise ClientError(f"Connection failed: {e}") from e
        except httpx.TimeoutException as e:
            logger.warning(
                "Request timed out: method=%s, timeout=%s", request.method, self._timeout
            )
            raise ClientError(f"Request timed out: {e}") from e

        if not http_response.is_success:
            logger.warning(
                "HTTP %d from %s for method=%s",
                http_response.status_code,
                self._url,
                request.method,
            )
            raise HttpError(http_response.status_code, http_response.reason_phrase)

        try:
            response = Response.from_json(http_response.text)
        except ParseError as e:
            logger.warning("Invalid server response for method=%s: %s", request.method, e)
            raise ClientError(f"Invalid server response: {e}") from e

        self.last_response = response
        return response

    async def call(self, method: str, params: list[Any] | dict[str, Any] | None = None) -> Any:
        """Call a remote method and return its result.

        Args:
            method: The RPC method name.
            params: Positional (list) or named (dict) parameters.

        Returns:
            The result field of the response.

        Raises:
            RemoteError: If the server returns a JSON-RPC error.
            HttpError: If the server returns a non-success status.
            ClientError: On transport failures or a mismatched response id.
        """
        request = Request(method=method, params=params, id=self._next_id(), version=self._version)
        if request.is_method_error:
            raise ClientError(f"Invalid method name: {method!r}")

        response = await self.do_request(request)
        if response.is_error:
            assert response.error is not None
            logger.warning("RPC error %d: %s", response.error.code, response.error.message)
            raise RemoteError(response.error.code, response.error.message, response.error.data)

        if response.id != request.id:
            raise ClientError(
                f"Response id {response.id!r} does not match request id {request.id!r}"
            )
        return response.result
