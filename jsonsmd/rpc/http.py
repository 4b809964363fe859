"""HTTP binding and pure asyncio HTTP server for JSON-RPC requests.

HttpRequest and HttpResponse adapt the JSON-RPC envelopes to an HTTP
exchange: the request is loaded from the raw POST body, and the response
knows its status code (204 for successful notifications) and Content-Type
(taken from the dispatcher's service map).

The server accepts:
    - POST <any path> with a JSON-RPC body -> Dispatcher.handle()
    - GET <any path> -> the SMD document
    - anything else -> 405

Example usage:
    dispatcher = Dispatcher(response_class=HttpResponse)
    dispatcher.set_class(Calculator)
    await run_http_server(dispatcher, port=8765)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from jsonsmd.core.errors import JsonSmdError
from jsonsmd.rpc.protocol import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    Error,
)
from jsonsmd.rpc.types import Request, Response

if TYPE_CHECKING:
    from jsonsmd.rpc.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

# Constants
DEFAULT_PORT = 8765
MAX_BODY_SIZE = 1_048_576  # 1MB
BIND_HOST = "127.0.0.1"

# HTTP header limits
MAX_HEADERS_COUNT = 128
MAX_HEADER_NAME_LEN = 1024
MAX_HEADER_VALUE_LEN = 8192
MAX_TOTAL_HEADERS_SIZE = 32 * 1024
MAX_REQUEST_LINE_LEN = 8192

READ_TIMEOUT = 30.0

STATUS_MESSAGES = {
    200: "OK",
    204: "No Content",
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
}


class HttpRequest(Request):
    """JSON-RPC request loaded from a raw HTTP body.

    An empty body leaves the request empty, which handles as INVALID_REQUEST.
    """

    def __init__(self, raw_json: str = "") -> None:
        super().__init__()
        self._raw_json = raw_json
        if raw_json:
            self.load_json(raw_json)

    @property
    def raw_json(self) -> str:
        return self._raw_json


class HttpResponse(Response):
    """JSON-RPC response emitted over HTTP.

    A successful notification (no error, no id) has status 204 and an empty
    body; everything else is 200 with the JSON body.
    """

    @property
    def is_notification(self) -> bool:
        return not self.is_error and self.id is None

    @property
    def status_code(self) -> int:
        return 204 if self.is_notification else 200

    @property
    def headers(self) -> dict[str, str]:
        """Headers to send with the body."""
        if self.is_notification or self.service_map is None:
            return {}
        content_type = self.service_map.content_type
        return {"Content-Type": content_type} if content_type else {}

    def to_json(self) -> str:
        if self.is_notification:
            return ""
        return super().to_json()


@dataclass
class RawHttpRequest:
    """Parsed HTTP request.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        path: Request path (e.g., "/rpc")
        headers: Dict of lowercase header names to values
        body: Request body as string
    """

    method: str
    path: str
    headers: dict[str, str]
    body: str


class HttpParseError(JsonSmdError):
    """Raised when HTTP request parsing fails."""


async def _readline(reader: asyncio.StreamReader, what: str) -> bytes:
    try:
        return await asyncio.wait_for(reader.readline(), timeout=READ_TIMEOUT)
    except TimeoutError:
        raise HttpParseError(f"{what} timeout") from None


async def read_http_request(
    reader: asyncio.StreamReader,
    max_body_size: int = MAX_BODY_SIZE,
) -> RawHttpRequest:
    """Read and parse an HTTP request from the stream.

    Args:
        reader: The asyncio StreamReader to read from.
        max_body_size: Largest accepted Content-Length.

    Returns:
        Parsed RawHttpRequest object.

    Raises:
        HttpParseError: If the request is malformed or too large.
    """
    request_line = await _readline(reader, "Request")
    if not request_line:
        raise HttpParseError("Empty request")
    if len(request_line) > MAX_REQUEST_LINE_LEN:
        raise HttpParseError(f"Request line too long: {len(request_line)} > {MAX_REQUEST_LINE_LEN}")

    # Parse request line: "POST /rpc HTTP/1.1\r\n"
    try:
        request_line_str = request_line.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise HttpParseError(f"Invalid request encoding: {e}") from e
    parts = request_line_str.split(" ")
    if len(parts) != 3:
        raise HttpParseError(f"Invalid request line: {request_line_str}")
    method, path, _version = parts

    headers: dict[str, str] = {}
    total_headers_size = 0

    while True:
        header_line = await _readline(reader, "Header read")
        if not header_line or header_line in (b"\r\n", b"\n"):
            break  # End of headers

        total_headers_size += len(header_line)
        if total_headers_size > MAX_TOTAL_HEADERS_SIZE:
            raise HttpParseError(
                f"Total headers size exceeds limit: {total_headers_size} > {MAX_TOTAL_HEADERS_SIZE}"
            )

        try:
            header_str = header_line.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise HttpParseError(f"Invalid header encoding: {e}") from e

        if ":" not in header_str:
            continue  # Skip malformed headers

        name, value = header_str.split(":", 1)
        name = name.strip()
        value = value.strip()

        if len(name) > MAX_HEADER_NAME_LEN:
            raise HttpParseError(f"Header name too long: {len(name)} > {MAX_HEADER_NAME_LEN}")
        if len(value) > MAX_HEADER_VALUE_LEN:
            raise HttpParseError(f"Header value too long: {len(value)} > {MAX_HEADER_VALUE_LEN}")
        if len(headers) >= MAX_HEADERS_COUNT:
            raise HttpParseError(f"Too many headers: exceeds limit of {MAX_HEADERS_COUNT}")

        headers[name.lower()] = value

    content_length_str = headers.get("content-length", "0")
    try:
        content_length = int(content_length_str)
    except ValueError as e:
        raise HttpParseError(f"Invalid Content-Length: {content_length_str}") from e

    if content_length > max_body_size:
        raise HttpParseError(f"Request body too large: {content_length} > {max_body_size}")

    body = ""
    if content_length > 0:
        try:
            body_bytes = await asyncio.wait_for(
                reader.readexactly(content_length),
                timeout=READ_TIMEOUT,
            )
            body = body_bytes.decode("utf-8")
        except TimeoutError:
            raise HttpParseError("Body read timeout") from None
        except asyncio.IncompleteReadError as e:
            raise HttpParseError(
                f"Incomplete body: expected {content_length}, got {len(e.partial)}"
            ) from e
        except UnicodeDecodeError as e:
            raise HttpParseError(f"Invalid body encoding: {e}") from e

    return RawHttpRequest(method=method, path=path, headers=headers, body=body)


async def send_http_response(
    writer: asyncio.StreamWriter,
    status: int,
    body: str,
    content_type: str | None = "application/json",
    extra_headers: dict[str, str] | None = None,
) -> None:
    """Send an HTTP response.

    Args:
        writer: The asyncio StreamWriter to write to.
        status: HTTP status code (e.g., 200, 204, 400).
        body: Response body as string.
        content_type: Content-Type header value, or None to omit it.
        extra_headers: Additional headers to send.
    """
    status_message = STATUS_MESSAGES.get(status, "Unknown")

    body_bytes = body.encode("utf-8")
    lines = [f"HTTP/1.1 {status} {status_message}"]
    if content_type and status != 204:
        lines.append(f"Content-Type: {content_type}; charset=utf-8")
    for name, value in (extra_headers or {}).items():
        lines.append(f"{name}: {value}")
    if status != 204:
        lines.append(f"Content-Length: {len(body_bytes)}")
    lines.append("Connection: close")
    lines.extend(["", ""])

    writer.write("\r\n".join(lines).encode("utf-8") + body_bytes)
    await writer.drain()


def _error_body(code: int, message: str) -> str:
    return Response(error=Error(message, code), version="2.0").to_json()


async def emit_response(writer: asyncio.StreamWriter, response: Response) -> None:
    """Write a handled JSON-RPC response to the connection.

    A result that cannot be encoded is replaced by an INTERNAL_ERROR fault
    carrying the same id.
    """
    try:
        body = response.to_json()
    except (TypeError, ValueError) as e:
        logger.error("Failed to encode result for id=%r: %s", response.id, e)
        response.result = None
        response.error = Error("Internal error", INTERNAL_ERROR)
        body = response.to_json()

    if isinstance(response, HttpResponse):
        content_type = response.headers.get("Content-Type")
        await send_http_response(writer, response.status_code, body, content_type)
        return
    content_type = response.service_map.content_type if response.service_map else None
    await send_http_response(writer, 200, body, content_type)


async def handle_connection(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    dispatcher: Dispatcher,
    max_body_size: int = MAX_BODY_SIZE,
) -> None:
    """Handle one HTTP connection.

    Args:
        reader: The asyncio StreamReader for the connection.
        writer: The asyncio StreamWriter for the connection.
        dispatcher: Dispatcher that handles POSTed requests and owns the SMD.
        max_body_size: Largest accepted request body.
    """
    try:
        try:
            http_request = await read_http_request(reader, max_body_size)
        except HttpParseError as e:
            logger.debug("HTTP parse error: %s", e)
            await send_http_response(writer, 400, _error_body(PARSE_ERROR, str(e)))
            return

        if http_request.method == "GET":
            await send_http_response(
                writer,
                200,
                dispatcher.service_map.to_json(),
                dispatcher.service_map.content_type,
            )
            return

        if http_request.method != "POST":
            await send_http_response(
                writer,
                405,
                _error_body(INVALID_REQUEST, "Method not allowed. Use POST."),
                extra_headers={"Allow": "GET, POST"},
            )
            return

        rpc_request = HttpRequest(http_request.body)
        response = dispatcher.handle(rpc_request, HttpResponse())
        logger.debug(
            "Handled %s (id=%r, error=%s)",
            rpc_request.method or "<invalid>",
            rpc_request.id,
            response.is_error,
        )
        await emit_response(writer, response)

    except Exception as e:
        logger.error("Unexpected error handling connection: %s", e, exc_info=True)
        try:
            await send_http_response(
                writer, 500, _error_body(INTERNAL_ERROR, f"Server error: {type(e).__name__}")
            )
        except Exception as send_err:
            logger.debug("Failed to send error response (client disconnected?): %s", send_err)

    finally:
        try:
            writer.close()
            await writer.wait_closed()
        except Exception as close_err:
            logger.debug("Connection close failed (already closed?): %s", close_err)


async def start_http_server(
    dispatcher: Dispatcher,
    port: int = DEFAULT_PORT,
    host: str = BIND_HOST,
    max_concurrent: int = 32,
    max_body_size: int = MAX_BODY_SIZE,
) -> asyncio.Server:
    """Bind the HTTP server and start accepting connections.

    Args:
        dispatcher: The Dispatcher for incoming requests. Register every
            method before calling this; the method table is not locked.
        port: Port to listen on. 0 picks a free port.
        host: Host to bind to.
        max_concurrent: Maximum concurrently handled connections.
        max_body_size: Largest accepted request body.

    Returns:
        The listening asyncio.Server.
    """
    semaphore = asyncio.Semaphore(max_concurrent)

    async def client_handler(
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        async with semaphore:
            await handle_connection(reader, writer, dispatcher, max_body_size)

    server = await asyncio.start_server(client_handler, host=host, port=port)

    addr = server.sockets[0].getsockname() if server.sockets else (host, port)
    logger.info("JSON-RPC HTTP server running at http://%s:%s/", addr[0], addr[1])
    return server


async def run_http_server(
    dispatcher: Dispatcher,
    port: int = DEFAULT_PORT,
    host: str = BIND_HOST,
    max_concurrent: int = 32,
    max_body_size: int = MAX_BODY_SIZE,
    started_event: asyncio.Event | None = None,
    shutdown_event: asyncio.Event | None = None,
) -> None:
    """Run the HTTP server until cancelled or shutdown_event is set.

    Args:
        dispatcher: The Dispatcher for incoming requests.
        port: Port to listen on.
        host: Host to bind to.
        max_concurrent: Maximum concurrently handled connections.
        max_body_size: Largest accepted request body.
        started_event: Set once the server is listening.
        shutdown_event: When set, the server stops and this coroutine returns.
    """
    server = await start_http_server(dispatcher, port, host, max_concurrent, max_body_size)

    if started_event:
        started_event.set()

    async with server:
        if shutdown_event is None:
            await server.serve_forever()
        else:
            await shutdown_event.wait()
        server.close()
        await server.wait_closed()
        logger.info("HTTP server stopped")
