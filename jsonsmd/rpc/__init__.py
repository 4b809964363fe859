"""JSON-RPC 1.0/2.0 server and SMD support.

This package provides the request/response model, the Service Mapping
Description, a reflection-driven Dispatcher and an asyncio HTTP binding.

Example usage:
    jsonsmd serve mymodule:Calculator  # Start HTTP server on port 8765
    curl -X POST http://localhost:8765/ \\
        -d '{"jsonrpc":"2.0","method":"add","params":[1,2],"id":1}'
"""

from jsonsmd.rpc.dispatcher import Dispatcher, RegistrationError
from jsonsmd.rpc.http import (
    BIND_HOST,
    DEFAULT_PORT,
    MAX_BODY_SIZE,
    HttpParseError,
    HttpRequest,
    HttpResponse,
    handle_connection,
    read_http_request,
    run_http_server,
    send_http_response,
    start_http_server,
)
from jsonsmd.rpc.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    VERSION_1,
    VERSION_2,
    Error,
    ParseError,
    RpcFault,
)
from jsonsmd.rpc.reflection import MethodSignature, ParameterInfo
from jsonsmd.rpc.smd import (
    ENV_JSONRPC_1,
    ENV_JSONRPC_2,
    DuplicateServiceError,
    Service,
    ServiceDefinitionError,
    ServiceDescriptor,
)
from jsonsmd.rpc.types import Request, Response

__all__ = [
    # Protocol
    "VERSION_1",
    "VERSION_2",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "SERVER_ERROR",
    "Error",
    "ParseError",
    "RpcFault",
    # Types
    "Request",
    "Response",
    # SMD
    "ENV_JSONRPC_1",
    "ENV_JSONRPC_2",
    "Service",
    "ServiceDescriptor",
    "ServiceDefinitionError",
    "DuplicateServiceError",
    # Dispatcher
    "Dispatcher",
    "RegistrationError",
    "MethodSignature",
    "ParameterInfo",
    # HTTP
    "BIND_HOST",
    "DEFAULT_PORT",
    "MAX_BODY_SIZE",
    "HttpParseError",
    "HttpRequest",
    "HttpResponse",
    "handle_connection",
    "read_http_request",
    "run_http_server",
    "send_http_response",
    "start_http_server",
]
