"""HTTP server mode for jsonsmd.

Runs a Dispatcher behind the asyncio HTTP binding:

    - POST with a JSON-RPC request body -> handled by the Dispatcher
    - GET -> the Service Mapping Description

Example:
    jsonsmd serve mypackage.calc:Calculator --port 8765

    curl -X POST http://localhost:8765/ \\
        -H "Content-Type: application/json" \\
        -d '{"jsonrpc":"2.0","method":"add","params":[1,2],"id":1}'
"""

import asyncio
import logging
from pathlib import Path

from jsonsmd.cli.commands import load_target, resolve_config
from jsonsmd.cli.output import print_error, print_info
from jsonsmd.core.errors import JsonSmdError
from jsonsmd.rpc.bootstrap import build_dispatcher, configure_server_logging
from jsonsmd.rpc.cache import load_or_save_smd
from jsonsmd.rpc.http import run_http_server

logger = logging.getLogger(__name__)


async def run_serve(
    targets: list[str],
    config_path: Path | None = None,
    host: str | None = None,
    port: int | None = None,
    log_dir: Path | None = None,
    verbose: bool = False,
) -> int:
    """Serve the given targets until interrupted.

    Args:
        targets: ``module:attribute`` names to register, in order.
        config_path: Explicit config file.
        host: Interface to bind. If None, uses config.server.host.
        port: Port to listen on. If None, uses config.server.port.
        log_dir: Directory for server.log. If None, uses config.server.log_dir.
        verbose: Enable DEBUG output to console.

    Returns:
        Process exit code.
    """
    try:
        config = resolve_config(config_path)
        server = config.server
        configure_server_logging(
            level=logging.getLevelName(server.log_level),
            log_dir=log_dir or server.log_dir,
            console_level=logging.DEBUG if verbose else logging.WARNING,
        )
        dispatcher = build_dispatcher(config.smd, [load_target(t) for t in targets])
    except JsonSmdError as e:
        print_error(e.message)
        return 1

    if config.smd_cache is not None and load_or_save_smd(config.smd_cache, dispatcher) is None:
        logger.warning("SMD cache not written: %s", config.smd_cache)

    effective_host = host or server.host
    effective_port = port if port is not None else server.port

    started_event = asyncio.Event()
    server_task = asyncio.create_task(
        run_http_server(
            dispatcher,
            effective_port,
            effective_host,
            max_concurrent=server.max_concurrent,
            max_body_size=server.max_body_size,
            started_event=started_event,
        )
    )

    # Bind failures surface through the task before the event is set
    waiter = asyncio.create_task(started_event.wait())
    await asyncio.wait({server_task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    if server_task.done():
        waiter.cancel()
        exc = server_task.exception()
        print_error(f"Server failed to start: {exc}")
        return 1

    print_info(f"Serving {len(dispatcher.get_functions())} methods")
    print_info(f"Server: http://{effective_host}:{effective_port}/")
    print_info("Press Ctrl+C to stop")

    try:
        await server_task
    except asyncio.CancelledError:
        server_task.cancel()
        try:
            await server_task
        except asyncio.CancelledError:
            pass
        raise
    return 0
