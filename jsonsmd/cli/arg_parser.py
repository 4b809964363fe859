"""Argument parsing for the jsonsmd CLI."""

import argparse
from pathlib import Path


def add_config_arg(parser: argparse.ArgumentParser) -> None:
    """Add --config argument to a parser."""
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Config file (default: $JSONSMD_CONFIG or ./jsonsmd.json)",
    )


def add_target_arg(parser: argparse.ArgumentParser) -> None:
    """Add the positional TARGET argument to a parser."""
    parser.add_argument(
        "targets",
        metavar="TARGET",
        nargs="+",
        help="Function, class or object to expose, as module:attribute",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jsonsmd",
        description="JSON-RPC server and Service Mapping Description tools",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve - run the HTTP server
    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve TARGET over JSON-RPC on HTTP",
    )
    add_target_arg(serve_parser)
    add_config_arg(serve_parser)
    serve_parser.add_argument(
        "--host",
        default=None,
        help="Interface to bind (default: config server.host)",
    )
    serve_parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Server port (default: config server.port, 8765)",
    )
    serve_parser.add_argument(
        "--log-dir",
        dest="log_dir",
        type=Path,
        default=None,
        help="Write server.log to this directory",
    )
    serve_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable DEBUG output to the console",
    )

    # smd - print the service map
    smd_parser = subparsers.add_parser(
        "smd",
        help="Print the Service Mapping Description for TARGET",
    )
    add_target_arg(smd_parser)
    add_config_arg(smd_parser)
    smd_parser.add_argument(
        "--dojo",
        action="store_true",
        help="Emit the Dojo-compatible SMD form",
    )

    # call - invoke a remote method
    call_parser = subparsers.add_parser(
        "call",
        help="Call a method on a JSON-RPC server",
    )
    call_parser.add_argument("url", help="Server endpoint URL")
    call_parser.add_argument("method", help="Method name")
    call_parser.add_argument(
        "params",
        nargs="?",
        default=None,
        help="Params as a JSON array or object",
    )
    call_parser.add_argument(
        "--v1",
        dest="version",
        action="store_const",
        const="1.0",
        default="2.0",
        help="Send a JSON-RPC 1.0 request",
    )
    call_parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Request timeout in seconds (default: 30)",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_parser().parse_args(argv)
