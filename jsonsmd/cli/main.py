"""Entry point for the ``jsonsmd`` command."""

import asyncio
import os
import sys

from dotenv import load_dotenv

from jsonsmd.cli.arg_parser import parse_args
from jsonsmd.cli.commands import cmd_call, cmd_smd
from jsonsmd.cli.serve import run_serve


def main(argv: list[str] | None = None) -> int:
    # Load .env file if present
    load_dotenv()

    args = parse_args(argv)

    # TARGET modules are resolved relative to the working directory
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())

    if args.command == "smd":
        return cmd_smd(args.targets, args.config, dojo=args.dojo)

    if args.command == "call":
        return asyncio.run(
            cmd_call(args.url, args.method, args.params, args.version, args.timeout)
        )

    try:
        return asyncio.run(
            run_serve(
                args.targets,
                config_path=args.config,
                host=args.host,
                port=args.port,
                log_dir=args.log_dir,
                verbose=args.verbose,
            )
        )
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
