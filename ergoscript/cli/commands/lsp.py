"""
Language server command implementation.
"""

import argparse
import os
import sys

from ..errors import CLIDependencyError, CLIRuntimeError, handle_cli_exception


def cmd_lsp(args: argparse.Namespace) -> None:
    """
    Handle the 'lsp' subcommand to launch the ErgoScript language server.

    Starts the server over stdio for editor integration; stdout carries the
    protocol, so status messages go to stderr.

    Examples:
        >>> cmd_lsp(argparse.Namespace())  # doctest: +SKIP
        Starting ErgoScript language server (pid=12345)
    """
    try:
        try:
            from ...lsp.server import create_server
        except ImportError as exc:
            raise CLIDependencyError(
                "pygls is not installed",
                hint="Install with: pip install ergoscript-tools",
            ) from exc

        server = create_server()
        pid = os.getpid()
        print(f"Starting ErgoScript language server (pid={pid})", file=sys.stderr)

        try:
            server.start_io()
        except KeyboardInterrupt:
            print("Language server interrupted by user.", file=sys.stderr)
        except Exception as exc:
            raise CLIRuntimeError(
                f"Language server stopped unexpectedly: {exc}",
            ) from exc

    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))


def add_lsp_command(subparsers) -> None:
    lsp_parser = subparsers.add_parser('lsp', help='Start the ErgoScript language server over stdio')
    lsp_parser.set_defaults(func=cmd_lsp)
