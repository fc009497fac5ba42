"""
ErgoScript CLI entry point.

Dispatches the ``compile``, ``build``, ``instantiate``, ``validate``,
``init`` and ``lsp`` subcommands to the modules in :mod:`ergoscript.cli.commands`.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .. import __version__
from ..config import load_project_config
from ..errors import ErgoScriptError
from .commands import (
    add_build_command,
    add_compile_command,
    add_init_command,
    add_instantiate_command,
    add_lsp_command,
    add_validate_command,
)
from .context import CLIContext
from .errors import from_ergoscript_error, handle_cli_exception

LOG_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warning': logging.WARNING,
    'error': logging.ERROR,
    'critical': logging.CRITICAL,
}
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _configure_logging(args) -> None:
    """Configure the ``ergoscript`` logger from --log-level, --verbose or ERGOSCRIPT_LOG_LEVEL."""
    if getattr(args, 'verbose', False):
        log_level = 'debug'
    else:
        log_level = (
            getattr(args, 'log_level', None) or
            os.getenv('ERGOSCRIPT_LOG_LEVEL', 'warning')
        ).lower()
    numeric_level = LOG_LEVELS.get(log_level, logging.WARNING)

    package_logger = logging.getLogger('ergoscript')
    package_logger.setLevel(numeric_level)

    # stdout is reserved for command output and the LSP stream.
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
        package_logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ErgoScript tools: contract template compiler and language server",
        prog="ergoscript"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        '--config',
        default=None,
        help='Path to the project configuration (ergo.json, ergoproject.json or ergo.toml)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging and full tracebacks (or set ERGOSCRIPT_VERBOSE=1)'
    )
    parser.add_argument(
        '--log-level',
        choices=sorted(LOG_LEVELS),
        default=None,
        help='Logging level (or set ERGOSCRIPT_LOG_LEVEL; default: warning)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    add_compile_command(subparsers)
    add_build_command(subparsers)
    add_instantiate_command(subparsers)
    add_validate_command(subparsers)
    add_init_command(subparsers)
    add_lsp_command(subparsers)
    return parser


def main(argv: Optional[list] = None) -> None:
    """
    Main CLI entrypoint with subcommand support.

    Args:
        argv: Command-line arguments (None uses sys.argv[1:])

    Examples:
        >>> main(['compile', '-i', 'height_lock.es'])  # doctest: +SKIP
        >>> main(['instantiate', 'height_lock.json', '--set', 'minHeight=500'])  # doctest: +SKIP
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        sys.exit(1)

    args.verbose = getattr(args, "verbose", False)
    _configure_logging(args)

    workspace_root = Path.cwd()
    config_path = Path(args.config) if getattr(args, 'config', None) else None
    try:
        config = load_project_config(workspace_root, config_path)
    except ErgoScriptError as exc:
        handle_cli_exception(from_ergoscript_error(exc), verbose=args.verbose)
        return

    args.cli_context = CLIContext(workspace_root=workspace_root, config=config)
    args.func(args)


__all__ = ["main", "build_parser"]


if __name__ == '__main__':  # pragma: no cover
    main()
