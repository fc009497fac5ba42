"""
Build command implementation.

Compiles every contract listed under ``compile.contracts`` in the project
configuration into the output directory.
"""

import argparse
import logging
from pathlib import Path

from ...errors import ErgoScriptError
from ...templates.compiler import compile_source
from ..context import get_cli_context, prepare_source, read_text_file
from ..errors import CLIValidationError, from_ergoscript_error, handle_cli_exception
from ..output import print_success, write_template
from .compile import add_target_options

logger = logging.getLogger(__name__)


def cmd_build(args: argparse.Namespace) -> None:
    """
    Handle the 'build' subcommand.

    Every target is compiled before anything is written, so a failing
    contract leaves the output directory untouched.

    Examples:
        >>> cmd_build(argparse.Namespace(config='ergo.json'))  # doctest: +SKIP
        ✓ Built HeightLock -> build/height_lock.json
    """
    try:
        ctx = get_cli_context(args)
        config = ctx.config
        if not config.contracts:
            raise CLIValidationError(
                "No contracts to build",
                hint="List contracts under compile.contracts in ergo.json",
            )

        results = []
        for target in config.contracts:
            source_path = config.resolve_source(target)
            expanded = prepare_source(ctx, read_text_file(source_path), str(source_path))
            try:
                template = compile_source(
                    expanded.text,
                    name=target.name,
                    network=ctx.network(getattr(args, "network", None)),
                    tree_version=ctx.tree_version(getattr(args, "tree_version", None)),
                    path=str(source_path),
                )
            except ErgoScriptError as exc:
                raise from_ergoscript_error(expanded.relocate(exc), path=str(source_path)) from exc
            results.append((target, template))
            logger.debug("Compiled build target %s from %s", target.name, source_path)

        for target, template in results:
            output = config.resolve_output(target)
            write_template(template, output)
            print_success(f"Built {target.name} -> {output}")

    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))


def add_build_command(subparsers) -> None:
    build_parser = subparsers.add_parser(
        'build',
        help='Compile every contract configured in the project file'
    )
    build_parser.add_argument(
        '--config',
        default=argparse.SUPPRESS,
        help='Path to the project configuration (ergo.json, ergoproject.json or ergo.toml)'
    )
    add_target_options(build_parser)
    build_parser.set_defaults(func=cmd_build)
