"""
Compile command implementation.

Compiles one contract source (a template or a plain script) into the JSON
template format.
"""

import argparse
import logging
import sys
from pathlib import Path

from ...errors import ErgoScriptError
from ...templates.compiler import compile_source
from ..context import get_cli_context, prepare_source, read_text_file
from ..errors import CLIValidationError, from_ergoscript_error, handle_cli_exception
from ..output import print_success, write_template

logger = logging.getLogger(__name__)


def cmd_compile(args: argparse.Namespace) -> None:
    """
    Handle the 'compile' subcommand.

    Args:
        args: Parsed command-line arguments containing:
            - input: Path to the contract source (or ``source`` inline text)
            - output: Where to write the template JSON (stdout when omitted)
            - name / description: Metadata for plain scripts
            - network / tree_version: Overrides of the project settings

    Examples:
        >>> args = argparse.Namespace(input='height_lock.es', source=None, output=None, ...)
        >>> cmd_compile(args)  # doctest: +SKIP
        {
          "name": "heightLock",
          ...
    """
    try:
        ctx = get_cli_context(args)
        if args.input and args.source:
            raise CLIValidationError("Use either --input or --source, not both")
        if args.input:
            path = str(Path(args.input))
            source = read_text_file(Path(args.input))
        elif args.source is not None:
            path = None
            source = args.source
        else:
            raise CLIValidationError(
                "No contract source given",
                hint="Pass a file with -i/--input or inline code with -s/--source",
            )

        expanded = prepare_source(ctx, source, path)
        try:
            template = compile_source(
                expanded.text,
                name=args.name,
                description=args.description,
                network=ctx.network(args.network),
                tree_version=ctx.tree_version(args.tree_version),
                path=path,
            )
        except ErgoScriptError as exc:
            raise from_ergoscript_error(expanded.relocate(exc), path=path) from exc

        if args.output:
            output = Path(args.output)
            write_template(template, output)
            print_success(f"Compiled {template.name} to {output}")
        else:
            sys.stdout.write(template.to_json() + "\n")
            logger.debug("Compiled %s (%d parameters)", template.name, len(template.parameters))

    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))


def add_compile_command(subparsers) -> None:
    compile_parser = subparsers.add_parser(
        'compile',
        help='Compile a contract source into a JSON template'
    )
    compile_parser.add_argument('-i', '--input', help='Path to the contract source file')
    compile_parser.add_argument('-s', '--source', help='Inline contract source code')
    compile_parser.add_argument('-o', '--output', help='Write the template JSON to this file')
    compile_parser.add_argument('-n', '--name', help='Contract name for scripts without @contract')
    compile_parser.add_argument('-d', '--description', help='Contract description for scripts without @contract')
    add_target_options(compile_parser)
    compile_parser.set_defaults(func=cmd_compile)


def add_target_options(parser) -> None:
    parser.add_argument(
        '--network',
        choices=['mainnet', 'testnet'],
        default=None,
        help='Network used to decode PK addresses (default: project setting or mainnet)'
    )
    parser.add_argument(
        '--tree-version',
        type=int,
        choices=range(0, 8),
        metavar='{0..7}',
        default=None,
        help='ErgoTree version (default: project setting or 0)'
    )
