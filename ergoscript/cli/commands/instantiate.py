"""
Instantiate command implementation.

Substitutes parameter values into a compiled template without recompiling
the contract.
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List

from ...errors import ErgoScriptError
from ...templates.model import ContractTemplate, ergo_tree_hex, instantiate, instantiate_raw
from ..context import get_cli_context, read_text_file
from ..errors import CLIValidationError, from_ergoscript_error, handle_cli_exception
from ..output import print_success, write_template
from .compile import add_target_options


def parse_assignments(entries: List[str]) -> Dict[str, str]:
    """Split ``NAME=VALUE`` pairs; the value may itself contain ``=``."""
    values: Dict[str, str] = {}
    for entry in entries:
        name, sep, value = entry.partition("=")
        name = name.strip()
        if not sep or not name:
            raise CLIValidationError(
                f"Invalid --set value '{entry}'",
                hint="Use --set NAME=VALUE, for example --set minHeight=500",
            )
        values[name] = value
    return values


def cmd_instantiate(args: argparse.Namespace) -> None:
    """
    Handle the 'instantiate' subcommand.

    Values are ErgoScript literals of the parameter type, or serialized hex
    data with ``--raw``.

    Examples:
        >>> cmd_instantiate(argparse.Namespace(template='lock.json', set=['minHeight=500'], ...))  # doctest: +SKIP
    """
    try:
        ctx = get_cli_context(args)
        template_path = Path(args.template)
        values = parse_assignments(args.set or [])
        try:
            template = ContractTemplate.from_json(read_text_file(template_path, kind="Template"))
            if args.raw:
                template = instantiate_raw(template, values)
            else:
                template = instantiate(template, values, network=ctx.network(args.network))
            tree = ergo_tree_hex(template, ctx.tree_version(args.tree_version)) if args.ergo_tree else None
        except ErgoScriptError as exc:
            raise from_ergoscript_error(exc, path=str(template_path)) from exc

        if tree is not None:
            output_text = tree
        else:
            output_text = template.to_json()

        if args.output:
            output = Path(args.output)
            if tree is not None:
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_text(tree + "\n", encoding="utf-8")
            else:
                write_template(template, output)
            print_success(f"Instantiated {template.name} to {output}")
        else:
            sys.stdout.write(output_text + "\n")

    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))


def add_instantiate_command(subparsers) -> None:
    instantiate_parser = subparsers.add_parser(
        'instantiate',
        help='Set parameter values of a compiled template'
    )
    instantiate_parser.add_argument('template', help='Path to the template JSON')
    instantiate_parser.add_argument(
        '--set',
        action='append',
        default=[],
        metavar='NAME=VALUE',
        help='Parameter value (may be provided multiple times)'
    )
    instantiate_parser.add_argument(
        '--raw',
        action='store_true',
        help='Treat values as serialized hex data instead of ErgoScript literals'
    )
    instantiate_parser.add_argument('-o', '--output', help='Write the result to this file')
    instantiate_parser.add_argument(
        '--ergo-tree',
        action='store_true',
        help='Output the complete ErgoTree hex instead of the template'
    )
    add_target_options(instantiate_parser)
    instantiate_parser.set_defaults(func=cmd_instantiate)
