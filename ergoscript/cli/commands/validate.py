"""
Validate command implementation.

Runs template extraction only: docstring, parameter types, defaults and
``@param`` tags are checked without compiling the contract body.
"""

import argparse
from pathlib import Path

from ...errors import ErgoScriptError
from ...templates.extractor import extract_template
from ..context import get_cli_context, prepare_source, read_text_file
from ..errors import from_ergoscript_error, handle_cli_exception
from ..output import describe_draft, print_success


def cmd_validate(args: argparse.Namespace) -> None:
    try:
        ctx = get_cli_context(args)
        path = Path(args.file)
        expanded = prepare_source(ctx, read_text_file(path), str(path))
        try:
            draft = extract_template(expanded.text, path=str(path))
        except ErgoScriptError as exc:
            raise from_ergoscript_error(expanded.relocate(exc), path=str(path)) from exc
        print(describe_draft(draft))
        print_success(f"Template {draft.name} is valid")

    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))


def add_validate_command(subparsers) -> None:
    validate_parser = subparsers.add_parser(
        'validate',
        help='Check a contract template declaration without compiling it'
    )
    validate_parser.add_argument('file', help='Path to the contract template source')
    validate_parser.set_defaults(func=cmd_validate)
