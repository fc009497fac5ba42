"""
Init command implementation.

Scaffolds a project: the source, library, test and output directories, an
``ergo.json`` and a sample contract that ``ergoscript build`` compiles.
Existing files are left untouched.
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict

from ...config import DirectoryConfig
from ..errors import CLIRuntimeError, handle_cli_exception
from ..output import print_success

logger = logging.getLogger(__name__)

DEFAULT_NAME = "my-ergo-project"
DEFAULT_DESCRIPTION = "An ErgoScript project"

SAMPLE_CONTRACT = """\
// Sample ErgoScript contract
// Spendable above height 100 while the box keeps the minimum value
{
  sigmaProp(HEIGHT > 100 && SELF.value >= $MIN_BOX_VALUE)
}
"""


def default_project(name: str, description: str) -> Dict[str, Any]:
    """The ``ergo.json`` written for a new project."""
    directories = DirectoryConfig()
    return {
        "name": name,
        "version": "1.0.0",
        "description": description,
        "ergoscript": {"version": "6.0", "network": "mainnet"},
        "directories": {
            "source": directories.source,
            "lib": directories.lib,
            "output": directories.output,
            "tests": directories.tests,
        },
        "constants": {
            "MIN_BOX_VALUE": {
                "type": "Long",
                "value": "1000000",
                "description": "Minimum box value in nanoErgs",
            }
        },
        "compile": {
            "contracts": [
                {"name": "MainContract", "source": f"{directories.source}/main.es", "output": "main.json"}
            ]
        },
    }


def cmd_init(args: argparse.Namespace) -> None:
    """
    Handle the 'init' subcommand.

    Examples:
        >>> cmd_init(argparse.Namespace(directory='.', name='vault', description='Vault'))  # doctest: +SKIP
        Initializing ErgoScript project: vault
          Created src/
        ...
    """
    try:
        root = Path(args.directory)
        print(f"Initializing ErgoScript project: {args.name}")
        project = default_project(args.name, args.description)
        try:
            for directory in project["directories"].values():
                path = root / directory
                if not path.exists():
                    path.mkdir(parents=True)
                    print(f"  Created {directory}/")
            source_dir = project["directories"]["source"]
            _write_once(root, "ergo.json", json.dumps(project, indent=2) + "\n")
            _write_once(root, f"{source_dir}/main.es", SAMPLE_CONTRACT)
        except OSError as exc:
            raise CLIRuntimeError(
                f"Cannot initialize project in {root}: {exc}",
                code="CLI_INIT_ERROR",
                context={"path": str(root)},
            ) from exc

        print_success(f"Project {args.name} initialized")
        print("\nNext steps:")
        print("  1. Edit src/main.es to define your contract")
        print("  2. Build: ergoscript build")
        print("  3. Or compile one file: ergoscript compile -i src/main.es -o build/main.json")

    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))


def _write_once(root: Path, name: str, content: str) -> None:
    path = root / name
    if path.exists():
        print(f"  {name} already exists, skipping")
        logger.debug("Not overwriting %s", path)
        return
    path.write_text(content, encoding="utf-8")
    print(f"  Created {name}")


def add_init_command(subparsers) -> None:
    init_parser = subparsers.add_parser(
        'init',
        help='Create a new ErgoScript project in a directory'
    )
    init_parser.add_argument(
        'directory',
        nargs='?',
        default='.',
        help='Project directory (default: current directory)'
    )
    init_parser.add_argument('--name', default=DEFAULT_NAME, help='Project name')
    init_parser.add_argument('--description', default=DEFAULT_DESCRIPTION, help='Project description')
    init_parser.set_defaults(func=cmd_init)
