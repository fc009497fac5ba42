"""
Command implementations for the ErgoScript CLI.

Each module exposes a ``cmd_*`` handler and an ``add_*_command`` function
registering its subparser.
"""

from .build import add_build_command, cmd_build
from .compile import add_compile_command, cmd_compile
from .init import add_init_command, cmd_init
from .instantiate import add_instantiate_command, cmd_instantiate
from .lsp import add_lsp_command, cmd_lsp
from .validate import add_validate_command, cmd_validate

__all__ = [
    "add_build_command",
    "add_compile_command",
    "add_init_command",
    "add_instantiate_command",
    "add_lsp_command",
    "add_validate_command",
    "cmd_build",
    "cmd_compile",
    "cmd_init",
    "cmd_instantiate",
    "cmd_lsp",
    "cmd_validate",
]
