"""
CLI context and source loading.

The project configuration is resolved once per invocation and shared by
every command through :class:`CLIContext`.
"""

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config import ProjectConfig
from ..errors import ErgoScriptError
from ..templates.constants import CONSTANT_PATTERN, substitute_constants
from ..templates.imports import ExpandedSource, expand_imports
from .errors import CLIConfigError, CLIFileNotFoundError, from_ergoscript_error


@dataclass
class CLIContext:
    """
    Shared context resolved from the project configuration.

    Attributes:
        workspace_root: Directory the configuration search started from
        config: Parsed project configuration (defaults when no file exists)
    """

    workspace_root: Path
    config: ProjectConfig

    def network(self, override: Optional[str] = None) -> str:
        return override or self.config.network

    def tree_version(self, override: Optional[int] = None) -> int:
        return self.config.tree_version if override is None else override


def get_cli_context(args: argparse.Namespace) -> CLIContext:
    """
    Retrieve CLIContext from parsed arguments.

    Raises:
        CLIConfigError: If context was not initialized
    """
    ctx = getattr(args, "cli_context", None)
    if ctx is None:
        raise CLIConfigError(
            "CLI context was not initialized before command execution",
            hint="This is an internal error - please report it",
            code="CLI_CONTEXT_NOT_INITIALIZED"
        )
    return ctx


def read_text_file(path: Path, *, kind: str = "Source file") -> str:
    if not path.is_file():
        raise CLIFileNotFoundError(f"{kind} not found: {path}", context={"path": str(path)})
    return path.read_text(encoding="utf-8")


def prepare_source(ctx: CLIContext, source: str, path: Optional[str] = None) -> ExpandedSource:
    """Expand ``#import`` directives, then replace ``$NAME`` project constants.

    Errors raised while compiling ``expanded.text`` should go through
    :meth:`ExpandedSource.relocate` to point at the file they came from.
    """
    config = ctx.config
    try:
        expanded = expand_imports(source, path, config.root, config.directories).check()
        if CONSTANT_PATTERN.search(expanded.text):
            expanded.text = substitute_constants(expanded.text, config.constants)
    except ErgoScriptError as exc:
        raise from_ergoscript_error(exc, path=path) from exc
    return expanded
