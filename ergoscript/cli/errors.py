"""
Error handling for the ErgoScript CLI.

Command handlers raise :class:`CLIError` subclasses; compiler and template
errors are wrapped with :func:`from_ergoscript_error` so that every failure
reaches the user through :func:`handle_cli_exception`.
"""

import os
import sys
import traceback
from typing import Any, Dict, Optional

from ..errors import ConfigError, ErgoScriptError


# Maximum length for traceback output in CLI
_CLI_TRACE_LIMIT = 4000


class CLIError(Exception):
    """
    Base exception for all CLI operations.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        hint: Optional suggestion for resolving the error
        context: Additional metadata about the error
    """

    def __init__(
        self,
        message: str,
        *,
        code: str,
        hint: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.hint = hint
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class CLIConfigError(CLIError):
    """
    Project configuration errors.

    Raised when:
    - ergo.json / ergo.toml is unreadable or invalid
    - A ``$NAME`` constant is undefined or its value does not fit its type
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('code', 'CLI_CONFIG_ERROR')
        super().__init__(message, **kwargs)


class CLIValidationError(CLIError):
    """
    Invalid command arguments or options.

    Raised when:
    - Required arguments are missing
    - ``--set`` values are not ``NAME=VALUE`` pairs
    - Incompatible options are used together
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('code', 'CLI_VALIDATION_ERROR')
        super().__init__(message, **kwargs)


class CLIRuntimeError(CLIError):
    """Errors during command execution."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('code', 'CLI_RUNTIME_ERROR')
        super().__init__(message, **kwargs)


class CLICompileError(CLIRuntimeError):
    """
    Contract compilation failures.

    Raised when:
    - The source has syntax or type errors
    - The template docstring or parameters are inconsistent
    - A template cannot be instantiated with the given values
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('code', 'CLI_COMPILE_ERROR')
        super().__init__(message, **kwargs)


class CLIFileNotFoundError(CLIError):
    """Required source, template or configuration file not found."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('code', 'CLI_FILE_NOT_FOUND')
        super().__init__(message, **kwargs)


class CLIDependencyError(CLIError):
    """Missing optional dependencies (for example pygls for ``lsp``)."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('code', 'CLI_DEPENDENCY_ERROR')
        super().__init__(message, **kwargs)


def from_ergoscript_error(exc: ErgoScriptError, *, path: Optional[str] = None) -> CLIError:
    """
    Wrap a compiler, template or configuration error for CLI display.

    The message keeps the ``Error at line L, column C`` form and the context
    records the file and error code.
    """
    context: Dict[str, Any] = {}
    if exc.path or path:
        context['path'] = exc.path or path
    if exc.code:
        context['error_code'] = exc.code
    parameter = getattr(exc, 'parameter', None)
    if parameter:
        context['parameter'] = parameter
    error_class = CLIConfigError if isinstance(exc, ConfigError) else CLICompileError
    return error_class(exc.compile_message(), hint=exc.hint, context=context)


def format_cli_error(
    exc: BaseException,
    *,
    verbose: bool = False,
    include_traceback: bool = False
) -> str:
    """
    Format exception for CLI display with context and hints.

    Examples:
        >>> try:
        ...     raise CLIValidationError("Invalid value", hint="Use NAME=VALUE")
        ... except Exception as e:
        ...     print(format_cli_error(e))
        Error [CLI_VALIDATION_ERROR]: Invalid value
        Hint: Use NAME=VALUE
    """
    lines = []

    if isinstance(exc, CLIError):
        lines.append(f"Error [{exc.code}]: {exc.message}")
        if exc.hint:
            lines.append(f"Hint: {exc.hint}")
        if verbose and exc.context:
            lines.append("\nContext:")
            for key, value in exc.context.items():
                lines.append(f"  {key}: {value}")
    elif isinstance(exc, ErgoScriptError):
        lines.append(f"Error: {exc.format()}")
    else:
        error_type = exc.__class__.__name__
        lines.append(f"Error: {error_type}: {exc}")

    if include_traceback:
        lines.append("\nTraceback:")
        lines.append(format_traceback_excerpt())

    return "\n".join(lines)


def format_traceback_excerpt() -> str:
    """
    Format the current exception traceback, truncated to the CLI limit.

    Should only be called within an exception handler context.
    """
    trace = traceback.format_exc().strip()
    if len(trace) <= _CLI_TRACE_LIMIT:
        return trace
    return f"{trace[:_CLI_TRACE_LIMIT - 3]}..."


def _env_flag(name: str) -> bool:
    val = os.getenv(name)
    if val is None:
        return False
    return val.strip().lower() in {"1", "true", "yes", "on"}


def cli_verbose_enabled(verbose_flag: bool = False) -> bool:
    """Respects an explicit flag and the ERGOSCRIPT_VERBOSE variable."""
    return verbose_flag or _env_flag("ERGOSCRIPT_VERBOSE")


def cli_reraise_enabled() -> bool:
    """Controlled by the ERGOSCRIPT_RERAISE variable."""
    return _env_flag("ERGOSCRIPT_RERAISE")


def handle_cli_exception(
    exc: BaseException,
    *,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """
    Handle exception at CLI top-level with proper formatting and exit.

    Note:
        This function calls sys.exit() and does not return.
    """
    verbose_effective = cli_verbose_enabled(verbose)
    if cli_reraise_enabled():
        raise exc

    error_message = format_cli_error(
        exc,
        verbose=verbose_effective,
        include_traceback=verbose_effective
    )
    print(error_message, file=sys.stderr)
    sys.exit(exit_code)


__all__ = [
    "CLIError",
    "CLIConfigError",
    "CLIValidationError",
    "CLIRuntimeError",
    "CLICompileError",
    "CLIFileNotFoundError",
    "CLIDependencyError",
    "from_ergoscript_error",
    "format_cli_error",
    "handle_cli_exception",
]
