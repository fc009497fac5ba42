"""Unified error model for the ErgoScript toolchain."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ErrorLocation:
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def describe(self) -> str:
        if self.path and self.line is not None and self.column is not None:
            return f"{self.path}:{self.line}:{self.column}"
        if self.path and self.line is not None:
            return f"{self.path}:{self.line}"
        if self.line is not None and self.column is not None:
            return f"line {self.line}, column {self.column}"
        if self.path:
            return self.path
        return "unknown location"


class ErgoScriptError(Exception):
    """Base class for all compiler and template errors surfaced to users.

    Line and column numbers are 1-based, as shown to users.
    """

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = ErrorLocation(path=path, line=line, column=column)
        self.path = path
        self.line = line
        self.column = column
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def format(self) -> str:
        components = [self.message]
        meta_parts = []
        location_desc = self.location.describe()
        if location_desc != "unknown location":
            meta_parts.append(location_desc)
        if self.code:
            meta_parts.append(self.code)
        if meta_parts:
            components[-1] = f"{components[-1]} ({'; '.join(meta_parts)})"
        if self.hint:
            components.append(f"Hint: {self.hint}")
        return " ".join(part for part in components if part)

    def compile_message(self) -> str:
        """Render as ``Error at line L, column C: message``."""
        if self.line is not None:
            column = self.column if self.column is not None else 1
            return f"Error at line {self.line}, column {column}: {self.message}"
        return f"Error: {self.message}"


class ScriptSyntaxError(ErgoScriptError):
    """Raised when the lexer or parser encounters invalid syntax."""

    code = "ERGO-SYNTAX"


class ScriptTypeError(ErgoScriptError):
    """Raised when an expression cannot be typed."""

    code = "ERGO-TYPE"


class UnsupportedFeatureError(ErgoScriptError):
    """Raised for constructs the compiler recognizes but cannot lower."""

    code = "ERGO-UNSUPPORTED"


class ConfigError(ErgoScriptError):
    """Raised when the project configuration is unreadable or invalid."""

    code = "ERGO-CONFIG"


class TemplateError(ErgoScriptError):
    """Raised when a contract template declaration is inconsistent."""

    code = "ERGO-TEMPLATE"

    def __init__(self, message: str, *, parameter: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.parameter = parameter


class MissingParamDoc(TemplateError):
    """A declared parameter has no matching ``@param`` docstring tag."""


class MissingDefault(TemplateError):
    """A declared parameter has no default value."""


class MissingTypeAnnotation(TemplateError):
    """A declared parameter has no type annotation."""


class MalformedDocstring(TemplateError):
    """The contract annotation is not preceded by a block comment."""


class InvalidDefault(TemplateError):
    """A default value is not a constant of the declared type."""


class ImportResolutionError(ErgoScriptError):
    """Raised when an ``#import`` directive cannot be expanded.

    ``origin_line`` is the line of the directive chain in the document being
    compiled, which differs from ``line`` for directives of imported files.
    """

    code = "ERGO-IMPORT"

    def __init__(self, message: str, *, origin_line: Optional[int] = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.origin_line = origin_line if origin_line is not None else self.line


class TemplateInstantiationError(ErgoScriptError):
    """Raised when substituting values into a compiled template fails."""

    code = "ERGO-INSTANTIATE"


__all__ = [
    "ErgoScriptError",
    "ScriptSyntaxError",
    "ScriptTypeError",
    "UnsupportedFeatureError",
    "ConfigError",
    "TemplateError",
    "MissingParamDoc",
    "MissingDefault",
    "MissingTypeAnnotation",
    "MalformedDocstring",
    "InvalidDefault",
    "TemplateInstantiationError",
    "ImportResolutionError",
    "ErrorLocation",
]
