"""Diagnostics for ErgoScript documents."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Mapping, Optional

from lsprotocol.types import Diagnostic, DiagnosticSeverity, DiagnosticTag, Position, Range

from ..config import ConstantDefinition, DirectoryConfig
from ..errors import ErgoScriptError, ImportResolutionError, UnsupportedFeatureError
from ..templates.compiler import compile_source
from ..templates.constants import CONSTANT_PATTERN, substitute_constants
from ..templates.imports import IMPORT_PATTERN, ExpandedSource, expand_imports, find_project_root
from .symbols import extract_user_symbols

logger = logging.getLogger(__name__)

SOURCE = "ergoscript"


def document_diagnostics(
    text: str,
    path: Optional[str] = None,
    constants: Optional[Mapping[str, ConstantDefinition]] = None,
    root: Optional[Path] = None,
    directories: Optional[DirectoryConfig] = None,
) -> List[Diagnostic]:
    """Compile diagnostics followed by unused-value warnings."""
    return compile_diagnostics(text, path, constants, root, directories) + unused_value_diagnostics(text)


def compile_diagnostics(
    text: str,
    path: Optional[str] = None,
    constants: Optional[Mapping[str, ConstantDefinition]] = None,
    root: Optional[Path] = None,
    directories: Optional[DirectoryConfig] = None,
) -> List[Diagnostic]:
    """Diagnostics of compiling *text* with its imports expanded.

    Problems inside imported files are reported on the ``#import`` line that
    pulled them in.
    """
    if not text.strip():
        return []
    if root is None and path and IMPORT_PATTERN.search(text):
        root = find_project_root(path)
    expanded = expand_imports(text, path, root, directories)
    if expanded.errors:
        return [import_diagnostic(error, expanded, text) for error in expanded.errors]
    source = expanded.text
    try:
        if CONSTANT_PATTERN.search(source):
            source = substitute_constants(source, constants or {})
        compile_source(source, path=path)
    except UnsupportedFeatureError as exc:
        return [error_diagnostic(_in_document(exc, expanded), text, DiagnosticSeverity.Information)]
    except ErgoScriptError as exc:
        return [error_diagnostic(_in_document(exc, expanded), text, DiagnosticSeverity.Error)]
    except Exception as exc:
        logger.debug("Compilation crashed for %s: %s", path, exc, exc_info=True)
    return []


def import_diagnostic(error: ImportResolutionError, expanded: ExpandedSource, text: str) -> Diagnostic:
    if error.path == expanded.path:
        return error_diagnostic(error, text, DiagnosticSeverity.Error)
    message = f"{error.message} (in {error.path}:{error.line})"
    return error_diagnostic(
        ImportResolutionError(message, line=error.origin_line, column=1),
        text,
        DiagnosticSeverity.Error,
    )


def _in_document(error: ErgoScriptError, expanded: ExpandedSource) -> ErgoScriptError:
    location = expanded.original_location(error.line)
    if location is None:
        return error
    if location.path == expanded.path:
        return expanded.relocate(error)
    error.message = f"{error.message} (in {location.path}:{location.line})"
    error.line = location.origin_line
    error.column = 1
    return error
    source = text
    try:
        if CONSTANT_PATTERN.search(text):
            source = substitute_constants(text, constants or {})
        compile_source(source, path=path)
    except UnsupportedFeatureError as exc:
        return [error_diagnostic(exc, text, DiagnosticSeverity.Information)]
    except ErgoScriptError as exc:
        return [error_diagnostic(exc, text, DiagnosticSeverity.Error)]
    except Exception as exc:
        logger.debug("Compilation crashed for %s: %s", path, exc, exc_info=True)
    return []


def error_diagnostic(error: ErgoScriptError, text: str, severity: DiagnosticSeverity) -> Diagnostic:
    lines = text.splitlines() or [""]
    line = min(max((error.line or 1) - 1, 0), len(lines) - 1)
    column = max((error.column or 1) - 1, 0)
    length = _word_length(lines[line], column)
    return Diagnostic(
        range=Range(start=Position(line=line, character=column), end=Position(line=line, character=column + length)),
        message=error.message,
        severity=severity,
        source=SOURCE,
        code=error.code,
    )


def unused_value_diagnostics(text: str) -> List[Diagnostic]:
    """Warn about ``val``s whose name never appears after the declaration."""
    diagnostics = []
    line_starts = [0] + [match.end() for match in re.finditer("\n", text)]
    for symbol in extract_user_symbols(text).values():
        if symbol.line_number >= len(line_starts):
            continue
        line_start = line_starts[symbol.line_number]
        line_end = text.find("\n", line_start)
        if line_end == -1:
            line_end = len(text)
        pattern = re.compile(rf"\bval\s+({re.escape(symbol.name)})\b")
        match = pattern.search(text, line_start, line_end)
        if match is None:
            continue
        if re.search(rf"\b{re.escape(symbol.name)}\b", text[match.end(1):]):
            continue
        start = Position(line=symbol.line_number, character=match.start(1) - line_start)
        end = Position(line=symbol.line_number, character=match.end(1) - line_start)
        diagnostics.append(
            Diagnostic(
                range=Range(start=start, end=end),
                message=f"Value '{symbol.name}' is never used",
                severity=DiagnosticSeverity.Warning,
                source=SOURCE,
                tags=[DiagnosticTag.Unnecessary],
            )
        )
    return diagnostics


def _word_length(line: str, column: int) -> int:
    end = column
    while end < len(line) and (line[end].isalnum() or line[end] == "_"):
        end += 1
    return max(end - column, 1)


__all__ = ["SOURCE", "document_diagnostics", "compile_diagnostics", "unused_value_diagnostics", "error_diagnostic"]
