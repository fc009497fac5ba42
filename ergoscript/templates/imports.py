"""``#import`` expansion of contract sources.

A directive ``#import path;`` on a line of its own is replaced by the lines
of the imported file, after that file's own imports are expanded.  Every
line of the result remembers where it came from, so errors found while
compiling the expanded text are reported against the file the user wrote.

Import paths are resolved as follows:

* ``lib:name.es`` and ``src:name.es`` - the project's library and source
  directories;
* ``./name.es`` and ``../name.es`` - relative to the importing file;
* anything else - the legacy ``ergoscript/`` folder and the project root,
  then the importing file's directory, then the path as given.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union

from ..config import DirectoryConfig
from ..errors import ErgoScriptError, ErrorLocation, ImportResolutionError

logger = logging.getLogger(__name__)

IMPORT_PATTERN = re.compile(r"^[ \t]*#import[ \t]+([^;\n]+);", re.MULTILINE)
LIB_PREFIX = "lib:"
SRC_PREFIX = "src:"
LEGACY_DIRECTORY = "ergoscript"
PROJECT_MARKERS = ("ergo.json", "ergoproject.json", "ergo.toml", ".ergoscript", LEGACY_DIRECTORY, ".git")

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ImportDirective:
    """An ``#import`` line; line and columns are 1-based, the end exclusive."""

    target: str
    line: int
    start_column: int
    end_column: int


@dataclass(frozen=True)
class SourceLocation:
    path: Optional[str]
    line: int
    origin_line: int
    chain: Tuple[str, ...] = ()


@dataclass
class ExpandedSource:
    """Source text with every import inlined.

    ``locations[i]`` is the origin of line ``i + 1`` of :attr:`text`;
    ``path`` names the document the expansion started from.
    """

    text: str
    locations: List[SourceLocation]
    imports: List[ImportDirective] = field(default_factory=list)
    errors: List[ImportResolutionError] = field(default_factory=list)
    path: Optional[str] = None

    @property
    def has_imports(self) -> bool:
        return bool(self.imports)

    def original_location(self, line: Optional[int]) -> Optional[SourceLocation]:
        if line is None or not 1 <= line <= len(self.locations):
            return None
        return self.locations[line - 1]

    def relocate(self, error: ErgoScriptError) -> ErgoScriptError:
        """Point *error* at the file and line its expanded line came from."""
        location = self.original_location(error.line)
        if location is None:
            return error
        error.path = location.path or error.path
        error.line = location.line
        error.location = ErrorLocation(path=error.path, line=error.line, column=error.column)
        return error

    def check(self) -> "ExpandedSource":
        """Raise the collected import errors, if any."""
        if not self.errors:
            return self
        first = self.errors[0]
        if len(self.errors) == 1:
            raise first
        raise ImportResolutionError(
            "; ".join(error.message for error in self.errors),
            path=first.path,
            line=first.line,
            column=first.column,
            origin_line=first.origin_line,
        )


def parse_imports(source: str) -> List[ImportDirective]:
    directives = []
    line = 1
    scanned = 0
    for match in IMPORT_PATTERN.finditer(source):
        line += source.count("\n", scanned, match.start())
        scanned = match.start()
        start = source.index("#import", match.start())
        directives.append(
            ImportDirective(
                target=match.group(1).strip(),
                line=line,
                start_column=start - match.start() + 1,
                end_column=match.end() - match.start() + 1,
            )
        )
    return directives


def resolve_import(
    target: str,
    current: Optional[PathLike] = None,
    root: Optional[PathLike] = None,
    directories: Optional[DirectoryConfig] = None,
) -> Optional[Path]:
    """Absolute path of the file *target* refers to, or ``None``."""
    directories = directories or DirectoryConfig()
    root_path = Path(root) if root is not None else None
    current_dir = Path(current).parent if current else None

    candidates: List[Path] = []
    if target.startswith(LIB_PREFIX):
        if root_path is not None:
            candidates.append(root_path / directories.lib / target[len(LIB_PREFIX):])
    elif target.startswith(SRC_PREFIX):
        if root_path is not None:
            candidates.append(root_path / directories.source / target[len(SRC_PREFIX):])
    elif target.startswith(("./", "../")):
        if current_dir is not None:
            candidates.append(current_dir / target)
    else:
        if root_path is not None:
            candidates.extend([root_path / LEGACY_DIRECTORY / target, root_path / target])
        if current_dir is not None:
            candidates.append(current_dir / target)
        candidates.append(Path(target))

    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    return None


def find_project_root(start: PathLike) -> Optional[Path]:
    """Closest directory above *start* holding a project marker."""
    start = Path(start)
    directory = start if start.is_dir() else start.parent
    for candidate in (directory, *directory.parents):
        if any((candidate / marker).exists() for marker in PROJECT_MARKERS):
            return candidate
    return None


def expand_imports(
    source: str,
    path: Optional[PathLike] = None,
    root: Optional[PathLike] = None,
    directories: Optional[DirectoryConfig] = None,
) -> ExpandedSource:
    """Inline every ``#import`` of *source*, recursively.

    A file imported twice is included once.  Unresolvable, unreadable and
    circular imports are collected in :attr:`ExpandedSource.errors` and
    their directive lines dropped; call :meth:`ExpandedSource.check` to
    raise them.
    """
    expander = _Expander(Path(root) if root is not None else None, directories or DirectoryConfig())
    name = str(path) if path is not None else None
    chain = (str(Path(path).resolve()),) if path is not None else ()
    return expander.expand(source, name, chain, None)


class _Expander:
    def __init__(self, root: Optional[Path], directories: DirectoryConfig) -> None:
        self.root = root
        self.directories = directories
        self.included: Set[str] = set()

    def expand(
        self,
        source: str,
        path: Optional[str],
        chain: Tuple[str, ...],
        origin: Optional[int],
    ) -> ExpandedSource:
        directives = parse_imports(source)
        by_line: Dict[int, ImportDirective] = {directive.line: directive for directive in directives}
        lines: List[str] = []
        locations: List[SourceLocation] = []
        errors: List[ImportResolutionError] = []
        for number, line in enumerate(source.split("\n"), start=1):
            origin_line = number if origin is None else origin
            directive = by_line.get(number)
            if directive is None:
                lines.append(line)
                locations.append(SourceLocation(path, number, origin_line, chain))
                continue
            nested = self._include(directive, path, chain, origin_line, errors)
            if nested is not None:
                lines.extend(nested.text.split("\n"))
                locations.extend(nested.locations)
                errors.extend(nested.errors)
        return ExpandedSource("\n".join(lines), locations, directives, errors, path)

    def _include(
        self,
        directive: ImportDirective,
        path: Optional[str],
        chain: Tuple[str, ...],
        origin_line: int,
        errors: List[ImportResolutionError],
    ) -> Optional[ExpandedSource]:
        def fail(message: str, hint: Optional[str] = None) -> None:
            errors.append(
                ImportResolutionError(
                    message,
                    path=path,
                    line=directive.line,
                    column=directive.start_column,
                    origin_line=origin_line,
                    hint=hint,
                )
            )

        resolved = resolve_import(directive.target, path, self.root, self.directories)
        if resolved is None:
            fail(
                f"Could not resolve import path: {directive.target}",
                hint="Use lib:, src:, a ./relative path or a path from the project root",
            )
            return None
        key = str(resolved)
        if key in chain:
            fail(f"Circular import detected: {' -> '.join(chain + (key,))}")
            return None
        if key in self.included:
            logger.debug("Skipping %s, already imported", key)
            return None
        try:
            content = resolved.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            fail(f"Failed to read import '{directive.target}': {exc}")
            return None
        self.included.add(key)
        logger.debug("Importing %s into %s line %d", key, path or "<source>", directive.line)
        return self.expand(content, key, chain + (key,), origin_line)


__all__ = [
    "IMPORT_PATTERN",
    "ExpandedSource",
    "ImportDirective",
    "SourceLocation",
    "expand_imports",
    "find_project_root",
    "parse_imports",
    "resolve_import",
]
