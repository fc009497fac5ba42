"""Document level state tracking for the ErgoScript language server."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from lsprotocol.types import Diagnostic, Position, TextDocumentContentChangeEvent
from pygls.uris import to_fs_path

from ..config import ConstantDefinition, DirectoryConfig
from .diagnostics import document_diagnostics


@dataclass
class DocumentState:
    """Text and diagnostics of an open document.

    Hover and completion always work from :attr:`text`; nothing derived from
    it is kept between edits except the diagnostics.
    """

    uri: str
    text: str
    version: int
    constants: Mapping[str, ConstantDefinition] = field(default_factory=dict)
    root: Optional[Path] = None
    directories: Optional[DirectoryConfig] = None
    path: Path = field(init=False)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.path = self._resolve_path()
        self.rebuild()

    def update(self, text: str, version: int) -> List[Diagnostic]:
        self.text = text
        self.version = version
        self.rebuild()
        return self.diagnostics

    def apply_changes(self, changes: Sequence[TextDocumentContentChangeEvent], version: int) -> List[Diagnostic]:
        text = self.text
        for change in changes:
            change_range = getattr(change, "range", None)
            if change_range is None:
                text = change.text
                continue
            start = offset_at(text, change_range.start)
            end = offset_at(text, change_range.end)
            text = text[:start] + change.text + text[end:]
        return self.update(text, version)

    def rebuild(self) -> None:
        self.diagnostics = document_diagnostics(
            self.text, str(self.path), self.constants, self.root, self.directories
        )

    def diagnostics_for_publish(self) -> List[Diagnostic]:
        return list(self.diagnostics)

    def _resolve_path(self) -> Path:
        try:
            return Path(to_fs_path(self.uri))
        except ValueError:
            return Path(self.uri)


def offset_at(text: str, position: Position) -> int:
    """Character offset of *position* in *text*, clamped to the text."""
    lines = text.split("\n")
    line_index = min(max(position.line, 0), len(lines) - 1)
    start = sum(len(line) + 1 for line in lines[:line_index])
    column = min(max(position.character, 0), len(lines[line_index]))
    return start + column


__all__ = ["DocumentState", "offset_at"]
