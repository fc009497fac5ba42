from __future__ import annotations

from pathlib import Path

import pytest
from lsprotocol.types import TextDocumentItem

from ergoscript.lsp.workspace import WorkspaceIndex

DATA_DIR = Path(__file__).parent / "data"


def _make_uri(path: Path) -> str:
    return path.resolve().as_uri()


@pytest.fixture()
def workspace() -> WorkspaceIndex:
    root_uri = _make_uri(DATA_DIR)
    ws = WorkspaceIndex(root_uri)
    ws.set_root(root_uri)
    return ws


@pytest.fixture()
def open_document(workspace: WorkspaceIndex):
    """Open a file from the data directory in the workspace fixture."""

    def _open(filename: str, *, version: int = 1) -> TextDocumentItem:
        path = DATA_DIR / filename
        item = TextDocumentItem(
            uri=_make_uri(path),
            language_id="ergoscript",
            version=version,
            text=path.read_text(encoding="utf-8"),
        )
        workspace.did_open(item)
        return item

    return _open


@pytest.fixture()
def open_text(workspace: WorkspaceIndex):
    """Open an in-memory document with the given text."""

    def _open(text: str, name: str = "untitled.es") -> TextDocumentItem:
        item = TextDocumentItem(
            uri=_make_uri(DATA_DIR / name),
            language_id="ergoscript",
            version=1,
            text=text,
        )
        workspace.did_open(item)
        return item

    return _open
