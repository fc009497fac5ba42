"""Workspace level request routing for the ErgoScript language server."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from lsprotocol.types import (
    CompletionList,
    CompletionParams,
    Diagnostic,
    Hover,
    HoverParams,
    TextDocumentContentChangeEvent,
    TextDocumentItem,
)
from pygls.uris import to_fs_path

from ..config import ConstantDefinition, DirectoryConfig, load_project_config
from ..errors import ConfigError
from .completion import complete
from .hover import hover_at
from .state import DocumentState


class WorkspaceIndex:
    """Tracks open documents and answers hover and completion requests.

    Request handlers never raise: failures are logged and turned into empty
    results so the editor always gets a response.
    """

    def __init__(self, root_uri: Optional[str] = None) -> None:
        self.logger = logging.getLogger("ergoscript.lsp.workspace")
        self.root_uri = root_uri
        self.root_path = self._resolve_root(root_uri)
        self.constants: Dict[str, ConstantDefinition] = {}
        self.project_root: Optional[Path] = None
        self.directories = DirectoryConfig()
        self._open_documents: Dict[str, DocumentState] = {}

    def set_root(self, root_uri: Optional[str]) -> None:
        self.root_uri = root_uri
        self.root_path = self._resolve_root(root_uri)
        self.load_constants()

    def load_constants(self) -> Mapping[str, ConstantDefinition]:
        try:
            config = load_project_config(self.root_path)
        except ConfigError as exc:
            self.logger.warning("Ignoring project configuration: %s", exc.format())
            self.constants = {}
            self.project_root = None
            self.directories = DirectoryConfig()
        else:
            self.constants = dict(config.constants)
            self.project_root = config.root if config.path is not None else None
            self.directories = config.directories
        return self.constants

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------
    def did_open(self, item: TextDocumentItem) -> List[Diagnostic]:
        document = self._new_document(item.uri, item.text, item.version)
        self._open_documents[item.uri] = document
        self.logger.debug("Opened %s (%d diagnostics)", item.uri, len(document.diagnostics))
        return document.diagnostics_for_publish()

    def did_change(
        self,
        uri: str,
        version: int,
        changes: Sequence[TextDocumentContentChangeEvent],
    ) -> List[Diagnostic]:
        document = self._open_documents.get(uri)
        if document is None:
            document = self._new_document(uri, self._read_document_from_fs(uri), version)
            self._open_documents[uri] = document
        return document.apply_changes(changes, version)

    def did_close(self, uri: str) -> None:
        self._open_documents.pop(uri, None)

    def did_save(self, uri: str) -> List[Diagnostic]:
        document = self._open_documents.get(uri)
        if document is None:
            return []
        document.rebuild()
        return document.diagnostics_for_publish()

    def document(self, uri: str) -> Optional[DocumentState]:
        return self._open_documents.get(uri)

    def diagnostics(self, uri: str) -> List[Diagnostic]:
        document = self.document(uri)
        if document is None:
            return []
        return document.diagnostics_for_publish()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def hover(self, params: HoverParams) -> Optional[Hover]:
        document = self.document(params.text_document.uri)
        if document is None:
            return None
        try:
            return hover_at(document.text, params.position)
        except Exception as exc:
            self.logger.debug("Hover failed at %s: %s", params.position, exc, exc_info=True)
            return None

    def completion(self, params: CompletionParams) -> CompletionList:
        document = self.document(params.text_document.uri)
        text = document.text if document is not None else ""
        trigger = params.context.trigger_character if params.context is not None else None
        try:
            return complete(text, params.position, trigger)
        except Exception as exc:
            self.logger.debug("Completion failed at %s: %s", params.position, exc, exc_info=True)
            return CompletionList(is_incomplete=False, items=[])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _new_document(self, uri: str, text: str, version: int) -> DocumentState:
        return DocumentState(
            uri=uri,
            text=text,
            version=version,
            constants=self.constants,
            root=self.project_root,
            directories=self.directories,
        )

    def _read_document_from_fs(self, uri: str) -> str:
        try:
            path = Path(to_fs_path(uri))
        except ValueError:
            return ""
        try:
            return path.read_text(encoding="utf-8")
        except OSError:
            return ""

    def _resolve_root(self, root_uri: Optional[str]) -> Path:
        if root_uri:
            try:
                return Path(to_fs_path(root_uri))
            except ValueError:
                return Path(root_uri)
        return Path.cwd()


__all__ = ["WorkspaceIndex"]
