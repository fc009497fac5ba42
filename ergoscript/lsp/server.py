"""pygls based Language Server entrypoint."""

from __future__ import annotations

import logging
import os

from lsprotocol.types import InitializedParams
from pygls.server import LanguageServer

from .. import __version__
from .handlers import register_all
from .workspace import WorkspaceIndex

logger = logging.getLogger(__name__)


class ErgoScriptLanguageServer(LanguageServer):
    """Concrete LanguageServer holding the ErgoScript workspace index."""

    def __init__(self) -> None:
        super().__init__(name="ergoscript-lsp", version=__version__)
        self.workspace_index = WorkspaceIndex()
        register_all(self)
        self._register_lifecycle_handlers()

    def _register_lifecycle_handlers(self) -> None:
        workspace = self.workspace_index

        @self.feature("initialized")
        async def _on_initialized(ls: "ErgoScriptLanguageServer", params: InitializedParams) -> None:  # noqa: ARG001
            workspace.set_root(ls.workspace.root_uri)
            logger.info(
                "Workspace initialised at %s (%d project constants)",
                workspace.root_path,
                len(workspace.constants),
            )


def create_server() -> ErgoScriptLanguageServer:
    return ErgoScriptLanguageServer()


def main() -> None:
    server = create_server()
    logger.info("Starting ErgoScript LSP (pid=%s)", os.getpid())
    server.start_io()


if __name__ == "__main__":  # pragma: no cover
    main()
