"""Language Server Protocol implementation for ErgoScript."""

from .server import ErgoScriptLanguageServer, create_server

__all__ = [
    "ErgoScriptLanguageServer",
    "create_server",
]
