"""Completion handler."""

from __future__ import annotations

from lsprotocol.types import TEXT_DOCUMENT_COMPLETION, CompletionOptions, CompletionParams

TRIGGER_CHARACTERS = [".", "("]


def register(server) -> None:
    workspace = server.workspace_index

    @server.feature(TEXT_DOCUMENT_COMPLETION, CompletionOptions(trigger_characters=TRIGGER_CHARACTERS))
    async def _completion(ls, params: CompletionParams):
        return workspace.completion(params)
