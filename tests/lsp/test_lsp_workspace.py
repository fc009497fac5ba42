from __future__ import annotations

import dataclasses

from lsprotocol.types import (
    CompletionContext,
    CompletionParams,
    CompletionTriggerKind,
    HoverParams,
    Position,
    Range,
    TextDocumentContentChangeEvent_Type1,
    TextDocumentContentChangeEvent_Type2,
    TextDocumentIdentifier,
    TextDocumentItem,
)

from ergoscript.lsp.workspace import WorkspaceIndex


def _position_of(text: str, snippet: str) -> tuple[int, int]:
    for index, line in enumerate(text.splitlines()):
        column = line.find(snippet)
        if column != -1:
            return index, column
    raise AssertionError(f"Snippet '{snippet}' not found")


def test_project_constants_are_loaded(workspace: WorkspaceIndex) -> None:
    assert set(workspace.constants) == {"LOCK_HEIGHT"}
    assert workspace.constants["LOCK_HEIGHT"].value == "1000"


def test_open_document_with_project_constant(workspace: WorkspaceIndex, open_document) -> None:
    document = open_document("lock.es")

    assert workspace.diagnostics(document.uri) == []


def test_missing_constants_without_project() -> None:
    bare = WorkspaceIndex()
    item = TextDocumentItem(
        uri="file:///tmp/lock.es",
        language_id="ergoscript",
        version=1,
        text="sigmaProp(HEIGHT > $LOCK_HEIGHT)",
    )

    diagnostics = bare.did_open(item)

    assert [diagnostic.code for diagnostic in diagnostics] == ["ERGO-CONFIG"]


def test_hover_on_user_value(workspace: WorkspaceIndex, open_document) -> None:
    document = open_document("escrow.es")
    line, column = _position_of(document.text, "val amount")
    params = HoverParams(
        text_document=TextDocumentIdentifier(uri=document.uri),
        position=Position(line=line, character=column + len("val a")),
    )

    hover = workspace.hover(params)

    assert hover is not None
    assert "val amount: Long" in hover.contents.value


def test_hover_on_unknown_document(workspace: WorkspaceIndex) -> None:
    params = HoverParams(
        text_document=TextDocumentIdentifier(uri="file:///nowhere.es"),
        position=Position(line=0, character=0),
    )

    assert workspace.hover(params) is None


def test_completion_uses_trigger_character(workspace: WorkspaceIndex, open_document) -> None:
    document = open_document("escrow.es")
    line, column = _position_of(document.text, "b.value")
    params = CompletionParams(
        text_document=TextDocumentIdentifier(uri=document.uri),
        position=Position(line=line, character=column + 2),
        context=CompletionContext(trigger_kind=CompletionTriggerKind.TriggerCharacter, trigger_character="."),
    )

    labels = {item.label for item in workspace.completion(params).items}

    assert "val" not in labels


def test_completion_for_unknown_document_is_general(workspace: WorkspaceIndex) -> None:
    params = CompletionParams(
        text_document=TextDocumentIdentifier(uri="file:///nowhere.es"),
        position=Position(line=0, character=0),
    )

    result = workspace.completion(params)

    assert "HEIGHT" in {item.label for item in result.items}
    assert result.is_incomplete is False


def test_incremental_change_updates_diagnostics(workspace: WorkspaceIndex, open_text) -> None:
    document = open_text("sigmaProp(HEIGHT > 100)")
    assert workspace.diagnostics(document.uri) == []

    change = TextDocumentContentChangeEvent_Type1(
        range=Range(start=Position(line=0, character=10), end=Position(line=0, character=16)),
        text="foo",
    )
    diagnostics = workspace.did_change(document.uri, 2, [change])

    assert workspace.document(document.uri).text == "sigmaProp(foo > 100)"
    assert [diagnostic.message for diagnostic in diagnostics] == ["Unknown identifier 'foo'"]


def test_full_change_and_close(workspace: WorkspaceIndex, open_text) -> None:
    document = open_text("sigmaProp(foo > 1)")

    diagnostics = workspace.did_change(
        document.uri, 2, [TextDocumentContentChangeEvent_Type2(text="sigmaProp(HEIGHT > 1)")]
    )
    assert diagnostics == []

    workspace.did_close(document.uri)
    assert workspace.document(document.uri) is None
    assert workspace.did_save(document.uri) == []


def test_document_state_holds_text_and_diagnostics_only(workspace: WorkspaceIndex, open_text) -> None:
    document = open_text("sigmaProp(HEIGHT > 1)")
    state = workspace.document(document.uri)

    assert {item.name for item in dataclasses.fields(state)} == {
        "uri",
        "text",
        "version",
        "constants",
        "root",
        "directories",
        "path",
        "diagnostics",
    }
    assert not hasattr(state, "lines")
